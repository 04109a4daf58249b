import logging
from contextlib import contextmanager
from typing import Any, Dict, List

from fastapi import HTTPException
from supabase import create_client, Client

from app.config import settings
from app.core.errors import AuthorityError, TransportError

logger = logging.getLogger(__name__)

# Postgres error codes surfaced by PostgREST when row-level security rejects a write
_RLS_ERROR_CODES = {"42501", "PGRST301", "PGRST302"}


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Used by team sync to write accessors of another owner."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


@contextmanager
def store_call(action: str):
    """Translate store failures raised inside the block into the error taxonomy."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as e:
        code = str(getattr(e, "code", "") or "")
        message = getattr(e, "message", None) or str(e)
        if code in _RLS_ERROR_CODES or "row-level security" in message.lower():
            logger.warning(f"{action} rejected by store access rules: {message}")
            raise AuthorityError(f"{action} rejected by access rules: {message}")
        logger.error(f"{action} failed: {message}")
        raise TransportError(f"{action} failed: {message}")


def rows(result) -> List[Dict[str, Any]]:
    return list(result.data or []) if result is not None else []


def require_rows(result, action: str) -> List[Dict[str, Any]]:
    """Return affected rows; zero rows on a write means the store silently refused it."""
    data = rows(result)
    if not data:
        raise AuthorityError(f"{action} affected no rows (not permitted or already gone)")
    return data
