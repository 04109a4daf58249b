import hashlib
import time
from typing import Dict, Any

from fastapi import HTTPException
from supabase import Client

from app.config.settings import settings

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_MAX_SIZE = 500


def is_superuser_metadata(app_metadata: Dict[str, Any]) -> bool:
    """app_metadata is set server-side and cannot be modified by users"""
    return app_metadata.get("type") == "super_user" or app_metadata.get("is_superuser") is True


class AuthService:
    """Identity comes from Supabase Auth; this service only reads the caller's account from a token."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            app_metadata = user.app_metadata or {}
            user_data = {
                "id": user.id,
                "email": user.email,
                "app_metadata": app_metadata,
                "is_superuser": is_superuser_metadata(app_metadata)
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + settings.auth_cache_ttl_sec)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()
