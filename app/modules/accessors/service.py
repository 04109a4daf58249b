import logging
from datetime import datetime, timezone
from typing import List, Optional

from supabase import Client

from app.core.errors import AuthorityError, ConflictError, NotFoundError
from app.database.supabase_client import store_call, rows, require_rows
from app.modules.accessors.schemas import (
    AccessorCreate, AccessorUpdate, AccessorResponse, AccessorType
)

logger = logging.getLogger(__name__)


def _normalize_email(email: Optional[str]) -> Optional[str]:
    return email.strip().lower() if email else None


class AccessorService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_accessor(self, owner_account_id: str, accessor_data: AccessorCreate) -> AccessorResponse:
        """Create an accessor; email must not already be used by another active accessor of the owner"""
        email = _normalize_email(accessor_data.email)
        self._ensure_email_free(owner_account_id, email)

        payload = accessor_data.model_dump()
        payload.update({
            "owner_account_id": owner_account_id,
            "email": email,
            "accessor_type": accessor_data.accessor_type.value,
            "is_active": True
        })
        with store_call("Create accessor"):
            result = self.supabase.table("accessors").insert(payload).execute()
        accessor = AccessorResponse(**require_rows(result, "Create accessor")[0])
        logger.info(f"Created accessor {accessor.id} for owner {owner_account_id}")
        return accessor

    def create_from_profile(
        self,
        owner_account_id: str,
        account_id: str,
        email: Optional[str],
        name: Optional[str] = None,
        company: Optional[str] = None,
        accessor_type: AccessorType = AccessorType.EMPLOYEE,
    ) -> AccessorResponse:
        """Accessor for an existing platform account, already linked to it (used by team sync)"""
        with store_call("Create accessor from profile"):
            result = self.supabase.table("accessors").insert({
                "owner_account_id": owner_account_id,
                "email": _normalize_email(email),
                "name": name,
                "company": company,
                "accessor_type": accessor_type.value,
                "registered_account_id": account_id,
                "is_active": True
            }).execute()
        return AccessorResponse(**require_rows(result, "Create accessor from profile")[0])

    def get_accessor(self, accessor_id: str) -> AccessorResponse:
        """Get accessor by ID"""
        with store_call("Load accessor"):
            result = self.supabase.table("accessors")\
                .select("*")\
                .eq("id", accessor_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        if not data:
            raise NotFoundError(f"Accessor {accessor_id} not found")
        return AccessorResponse(**data[0])

    def get_accessors(self, accessor_ids: List[str]) -> List[AccessorResponse]:
        if not accessor_ids:
            return []
        with store_call("Load accessors"):
            result = self.supabase.table("accessors")\
                .select("*")\
                .in_("id", accessor_ids)\
                .execute()
        return [AccessorResponse(**row) for row in rows(result)]

    def list_accessors(self, owner_account_id: str) -> List[AccessorResponse]:
        """Active accessors of an owner, newest first"""
        with store_call("List accessors"):
            result = self.supabase.table("accessors")\
                .select("*")\
                .eq("owner_account_id", owner_account_id)\
                .eq("is_active", True)\
                .order("created_at", desc=True)\
                .execute()
        return [AccessorResponse(**row) for row in rows(result)]

    def update_accessor(self, accessor_id: str, accessor_data: AccessorUpdate, account_id: str, allow_all: bool = False) -> AccessorResponse:
        """Update the provided fields only"""
        accessor = self._owned_accessor(accessor_id, account_id, allow_all)
        update_data = accessor_data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in update_data:
            update_data["email"] = _normalize_email(update_data["email"])
            if update_data["email"] != accessor.email:
                self._ensure_email_free(accessor.owner_account_id, update_data["email"], exclude_id=accessor.id)
        if "accessor_type" in update_data:
            update_data["accessor_type"] = AccessorType(update_data["accessor_type"]).value
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        with store_call("Update accessor"):
            result = self.supabase.table("accessors")\
                .update(update_data)\
                .eq("id", accessor.id)\
                .execute()
        return AccessorResponse(**require_rows(result, "Update accessor")[0])

    def delete_accessor(self, accessor_id: str, account_id: str, allow_all: bool = False) -> AccessorResponse:
        """Soft delete; existing project members keep referencing the accessor"""
        accessor = self._owned_accessor(accessor_id, account_id, allow_all)
        with store_call("Delete accessor"):
            result = self.supabase.table("accessors")\
                .update({
                    "is_active": False,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", accessor.id)\
                .execute()
        logger.info(f"Deactivated accessor {accessor.id}")
        return AccessorResponse(**require_rows(result, "Delete accessor")[0])

    def link_registered_account(self, accessor_id: str, account_id: str) -> AccessorResponse:
        """Attach the platform account the accessor signed up with"""
        with store_call("Link accessor account"):
            result = self.supabase.table("accessors")\
                .update({
                    "registered_account_id": account_id,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", accessor_id)\
                .execute()
        return AccessorResponse(**require_rows(result, "Link accessor account")[0])

    def find_by_email(self, owner_account_id: str, email: Optional[str]) -> Optional[AccessorResponse]:
        email = _normalize_email(email)
        if not email:
            return None
        with store_call("Look up accessor by email"):
            result = self.supabase.table("accessors")\
                .select("*")\
                .eq("owner_account_id", owner_account_id)\
                .eq("email", email)\
                .eq("is_active", True)\
                .limit(1)\
                .execute()
        data = rows(result)
        return AccessorResponse(**data[0]) if data else None

    def find_by_registered_account(self, owner_account_id: str, account_id: str) -> Optional[AccessorResponse]:
        with store_call("Look up accessor by account"):
            result = self.supabase.table("accessors")\
                .select("*")\
                .eq("owner_account_id", owner_account_id)\
                .eq("registered_account_id", account_id)\
                .eq("is_active", True)\
                .limit(1)\
                .execute()
        data = rows(result)
        return AccessorResponse(**data[0]) if data else None

    def ids_for_registered_account(self, account_id: str) -> List[str]:
        """All accessor ids (any owner) linked to a platform account"""
        with store_call("Look up accessors by account"):
            result = self.supabase.table("accessors")\
                .select("id")\
                .eq("registered_account_id", account_id)\
                .execute()
        return [row["id"] for row in rows(result)]

    def _ensure_email_free(self, owner_account_id: str, email: Optional[str], exclude_id: Optional[str] = None):
        # Check-then-insert: two concurrent creates can still both pass
        existing = self.find_by_email(owner_account_id, email)
        if existing and existing.id != exclude_id:
            raise ConflictError(f"An accessor with email {email} already exists")

    def _owned_accessor(self, accessor_id: str, account_id: str, allow_all: bool) -> AccessorResponse:
        accessor = self.get_accessor(accessor_id)
        if not allow_all and accessor.owner_account_id != account_id:
            raise AuthorityError("Only the owner can change this accessor")
        return accessor
