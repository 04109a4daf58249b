import logging
from datetime import datetime, timezone
from typing import List, Optional, Dict

from supabase import Client

from app.core.errors import AuthorityError, NotFoundError, ValidationError
from app.database.supabase_client import store_call, rows, require_rows
from app.modules.roles.schemas import (
    ModuleGrant, RoleCreate, RoleUpdate, RoleResponse, RoleWithGrantsResponse,
    normalize_grants
)

logger = logging.getLogger(__name__)

_GRANT_COLUMNS = "module_key, can_view, can_create, can_edit, can_delete"


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_role(self, owner_account_id: str, role_data: RoleCreate) -> RoleWithGrantsResponse:
        """Create a role and its grant rows"""
        if not role_data.name.strip():
            raise ValidationError("Role name must not be empty")

        with store_call("Create role"):
            result = self.supabase.table("roles").insert({
                "owner_account_id": owner_account_id,
                "name": role_data.name.strip(),
                "description": role_data.description,
                "is_active": True
            }).execute()
        role = RoleResponse(**require_rows(result, "Create role")[0])

        grants = self._replace_grants(role.id, role_data.grants)
        logger.info(f"Created role {role.id} ({role.name}) with {len(grants)} grants")
        return RoleWithGrantsResponse(**role.model_dump(), grants=grants)

    def get_role(self, role_id: str) -> RoleResponse:
        """Get role by ID"""
        with store_call("Load role"):
            result = self.supabase.table("roles")\
                .select("*")\
                .eq("id", role_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        if not data:
            raise NotFoundError(f"Role {role_id} not found")
        return RoleResponse(**data[0])

    def get_role_with_grants(self, role_id: str) -> RoleWithGrantsResponse:
        role = self.get_role(role_id)
        return RoleWithGrantsResponse(**role.model_dump(), grants=self.get_role_grants(role_id))

    def get_role_grants(self, role_id: str) -> List[ModuleGrant]:
        with store_call("Load role grants"):
            result = self.supabase.table("role_permissions")\
                .select(_GRANT_COLUMNS)\
                .eq("role_id", role_id)\
                .execute()
        return [ModuleGrant(**row) for row in rows(result)]

    def get_grants_for_roles(self, role_ids: List[str]) -> Dict[str, List[ModuleGrant]]:
        """Grants keyed by role id, for the given roles only"""
        if not role_ids:
            return {}
        with store_call("Load role grants"):
            result = self.supabase.table("role_permissions")\
                .select("role_id, " + _GRANT_COLUMNS)\
                .in_("role_id", role_ids)\
                .execute()
        grants: Dict[str, List[ModuleGrant]] = {role_id: [] for role_id in role_ids}
        for row in rows(result):
            role_id = row.pop("role_id")
            grants.setdefault(role_id, []).append(ModuleGrant(**row))
        return grants

    def update_role(self, role_id: str, role_data: RoleUpdate, account_id: str, allow_all: bool = False) -> RoleWithGrantsResponse:
        """Update name/description and fully replace the grant rows"""
        role = self._owned_role(role_id, account_id, allow_all)
        if not role_data.name.strip():
            raise ValidationError("Role name must not be empty")

        with store_call("Update role"):
            result = self.supabase.table("roles")\
                .update({
                    "name": role_data.name.strip(),
                    "description": role_data.description,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", role.id)\
                .execute()
        updated = RoleResponse(**require_rows(result, "Update role")[0])

        grants = self._replace_grants(role.id, role_data.grants)
        logger.info(f"Updated role {role.id} with {len(grants)} grants")
        return RoleWithGrantsResponse(**updated.model_dump(), grants=grants)

    def delete_role(self, role_id: str, account_id: str, allow_all: bool = False) -> RoleResponse:
        """Soft delete. Members still referencing the role lose its authority at resolve time."""
        role = self._owned_role(role_id, account_id, allow_all)
        with store_call("Delete role"):
            result = self.supabase.table("roles")\
                .update({
                    "is_active": False,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", role.id)\
                .execute()
        logger.info(f"Deactivated role {role.id}")
        return RoleResponse(**require_rows(result, "Delete role")[0])

    def list_roles(self, owner_account_id: str, include_inactive: bool = False) -> List[RoleResponse]:
        """List roles owned by an account, newest first"""
        with store_call("List roles"):
            query = self.supabase.table("roles")\
                .select("*")\
                .eq("owner_account_id", owner_account_id)
            if not include_inactive:
                query = query.eq("is_active", True)
            result = query.order("created_at", desc=True).execute()
        return [RoleResponse(**role) for role in rows(result)]

    def get_roles(self, role_ids: List[str]) -> List[RoleResponse]:
        if not role_ids:
            return []
        with store_call("Load roles"):
            result = self.supabase.table("roles")\
                .select("*")\
                .in_("id", role_ids)\
                .execute()
        return [RoleResponse(**role) for role in rows(result)]

    # Project whitelist

    def list_project_roles(self, project_id: str) -> List[RoleResponse]:
        """Roles that may be assigned to members of the project"""
        return [r for r in self.get_roles(self.project_role_ids(project_id)) if r.is_active]

    def project_role_ids(self, project_id: str) -> List[str]:
        with store_call("Load project roles"):
            result = self.supabase.table("project_available_roles")\
                .select("role_id")\
                .eq("project_id", project_id)\
                .execute()
        return [row["role_id"] for row in rows(result)]

    def set_project_roles(self, project_id: str, role_ids: List[str]) -> List[RoleResponse]:
        """Full replace of the project's role whitelist"""
        role_ids = list(dict.fromkeys(role_ids))
        roles = self.get_roles(role_ids)
        found = {r.id for r in roles if r.is_active}
        missing = [rid for rid in role_ids if rid not in found]
        if missing:
            raise NotFoundError(f"Unknown or inactive roles: {', '.join(missing)}")

        with store_call("Replace project roles"):
            self.supabase.table("project_available_roles")\
                .delete()\
                .eq("project_id", project_id)\
                .execute()
            if role_ids:
                self.supabase.table("project_available_roles").insert([
                    {"project_id": project_id, "role_id": rid} for rid in role_ids
                ]).execute()
        logger.info(f"Project {project_id} now offers {len(role_ids)} roles")
        return roles

    def ensure_assignable(self, project_id: str, role_id: str) -> RoleResponse:
        """Role must exist, be active and be whitelisted for the project"""
        role = self.get_role(role_id)
        if not role.is_active:
            raise ValidationError(f"Role {role.name} is no longer active")
        if role_id not in self.project_role_ids(project_id):
            raise ValidationError(f"Role {role.name} is not available in this project")
        return role

    def _owned_role(self, role_id: str, account_id: str, allow_all: bool) -> RoleResponse:
        role = self.get_role(role_id)
        if not allow_all and role.owner_account_id != account_id:
            raise AuthorityError("Only the role owner can change this role")
        return role

    def _replace_grants(self, role_id: str, grants: List[ModuleGrant]) -> List[ModuleGrant]:
        # Delete-then-insert is two requests; a concurrent writer can interleave (last write wins)
        grants = normalize_grants(grants)
        with store_call("Replace role grants"):
            self.supabase.table("role_permissions")\
                .delete()\
                .eq("role_id", role_id)\
                .execute()
            if grants:
                self.supabase.table("role_permissions").insert([
                    {"role_id": role_id, **grant.to_row()} for grant in grants
                ]).execute()
        return grants
