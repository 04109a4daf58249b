from fastapi import APIRouter, Depends
from app.config.permissions_config import ModuleKey, Operation
from app.database.supabase_client import get_supabase
from app.modules.audit.schemas import AuditAction
from app.modules.audit.service import AuditService
from app.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, RoleWithGrantsResponse, ProjectRolesUpdate
)
from app.modules.roles.service import RoleService
from app.core.dependencies import (
    get_current_user_id,
    is_super_user,
    require_project_owner,
    require_project_permission,
)
from app.core.errors import AuthorityError
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/roles", tags=["roles"])
project_router = APIRouter(prefix="/projects/{project_id}/roles", tags=["roles"])


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


def get_audit_service(supabase: Client = Depends(get_supabase)) -> AuditService:
    return AuditService(supabase)


@router.post("", response_model=RoleWithGrantsResponse, status_code=201)
async def create_role(
    role_data: RoleCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service),
    audit: AuditService = Depends(get_audit_service)
):
    """Create a role owned by the caller"""
    role = service.create_role(user_data["id"], role_data)
    audit.log_action(user_data["id"], None, AuditAction.ROLE_CREATED, {"role_id": role.id, "name": role.name})
    return role


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    include_inactive: bool = False,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """List roles owned by the caller"""
    return service.list_roles(user_data["id"], include_inactive=include_inactive)


@router.get("/{role_id}", response_model=RoleWithGrantsResponse)
async def get_role(
    role_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """Get role with its module grants (owner or super user)"""
    role = service.get_role_with_grants(role_id)
    if role.owner_account_id != user_data["id"] and not is_super_user(user_data):
        raise AuthorityError("Role not accessible")
    return role


@router.put("/{role_id}", response_model=RoleWithGrantsResponse)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service),
    audit: AuditService = Depends(get_audit_service)
):
    """Update role and replace all of its grants"""
    role = service.update_role(role_id, role_data, user_data["id"], allow_all=is_super_user(user_data))
    audit.log_action(user_data["id"], None, AuditAction.ROLE_UPDATED, {"role_id": role.id, "grants": len(role.grants)})
    return role


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service),
    audit: AuditService = Depends(get_audit_service)
):
    """Soft delete a role"""
    service.delete_role(role_id, user_data["id"], allow_all=is_super_user(user_data))
    audit.log_action(user_data["id"], None, AuditAction.ROLE_DELETED, {"role_id": role_id})
    return None


@project_router.get("", response_model=List[RoleResponse])
async def list_project_roles(
    project_id: str,
    user_data: Dict = Depends(require_project_permission(ModuleKey.PARTICIPANTS, Operation.VIEW)),
    service: RoleService = Depends(get_role_service)
):
    """Roles that can be assigned to members of this project"""
    return service.list_project_roles(project_id)


@project_router.put("", response_model=List[RoleResponse])
async def set_project_roles(
    project_id: str,
    body: ProjectRolesUpdate,
    user_data: Dict = Depends(require_project_owner),
    service: RoleService = Depends(get_role_service),
    audit: AuditService = Depends(get_audit_service)
):
    """Replace the project's assignable roles"""
    roles = service.set_project_roles(project_id, body.role_ids)
    audit.log_action(user_data["id"], project_id, AuditAction.PROJECT_ROLES_UPDATED, {"role_ids": body.role_ids})
    return roles
