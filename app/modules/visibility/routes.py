from fastapi import APIRouter, Depends
from app.config.permissions_config import ModuleKey, Operation
from app.database.supabase_client import get_supabase
from app.modules.permissions.service import PermissionService
from app.modules.visibility.schemas import (
    ContentDefault, ContentDefaultUpdate, ContentDefaultsSave,
    VisibilityOverrideSet, VisibilityOverrideResponse
)
from app.modules.visibility.service import VisibilityService
from app.core.dependencies import (
    get_current_user_id, get_permission_service, require_project_owner, viewer_from
)
from app.core.errors import AuthorityError, NotFoundError
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/projects/{project_id}/content-defaults", tags=["visibility"])
overrides_router = APIRouter(prefix="/projects/{project_id}/content/{module_key}/{content_id}/visibility", tags=["visibility"])


def get_visibility_service(supabase: Client = Depends(get_supabase)) -> VisibilityService:
    return VisibilityService(supabase)


@router.get("", response_model=List[ContentDefault])
async def get_content_defaults(
    project_id: str,
    user_data: Dict = Depends(require_project_owner),
    service: VisibilityService = Depends(get_visibility_service)
):
    """Default visibility for every active module"""
    return service.get_defaults(project_id)


@router.put("", response_model=List[ContentDefault])
async def save_content_defaults(
    project_id: str,
    body: ContentDefaultsSave,
    user_data: Dict = Depends(require_project_owner),
    service: VisibilityService = Depends(get_visibility_service)
):
    """Save several defaults at once"""
    return service.save_all(project_id, body.defaults, user_data["id"])


@router.put("/{module_key}", response_model=ContentDefault)
async def update_content_default(
    project_id: str,
    module_key: ModuleKey,
    body: ContentDefaultUpdate,
    user_data: Dict = Depends(require_project_owner),
    service: VisibilityService = Depends(get_visibility_service)
):
    return service.update_default(project_id, module_key, body.default_visibility, user_data["id"])


@router.delete("/{module_key}", response_model=ContentDefault)
async def reset_content_default(
    project_id: str,
    module_key: ModuleKey,
    user_data: Dict = Depends(require_project_owner),
    service: VisibilityService = Depends(get_visibility_service)
):
    """Back to all_participants"""
    return service.reset_default(project_id, module_key, user_data["id"])


def _require_module_edit(permissions: PermissionService, user_data: Dict, project_id: str, module_key: ModuleKey):
    decision = permissions.check_permission(viewer_from(user_data), project_id, module_key, Operation.EDIT)
    if not decision.allowed:
        raise AuthorityError(f"Insufficient permissions. Required: {module_key.value}:edit ({decision.reason})")


@overrides_router.put("", response_model=VisibilityOverrideResponse)
async def set_visibility_override(
    project_id: str,
    module_key: ModuleKey,
    content_id: str,
    body: VisibilityOverrideSet,
    user_data: Dict = Depends(get_current_user_id),
    permissions: PermissionService = Depends(get_permission_service),
    service: VisibilityService = Depends(get_visibility_service)
):
    """Override the module default for one piece of content"""
    _require_module_edit(permissions, user_data, project_id, module_key)
    return service.set_override(project_id, module_key, content_id, body.visibility, user_data["id"])


@overrides_router.delete("", status_code=204)
async def clear_visibility_override(
    project_id: str,
    module_key: ModuleKey,
    content_id: str,
    user_data: Dict = Depends(get_current_user_id),
    permissions: PermissionService = Depends(get_permission_service),
    service: VisibilityService = Depends(get_visibility_service)
):
    _require_module_edit(permissions, user_data, project_id, module_key)
    if not service.clear_override(project_id, module_key, content_id, user_data["id"]):
        raise NotFoundError(f"No visibility override for {module_key.value}/{content_id}")
    return None
