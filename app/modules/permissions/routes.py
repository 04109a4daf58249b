from fastapi import APIRouter, Depends
from app.config.permissions_config import ModuleKey, Operation
from app.modules.permissions.resolver import ContentInstance, Viewer
from app.modules.permissions.schemas import (
    PermissionCheckResponse, EffectivePermissionsResponse,
    VisibleContentRequest, VisibleContentResponse
)
from app.modules.permissions.service import PermissionService
from app.core.dependencies import get_viewer, get_permission_service
from typing import Optional

router = APIRouter(prefix="/projects/{project_id}/permissions", tags=["permissions"])


@router.get("", response_model=EffectivePermissionsResponse)
async def list_effective_permissions(
    project_id: str,
    viewer: Viewer = Depends(get_viewer),
    service: PermissionService = Depends(get_permission_service)
):
    """What the caller may do in each active module of the project"""
    return service.list_effective_permissions(viewer, project_id)


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    project_id: str,
    module_key: ModuleKey,
    operation: Operation,
    content_id: Optional[str] = None,
    owner_team_id: Optional[str] = None,
    creator_account_id: Optional[str] = None,
    viewer: Viewer = Depends(get_viewer),
    service: PermissionService = Depends(get_permission_service)
):
    """Single yes/no decision, optionally for one piece of content"""
    instance = None
    if content_id or owner_team_id or creator_account_id:
        instance = ContentInstance(id=content_id, owner_team_id=owner_team_id, creator_account_id=creator_account_id)
    decision = service.check_permission(viewer, project_id, module_key, operation, instance)
    return PermissionCheckResponse(
        project_id=project_id,
        module_key=module_key,
        operation=operation,
        content_id=content_id,
        allowed=decision.allowed,
        reason=decision.reason
    )


@router.post("/visible", response_model=VisibleContentResponse)
async def filter_visible(
    project_id: str,
    body: VisibleContentRequest,
    viewer: Viewer = Depends(get_viewer),
    service: PermissionService = Depends(get_permission_service)
):
    """Ids of the given items the caller may see"""
    instances = [
        ContentInstance(id=item.id, owner_team_id=item.owner_team_id, creator_account_id=item.creator_account_id)
        for item in body.items
    ]
    visible = service.filter_visible(viewer, project_id, body.module_key, instances)
    return VisibleContentResponse(module_key=body.module_key, visible_ids=[i.id for i in visible])
