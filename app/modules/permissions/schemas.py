from pydantic import BaseModel
from typing import Optional, List

from app.config.permissions_config import ModuleKey, Operation
from app.modules.roles.schemas import ModuleGrant


class PermissionCheckResponse(BaseModel):
    project_id: str
    module_key: ModuleKey
    operation: Operation
    content_id: Optional[str] = None
    allowed: bool
    reason: str


class EffectivePermissionsResponse(BaseModel):
    project_id: str
    is_project_owner: bool = False
    is_superuser: bool = False
    member_id: Optional[str] = None
    member_status: Optional[str] = None
    permissions: List[ModuleGrant] = []


class ContentItem(BaseModel):
    id: str
    owner_team_id: Optional[str] = None
    creator_account_id: Optional[str] = None


class VisibleContentRequest(BaseModel):
    module_key: ModuleKey
    items: List[ContentItem]


class VisibleContentResponse(BaseModel):
    module_key: ModuleKey
    visible_ids: List[str]
