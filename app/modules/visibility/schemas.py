from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.config.permissions_config import ModuleKey, Visibility


class ContentDefault(BaseModel):
    module_key: ModuleKey
    module_name: Optional[str] = None
    default_visibility: Visibility = Visibility.ALL_PARTICIPANTS
    has_custom_default: bool = False


class ContentDefaultUpdate(BaseModel):
    default_visibility: Visibility


class ContentDefaultItem(BaseModel):
    module_key: ModuleKey
    default_visibility: Visibility


class ContentDefaultsSave(BaseModel):
    defaults: List[ContentDefaultItem]


class VisibilityOverrideSet(BaseModel):
    visibility: Visibility


class VisibilityOverrideResponse(BaseModel):
    project_id: str
    module_key: ModuleKey
    content_id: str
    visibility: Visibility
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
