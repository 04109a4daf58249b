from pydantic import BaseModel, model_validator
from typing import Optional, List
from datetime import datetime

from app.config.permissions_config import ModuleKey, Operation


class ModuleGrant(BaseModel):
    """CRUD flags for one module. Any write flag implies view."""
    module_key: ModuleKey
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    @model_validator(mode="after")
    def write_implies_view(self):
        if self.can_create or self.can_edit or self.can_delete:
            self.can_view = True
        return self

    @property
    def is_empty(self) -> bool:
        return not (self.can_view or self.can_create or self.can_edit or self.can_delete)

    def allows(self, operation: Operation) -> bool:
        return bool(getattr(self, operation.flag))

    def to_row(self) -> dict:
        return {
            "module_key": self.module_key.value,
            "can_view": self.can_view,
            "can_create": self.can_create,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete
        }


def normalize_grants(grants: List[ModuleGrant]) -> List[ModuleGrant]:
    """Drop all-false grants and collapse duplicates per module (last one wins)."""
    by_module = {}
    for grant in grants:
        by_module[grant.module_key] = grant
    return [g for g in by_module.values() if not g.is_empty]


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    grants: List[ModuleGrant] = []


class RoleUpdate(BaseModel):
    name: str
    description: Optional[str] = None
    grants: List[ModuleGrant] = []


class RoleResponse(BaseModel):
    id: str
    owner_account_id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleWithGrantsResponse(RoleResponse):
    grants: List[ModuleGrant] = []


class ProjectRolesUpdate(BaseModel):
    role_ids: List[str]
