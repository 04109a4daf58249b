from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Dict, Union, Literal
from datetime import datetime

from app.modules.members.lifecycle import MemberStatus
from app.modules.roles.schemas import ModuleGrant


class RoleAuthority(BaseModel):
    kind: Literal["role"] = "role"
    role_id: str


class CustomAuthority(BaseModel):
    kind: Literal["custom"] = "custom"
    grants: List[ModuleGrant]


class NoAuthority(BaseModel):
    kind: Literal["none"] = "none"


# Exactly one authority source per member
Authority = Annotated[
    Union[RoleAuthority, CustomAuthority, NoAuthority],
    Field(discriminator="kind")
]


def authority_from_row(role_id: Optional[str], custom_grants: List[ModuleGrant]):
    """Role wins over custom rows when a legacy row carries both"""
    if role_id:
        return RoleAuthority(role_id=role_id)
    grants = [g for g in custom_grants if not g.is_empty]
    if grants:
        return CustomAuthority(grants=grants)
    return NoAuthority()


class MemberCreate(BaseModel):
    accessor_id: str
    authority: Authority = NoAuthority()


class AuthorityUpdate(BaseModel):
    authority: Authority


class MemberResponse(BaseModel):
    id: str
    project_id: str
    accessor_id: str
    account_id: Optional[str] = None
    member_type: Optional[str] = None
    role_id: Optional[str] = None
    status: MemberStatus = MemberStatus.OPEN
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    team_id: Optional[str] = None
    created_at: Optional[datetime] = None
    custom_grants: List[ModuleGrant] = []

    class Config:
        from_attributes = True

    @property
    def authority(self):
        return authority_from_row(self.role_id, self.custom_grants)

    @property
    def has_authority(self) -> bool:
        return not isinstance(self.authority, NoAuthority)


class InviteResponse(BaseModel):
    member: MemberResponse
    notification_created: bool
    message: str


class BulkInviteResponse(BaseModel):
    invited: List[InviteResponse] = []
    skipped: List[str] = []
    failed: Dict[str, str] = {}


class AcceptInvitationRequest(BaseModel):
    member_id: str
