from enum import Enum
from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime


class TeamRole(str, Enum):
    MEMBER = "member"
    TEAM_ADMIN = "team_admin"


class TeamCreate(BaseModel):
    name: str
    description: Optional[str] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class TeamResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMemberAdd(BaseModel):
    account_id: str
    role: TeamRole = TeamRole.MEMBER


class TeamMemberResponse(BaseModel):
    team_id: str
    account_id: str
    role: TeamRole = TeamRole.MEMBER
    joined_at: Optional[datetime] = None


class TeamProjectAccessResponse(BaseModel):
    project_id: str
    team_id: str


class TeamSyncRequest(BaseModel):
    role_id: Optional[str] = None
    account_ids: Optional[List[str]] = None  # restrict to these teammates


class TeamSyncResponse(BaseModel):
    project_id: str
    team_id: str
    added: List[str] = []    # member ids
    skipped: List[str] = []  # account ids already in the project
    failed: Dict[str, str] = {}  # account id -> cause
