from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


class AuditAction(str, Enum):
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    PROJECT_ROLES_UPDATED = "project_roles_updated"
    MEMBER_ADDED = "member_added"
    MEMBER_AUTHORITY_CHANGED = "member_authority_changed"
    MEMBER_INVITED = "member_invited"
    MEMBER_ACCEPTED = "member_accepted"
    MEMBER_DEACTIVATED = "member_deactivated"
    MEMBER_REACTIVATED = "member_reactivated"
    MEMBER_REMOVED = "member_removed"
    TEAM_SYNCED = "team_synced"
    TEAM_ACCESS_GRANTED = "team_access_granted"
    TEAM_ACCESS_REVOKED = "team_access_revoked"
    CONTENT_DEFAULTS_CHANGED = "content_defaults_changed"
    CONTENT_OVERRIDE_CHANGED = "content_override_changed"


class AuditLogResponse(BaseModel):
    id: str
    account_id: Optional[str] = None
    project_id: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
