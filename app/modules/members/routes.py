from fastapi import APIRouter, Depends
from app.config.permissions_config import ModuleKey, Operation
from app.database.supabase_client import get_supabase
from app.modules.members.lifecycle import MemberStatus
from app.modules.members.locks import invite_lock
from app.modules.members.schemas import (
    MemberCreate, AuthorityUpdate, MemberResponse, InviteResponse, BulkInviteResponse
)
from app.modules.members.service import MemberService
from app.core.dependencies import get_current_user_id, require_project_permission
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/projects/{project_id}/members", tags=["members"])
invitations_router = APIRouter(prefix="/invitations", tags=["members"])

can_view_members = require_project_permission(ModuleKey.PARTICIPANTS, Operation.VIEW)
can_manage_members = require_project_permission(ModuleKey.PARTICIPANTS, Operation.EDIT)


def get_member_service(supabase: Client = Depends(get_supabase)) -> MemberService:
    return MemberService(supabase)


@router.get("", response_model=List[MemberResponse])
async def list_members(
    project_id: str,
    status: Optional[MemberStatus] = None,
    user_data: Dict = Depends(can_view_members),
    service: MemberService = Depends(get_member_service)
):
    """List project members, optionally by status"""
    return service.list_members(project_id, status)


@router.post("", response_model=MemberResponse, status_code=201)
async def add_member(
    project_id: str,
    member_data: MemberCreate,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    """Add an accessor to the project as an open member"""
    return service.add_member(project_id, member_data.accessor_id, member_data.authority, user_data["id"])


@router.post("/invite-open", response_model=BulkInviteResponse)
async def invite_all_open(
    project_id: str,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    """Invite every open member that already has a role or permissions"""
    return service.invite_all_open(project_id, user_data["id"])


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    project_id: str,
    member_id: str,
    user_data: Dict = Depends(can_view_members),
    service: MemberService = Depends(get_member_service)
):
    return service.get_project_member(project_id, member_id)


@router.put("/{member_id}/authority", response_model=MemberResponse)
async def set_authority(
    project_id: str,
    member_id: str,
    body: AuthorityUpdate,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    """Replace the member's role or custom permissions"""
    return service.set_authority(project_id, member_id, body.authority, user_data["id"])


@router.post("/{member_id}/invite", response_model=InviteResponse)
def invite_member(
    project_id: str,
    member_id: str,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    """Send or re-send the project invitation (sync route, served from the threadpool)"""
    with invite_lock(member_id):
        return service.invite(project_id, member_id, user_data["id"])


@router.post("/{member_id}/deactivate", response_model=MemberResponse)
async def deactivate_member(
    project_id: str,
    member_id: str,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    return service.set_inactive(project_id, member_id, user_data["id"])


@router.post("/{member_id}/reactivate", response_model=MemberResponse)
async def reactivate_member(
    project_id: str,
    member_id: str,
    user_data: Dict = Depends(can_manage_members),
    service: MemberService = Depends(get_member_service)
):
    return service.reactivate(project_id, member_id, user_data["id"])


@router.delete("/{member_id}", status_code=204)
async def remove_member(
    project_id: str,
    member_id: str,
    user_data: Dict = Depends(require_project_permission(ModuleKey.PARTICIPANTS, Operation.DELETE)),
    service: MemberService = Depends(get_member_service)
):
    """Remove the member and its custom permissions"""
    service.remove(project_id, member_id, user_data["id"])
    return None


@invitations_router.post("/{member_id}/accept", response_model=MemberResponse)
async def accept_invitation(
    member_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: MemberService = Depends(get_member_service)
):
    """Accept a project invitation as the signed-in account"""
    return service.accept_invitation(member_id, user_data["id"], user_data.get("email"))
