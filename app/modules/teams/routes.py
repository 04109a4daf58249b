from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamMemberAdd, TeamMemberResponse,
    TeamProjectAccessResponse, TeamSyncRequest, TeamSyncResponse
)
from app.modules.teams.service import TeamService
from app.core.dependencies import get_current_user_id, is_super_user, require_project_owner
from app.core.errors import AuthorityError, NotFoundError
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/teams", tags=["teams"])
project_router = APIRouter(prefix="/projects/{project_id}/teams", tags=["teams"])


def get_team_service(supabase: Client = Depends(get_supabase)) -> TeamService:
    return TeamService(supabase)


def _require_team_admin(service: TeamService, team_id: str, user_data: Dict):
    if is_super_user(user_data):
        return
    if not service.is_team_admin(team_id, user_data["id"]):
        raise AuthorityError("Only a team admin can manage this team")


@router.post("", response_model=TeamResponse, status_code=201)
async def create_team(
    team_data: TeamCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    """Create a team; the caller becomes its admin"""
    return service.create_team(team_data, user_data["id"])


@router.get("/mine", response_model=TeamResponse)
async def get_my_team(
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    """The team the caller belongs to"""
    membership = service.get_membership_of_account(user_data["id"])
    if not membership:
        raise NotFoundError("You do not belong to a team")
    return service.get_team(membership.team_id)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    if not is_super_user(user_data) and not service.get_team_member(team_id, user_data["id"]):
        raise AuthorityError("Team not accessible")
    return service.get_team(team_id)


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    team_data: TeamUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    _require_team_admin(service, team_id, user_data)
    return service.update_team(team_id, team_data)


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    """Soft delete a team"""
    _require_team_admin(service, team_id, user_data)
    service.delete_team(team_id)
    return None


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_team_members(
    team_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    if not is_super_user(user_data) and not service.get_team_member(team_id, user_data["id"]):
        raise AuthorityError("Team not accessible")
    return service.list_team_members(team_id)


@router.post("/{team_id}/members", response_model=TeamMemberResponse, status_code=201)
async def add_team_member(
    team_id: str,
    member_data: TeamMemberAdd,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    _require_team_admin(service, team_id, user_data)
    return service.add_team_member(team_id, member_data)


@router.delete("/{team_id}/members/{account_id}", status_code=204)
async def remove_team_member(
    team_id: str,
    account_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    _require_team_admin(service, team_id, user_data)
    if not service.remove_team_member(team_id, account_id):
        raise NotFoundError(f"Account {account_id} is not in team {team_id}")
    return None


@router.post("/{team_id}/projects/{project_id}/sync", response_model=TeamSyncResponse)
async def sync_team_to_project(
    team_id: str,
    project_id: str,
    body: TeamSyncRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: TeamService = Depends(get_team_service)
):
    """Add teammates to the project as active members"""
    return service.sync_team_to_project(
        user_data["id"],
        team_id,
        project_id,
        role_id=body.role_id,
        account_ids=body.account_ids,
        allow_all=is_super_user(user_data)
    )


@project_router.get("", response_model=List[TeamProjectAccessResponse])
async def list_project_teams(
    project_id: str,
    user_data: Dict = Depends(require_project_owner),
    service: TeamService = Depends(get_team_service)
):
    return service.list_project_teams(project_id)


@project_router.post("/{team_id}", response_model=TeamProjectAccessResponse, status_code=201)
async def grant_team_access(
    project_id: str,
    team_id: str,
    user_data: Dict = Depends(require_project_owner),
    service: TeamService = Depends(get_team_service)
):
    """Allow the team's admins to sync the team into this project"""
    return service.grant_project_access(project_id, team_id, user_data["id"])


@project_router.delete("/{team_id}", status_code=204)
async def revoke_team_access(
    project_id: str,
    team_id: str,
    user_data: Dict = Depends(require_project_owner),
    service: TeamService = Depends(get_team_service)
):
    if not service.revoke_project_access(project_id, team_id, user_data["id"]):
        raise NotFoundError(f"Team {team_id} has no access to project {project_id}")
    return None
