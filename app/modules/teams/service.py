import logging
from typing import List, Optional

from supabase import Client

from app.core.errors import (
    AuthorityError, ConflictError, NotFoundError, PermissionCoreError, ValidationError
)
from app.database.supabase_client import store_call, rows, require_rows
from app.modules.accessors.schemas import AccessorType
from app.modules.accessors.service import AccessorService
from app.modules.audit.schemas import AuditAction
from app.modules.audit.service import AuditService
from app.modules.members.lifecycle import is_effective
from app.modules.members.service import MemberService
from app.modules.projects.schemas import ProjectRef
from app.modules.projects.service import ProjectService
from app.modules.roles.service import RoleService
from app.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamMemberAdd, TeamMemberResponse,
    TeamProjectAccessResponse, TeamRole, TeamSyncResponse
)

logger = logging.getLogger(__name__)


class TeamService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.accessors = AccessorService(supabase)
        self.members = MemberService(supabase)
        self.projects = ProjectService(supabase)
        self.roles = RoleService(supabase)
        self.audit = AuditService(supabase)

    # Teams

    def create_team(self, team_data: TeamCreate, account_id: str) -> TeamResponse:
        """Create a team; the creator becomes its team_admin"""
        if not team_data.name.strip():
            raise ValidationError("Team name must not be empty")
        if self.get_membership_of_account(account_id):
            raise ConflictError("You already belong to a team")

        with store_call("Create team"):
            result = self.supabase.table("teams").insert({
                "name": team_data.name.strip(),
                "description": team_data.description,
                "created_by": account_id,
                "is_active": True
            }).execute()
        team = TeamResponse(**require_rows(result, "Create team")[0])

        with store_call("Add team admin"):
            self.supabase.table("team_members").insert({
                "team_id": team.id,
                "account_id": account_id,
                "role": TeamRole.TEAM_ADMIN.value
            }).execute()
        logger.info(f"Created team {team.id} ({team.name})")
        return team

    def get_team(self, team_id: str) -> TeamResponse:
        """Get team by ID"""
        with store_call("Load team"):
            result = self.supabase.table("teams")\
                .select("*")\
                .eq("id", team_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        if not data:
            raise NotFoundError(f"Team {team_id} not found")
        return TeamResponse(**data[0])

    def update_team(self, team_id: str, team_data: TeamUpdate) -> TeamResponse:
        update_data = team_data.model_dump(exclude_none=True)
        if not update_data:
            return self.get_team(team_id)
        with store_call("Update team"):
            result = self.supabase.table("teams")\
                .update(update_data)\
                .eq("id", team_id)\
                .execute()
        return TeamResponse(**require_rows(result, "Update team")[0])

    def delete_team(self, team_id: str) -> TeamResponse:
        """Soft delete. Existing project members synced from the team stay."""
        with store_call("Delete team"):
            result = self.supabase.table("teams")\
                .update({"is_active": False})\
                .eq("id", team_id)\
                .execute()
        logger.info(f"Deactivated team {team_id}")
        return TeamResponse(**require_rows(result, "Delete team")[0])

    # Team members

    def list_team_members(self, team_id: str) -> List[TeamMemberResponse]:
        with store_call("List team members"):
            result = self.supabase.table("team_members")\
                .select("team_id, account_id, role, joined_at")\
                .eq("team_id", team_id)\
                .order("joined_at")\
                .execute()
        return [TeamMemberResponse(**row) for row in rows(result)]

    def get_team_member(self, team_id: str, account_id: str) -> Optional[TeamMemberResponse]:
        with store_call("Load team member"):
            result = self.supabase.table("team_members")\
                .select("team_id, account_id, role, joined_at")\
                .eq("team_id", team_id)\
                .eq("account_id", account_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        return TeamMemberResponse(**data[0]) if data else None

    def get_membership_of_account(self, account_id: str) -> Optional[TeamMemberResponse]:
        with store_call("Load team membership"):
            result = self.supabase.table("team_members")\
                .select("team_id, account_id, role, joined_at")\
                .eq("account_id", account_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        return TeamMemberResponse(**data[0]) if data else None

    def add_team_member(self, team_id: str, member_data: TeamMemberAdd) -> TeamMemberResponse:
        self.get_team(team_id)
        existing = self.get_membership_of_account(member_data.account_id)
        if existing:
            if existing.team_id == team_id:
                raise ConflictError("Account is already in this team")
            raise ConflictError("Account already belongs to another team")
        with store_call("Add team member"):
            result = self.supabase.table("team_members").insert({
                "team_id": team_id,
                "account_id": member_data.account_id,
                "role": member_data.role.value
            }).execute()
        return TeamMemberResponse(**require_rows(result, "Add team member")[0])

    def remove_team_member(self, team_id: str, account_id: str) -> bool:
        with store_call("Remove team member"):
            result = self.supabase.table("team_members")\
                .delete()\
                .eq("team_id", team_id)\
                .eq("account_id", account_id)\
                .execute()
        return len(rows(result)) > 0

    def is_team_admin(self, team_id: str, account_id: str) -> bool:
        member = self.get_team_member(team_id, account_id)
        return member is not None and member.role == TeamRole.TEAM_ADMIN

    # Project access

    def list_project_teams(self, project_id: str) -> List[TeamProjectAccessResponse]:
        with store_call("List project teams"):
            result = self.supabase.table("team_project_access")\
                .select("project_id, team_id")\
                .eq("project_id", project_id)\
                .execute()
        return [TeamProjectAccessResponse(**row) for row in rows(result)]

    def has_project_access(self, project_id: str, team_id: str) -> bool:
        return any(access.team_id == team_id for access in self.list_project_teams(project_id))

    def grant_project_access(self, project_id: str, team_id: str, acting_account_id: Optional[str] = None) -> TeamProjectAccessResponse:
        team = self.get_team(team_id)
        if not team.is_active:
            raise ValidationError("Team has been deleted")
        if self.has_project_access(project_id, team_id):
            return TeamProjectAccessResponse(project_id=project_id, team_id=team_id)
        with store_call("Grant team access"):
            result = self.supabase.table("team_project_access").insert({
                "project_id": project_id,
                "team_id": team_id
            }).execute()
        require_rows(result, "Grant team access")
        self.audit.log_action(acting_account_id, project_id, AuditAction.TEAM_ACCESS_GRANTED, {"team_id": team_id})
        return TeamProjectAccessResponse(project_id=project_id, team_id=team_id)

    def revoke_project_access(self, project_id: str, team_id: str, acting_account_id: Optional[str] = None) -> bool:
        """Synced members are not removed; revoking only stops future syncs"""
        with store_call("Revoke team access"):
            result = self.supabase.table("team_project_access")\
                .delete()\
                .eq("project_id", project_id)\
                .eq("team_id", team_id)\
                .execute()
        removed = len(rows(result)) > 0
        if removed:
            self.audit.log_action(acting_account_id, project_id, AuditAction.TEAM_ACCESS_REVOKED, {"team_id": team_id})
        return removed

    # Sync

    def sync_team_to_project(
        self,
        admin_account_id: str,
        team_id: str,
        project_id: str,
        role_id: Optional[str] = None,
        account_ids: Optional[List[str]] = None,
        allow_all: bool = False,
    ) -> TeamSyncResponse:
        """
        Bulk-add teammates to a project as active members, skipping the invitation.

        The caller must be team_admin of the team, and the team must have access to
        the project or the caller must already be an active member of it. Each
        teammate is added independently: a failure is reported and the rest go on.
        """
        team = self.get_team(team_id)
        if not team.is_active:
            raise ValidationError("Team has been deleted")
        if not allow_all and not self.is_team_admin(team_id, admin_account_id):
            raise AuthorityError("Only a team admin can sync the team into a project")
        project = self.projects.get_project(project_id)
        if not allow_all and not self._can_reach_project(admin_account_id, team_id, project):
            raise AuthorityError("The team has no access to this project")
        if role_id:
            self.roles.ensure_assignable(project_id, role_id)

        teammates = self.list_team_members(team_id)
        if account_ids is not None:
            wanted = set(account_ids)
            teammates = [t for t in teammates if t.account_id in wanted]
        accessor_type = AccessorType.EMPLOYEE \
            if self.get_team_member(team_id, project.owner_account_id) else AccessorType.SUBCONTRACTOR
        profiles = self.projects.get_profiles([t.account_id for t in teammates])

        response = TeamSyncResponse(project_id=project_id, team_id=team_id)
        for teammate in teammates:
            account_id = teammate.account_id
            if account_id == project.owner_account_id or self.members.find_members_for_account(project_id, account_id):
                response.skipped.append(account_id)
                continue
            try:
                profile = profiles.get(account_id)
                accessor = self.accessors.find_by_registered_account(project.owner_account_id, account_id)
                if accessor is None and profile is not None:
                    accessor = self.accessors.find_by_email(project.owner_account_id, profile.email)
                    if accessor is not None and not accessor.registered_account_id:
                        accessor = self.accessors.link_registered_account(accessor.id, account_id)
                if accessor is None:
                    accessor = self.accessors.create_from_profile(
                        project.owner_account_id,
                        account_id,
                        email=profile.email if profile else None,
                        name=profile.full_name if profile else None,
                        company=(profile.company if profile and profile.company else team.name),
                        accessor_type=accessor_type
                    )
                member = self.members.add_synced_member(project_id, accessor, team_id, role_id)
                response.added.append(member.id)
            except PermissionCoreError as e:
                logger.warning(f"Team sync of account {account_id} into project {project_id} failed: {e.detail}")
                response.failed[account_id] = e.detail

        self.audit.log_action(admin_account_id, project_id, AuditAction.TEAM_SYNCED, {
            "team_id": team_id,
            "added": len(response.added),
            "skipped": len(response.skipped),
            "failed": len(response.failed)
        })
        logger.info(
            f"Team {team_id} synced into project {project_id}: "
            f"{len(response.added)} added, {len(response.skipped)} skipped, {len(response.failed)} failed"
        )
        return response

    def _can_reach_project(self, account_id: str, team_id: str, project: ProjectRef) -> bool:
        if self.has_project_access(project.id, team_id):
            return True
        if project.owner_account_id == account_id:
            return True
        return any(is_effective(m.status) for m in self.members.find_members_for_account(project.id, account_id))
