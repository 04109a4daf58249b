import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from supabase import Client

from app.core.errors import (
    AuthorityError, ConflictError, NotFoundError, PermissionCoreError, ValidationError
)
from app.database.supabase_client import store_call, rows, require_rows
from app.modules.accessors.service import AccessorService
from app.modules.accessors.schemas import AccessorResponse
from app.modules.audit.schemas import AuditAction
from app.modules.audit.service import AuditService
from app.modules.members.lifecycle import MemberEvent, MemberStatus, next_status
from app.modules.members.notifier import InvitationNotifier
from app.modules.members.schemas import (
    BulkInviteResponse, CustomAuthority, InviteResponse, MemberResponse,
    NoAuthority, RoleAuthority
)
from app.modules.roles.schemas import ModuleGrant, normalize_grants
from app.modules.roles.service import RoleService

logger = logging.getLogger(__name__)

_GRANT_COLUMNS = "module_key, can_view, can_create, can_edit, can_delete"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemberService:
    def __init__(self, supabase: Client, notifier: Optional[InvitationNotifier] = None):
        self.supabase = supabase
        self.notifier = notifier or InvitationNotifier(supabase)
        self.accessors = AccessorService(supabase)
        self.roles = RoleService(supabase)
        self.audit = AuditService(supabase)

    # Reads

    def get_member(self, member_id: str) -> MemberResponse:
        """Get member with its custom grants"""
        with store_call("Load member"):
            result = self.supabase.table("project_members")\
                .select("*")\
                .eq("id", member_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        if not data:
            raise NotFoundError(f"Project member {member_id} not found")
        return self._with_grants(data)[0]

    def get_project_member(self, project_id: str, member_id: str) -> MemberResponse:
        member = self.get_member(member_id)
        if member.project_id != project_id:
            raise NotFoundError(f"Project member {member_id} not found in project {project_id}")
        return member

    def list_members(self, project_id: str, status: Optional[MemberStatus] = None) -> List[MemberResponse]:
        """Members of a project, optionally filtered by status"""
        with store_call("List members"):
            query = self.supabase.table("project_members")\
                .select("*")\
                .eq("project_id", project_id)
            if status is not None:
                query = query.eq("status", MemberStatus(status).value)
            result = query.order("created_at").execute()
        return self._with_grants(rows(result))

    def find_members_for_account(self, project_id: str, account_id: str) -> List[MemberResponse]:
        """Member rows of a project linked to an account directly or through an accessor"""
        with store_call("Look up member by account"):
            direct = self.supabase.table("project_members")\
                .select("*")\
                .eq("project_id", project_id)\
                .eq("account_id", account_id)\
                .execute()
        found = {row["id"]: row for row in rows(direct)}

        accessor_ids = self.accessors.ids_for_registered_account(account_id)
        if accessor_ids:
            with store_call("Look up member by accessor"):
                linked = self.supabase.table("project_members")\
                    .select("*")\
                    .eq("project_id", project_id)\
                    .in_("accessor_id", accessor_ids)\
                    .execute()
            for row in rows(linked):
                found.setdefault(row["id"], row)
        return self._with_grants(list(found.values()))

    def get_custom_grants(self, member_ids: List[str]) -> Dict[str, List[ModuleGrant]]:
        if not member_ids:
            return {}
        with store_call("Load member grants"):
            result = self.supabase.table("project_member_permissions")\
                .select("project_member_id, " + _GRANT_COLUMNS)\
                .in_("project_member_id", member_ids)\
                .execute()
        grants: Dict[str, List[ModuleGrant]] = {member_id: [] for member_id in member_ids}
        for row in rows(result):
            member_id = row.pop("project_member_id")
            grants.setdefault(member_id, []).append(ModuleGrant(**row))
        return grants

    # On-ramps

    def add_member(self, project_id: str, accessor_id: str, authority=None, acting_account_id: Optional[str] = None) -> MemberResponse:
        """Direct add by a project admin. The member starts 'open' and must be invited."""
        authority = authority or NoAuthority()
        accessor = self.accessors.get_accessor(accessor_id)
        if not accessor.is_active:
            raise ValidationError("Accessor has been deleted")
        self._ensure_not_member(project_id, accessor.id)
        self._validate_authority(project_id, authority)

        member = self._insert_member(project_id, accessor, MemberStatus.OPEN, authority)
        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_ADDED, {
            "member_id": member.id,
            "accessor_id": accessor.id,
            "authority": authority.kind
        })
        logger.info(f"Added member {member.id} (accessor {accessor.id}) to project {project_id} as open")
        return member

    def add_synced_member(self, project_id: str, accessor: AccessorResponse, team_id: str, role_id: Optional[str] = None) -> MemberResponse:
        """Team-sync add: team membership is already a trust relation, so the member is active at once"""
        self._ensure_not_member(project_id, accessor.id)
        authority = RoleAuthority(role_id=role_id) if role_id else NoAuthority()
        member = self._insert_member(
            project_id, accessor, MemberStatus.ACTIVE, authority,
            team_id=team_id, accepted_at=_now()
        )
        logger.info(f"Synced member {member.id} (account {accessor.registered_account_id}) into project {project_id} from team {team_id}")
        return member

    # Authority

    def set_authority(self, project_id: str, member_id: str, authority, acting_account_id: Optional[str] = None) -> MemberResponse:
        """Full replace of the member's authority source"""
        member = self.get_project_member(project_id, member_id)
        self._validate_authority(project_id, authority)

        role_id = authority.role_id if isinstance(authority, RoleAuthority) else None
        with store_call("Update member role"):
            result = self.supabase.table("project_members")\
                .update({"role_id": role_id})\
                .eq("id", member.id)\
                .execute()
        require_rows(result, "Update member role")
        self._replace_custom_grants(member.id, authority.grants if isinstance(authority, CustomAuthority) else [])

        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_AUTHORITY_CHANGED, {
            "member_id": member.id,
            "authority": authority.kind,
            "role_id": role_id
        })
        return self.get_member(member.id)

    # Lifecycle

    def invite(self, project_id: str, member_id: str, acting_account_id: Optional[str] = None) -> InviteResponse:
        """Send (or re-send) the project invitation; 'open' members become 'invited'"""
        member = self.get_project_member(project_id, member_id)
        accessor = self.accessors.get_accessor(member.accessor_id)
        if not accessor.email:
            raise ValidationError("Member has no email address")
        if not member.has_authority:
            raise ValidationError("Assign a role or permissions before inviting")
        if isinstance(member.authority, RoleAuthority):
            self._require_active_role(member.authority.role_id)
        target = next_status(member.status, MemberEvent.INVITE)

        account_id = member.account_id or accessor.registered_account_id
        result = self.notifier.send_invitation(project_id, account_id, accessor.email)

        if target != member.status:
            member = self._transition(member, target, {"invited_at": _now()})

        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_INVITED, {
            "member_id": member.id,
            "email": accessor.email,
            "notification_created": result.notification_created
        })
        if result.notification_created:
            message = f"Invitation and notification sent to {accessor.email}"
        else:
            message = f"Invitation prepared for {accessor.email} (no account yet)"
        logger.info(f"Invited member {member.id} of project {project_id}: {message}")
        return InviteResponse(member=member, notification_created=result.notification_created, message=message)

    def invite_all_open(self, project_id: str, acting_account_id: Optional[str] = None) -> BulkInviteResponse:
        """Invite every open member that has authority. Earlier invites stay sent if a later one fails."""
        response = BulkInviteResponse()
        for member in self.list_members(project_id, MemberStatus.OPEN):
            if not member.has_authority:
                response.skipped.append(member.id)
                continue
            try:
                response.invited.append(self.invite(project_id, member.id, acting_account_id))
            except PermissionCoreError as e:
                logger.warning(f"Invite of member {member.id} failed: {e.detail}")
                response.failed[member.id] = e.detail
        return response

    def _require_active_role(self, role_id: str):
        try:
            role = self.roles.get_role(role_id)
        except NotFoundError:
            raise ValidationError("The member's role no longer exists")
        if not role.is_active:
            raise ValidationError("The member's role has been deleted")

    def accept_invitation(self, member_id: str, account_id: str, email: Optional[str] = None) -> MemberResponse:
        """
        The invited person accepts; binds the member row to their account.
        Without a linked account the caller's email must match the invited address.
        """
        member = self.get_member(member_id)
        accessor = self.accessors.get_accessor(member.accessor_id)
        linked = member.account_id or accessor.registered_account_id
        if linked:
            if linked != account_id:
                raise AuthorityError("This invitation belongs to another account")
        elif not email or not accessor.email or email.strip().lower() != accessor.email.strip().lower():
            logger.warning(f"Account {account_id} tried to accept invitation {member_id} for another address")
            raise AuthorityError("This invitation was sent to another email address")
        target = next_status(member.status, MemberEvent.ACCEPT)

        member = self._transition(member, target, {"accepted_at": _now(), "account_id": account_id})
        if not accessor.registered_account_id:
            self.accessors.link_registered_account(accessor.id, account_id)

        self.audit.log_action(account_id, member.project_id, AuditAction.MEMBER_ACCEPTED, {"member_id": member.id})
        return member

    def set_inactive(self, project_id: str, member_id: str, acting_account_id: Optional[str] = None) -> MemberResponse:
        """Suspend; grants are kept but carry no effect while inactive"""
        member = self.get_project_member(project_id, member_id)
        member = self._transition(member, next_status(member.status, MemberEvent.DEACTIVATE))
        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_DEACTIVATED, {"member_id": member.id})
        return member

    def reactivate(self, project_id: str, member_id: str, acting_account_id: Optional[str] = None) -> MemberResponse:
        member = self.get_project_member(project_id, member_id)
        member = self._transition(member, next_status(member.status, MemberEvent.REACTIVATE))
        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_REACTIVATED, {"member_id": member.id})
        return member

    def remove(self, project_id: str, member_id: str, acting_account_id: Optional[str] = None) -> bool:
        """Hard delete. Custom permission rows go with it through the FK cascade, in the same statement."""
        member = self.get_project_member(project_id, member_id)
        with store_call("Remove member"):
            result = self.supabase.table("project_members")\
                .delete()\
                .eq("id", member.id)\
                .execute()
        require_rows(result, "Remove member")
        self.audit.log_action(acting_account_id, project_id, AuditAction.MEMBER_REMOVED, {
            "member_id": member.id,
            "accessor_id": member.accessor_id
        })
        logger.info(f"Removed member {member.id} from project {project_id}")
        return True

    # Internals

    def _with_grants(self, member_rows: List[dict]) -> List[MemberResponse]:
        grants = self.get_custom_grants([row["id"] for row in member_rows])
        return [MemberResponse(**row, custom_grants=grants.get(row["id"], [])) for row in member_rows]

    def _ensure_not_member(self, project_id: str, accessor_id: str):
        with store_call("Check existing member"):
            result = self.supabase.table("project_members")\
                .select("id")\
                .eq("project_id", project_id)\
                .eq("accessor_id", accessor_id)\
                .limit(1)\
                .execute()
        if rows(result):
            raise ConflictError("This person is already a member of the project")

    def _validate_authority(self, project_id: str, authority):
        if isinstance(authority, RoleAuthority):
            self.roles.ensure_assignable(project_id, authority.role_id)

    def _insert_member(
        self,
        project_id: str,
        accessor: AccessorResponse,
        status: MemberStatus,
        authority,
        team_id: Optional[str] = None,
        accepted_at: Optional[str] = None,
    ) -> MemberResponse:
        with store_call("Add member"):
            result = self.supabase.table("project_members").insert({
                "project_id": project_id,
                "accessor_id": accessor.id,
                "account_id": accessor.registered_account_id,
                "member_type": accessor.accessor_type.value,
                "role_id": authority.role_id if isinstance(authority, RoleAuthority) else None,
                "status": status.value,
                "team_id": team_id,
                "accepted_at": accepted_at
            }).execute()
        row = require_rows(result, "Add member")[0]
        grants = []
        if isinstance(authority, CustomAuthority):
            grants = self._replace_custom_grants(row["id"], authority.grants)
        return MemberResponse(**row, custom_grants=grants)

    def _replace_custom_grants(self, member_id: str, grants: List[ModuleGrant]) -> List[ModuleGrant]:
        grants = normalize_grants(grants)
        with store_call("Replace member grants"):
            self.supabase.table("project_member_permissions")\
                .delete()\
                .eq("project_member_id", member_id)\
                .execute()
            if grants:
                self.supabase.table("project_member_permissions").insert([
                    {"project_member_id": member_id, **grant.to_row()} for grant in grants
                ]).execute()
        return grants

    def _transition(self, member: MemberResponse, target: MemberStatus, extra: Optional[dict] = None) -> MemberResponse:
        update_data = {"status": target.value}
        update_data.update(extra or {})
        with store_call("Update member status"):
            result = self.supabase.table("project_members")\
                .update(update_data)\
                .eq("id", member.id)\
                .execute()
        row = require_rows(result, "Update member status")[0]
        return MemberResponse(**row, custom_grants=member.custom_grants)
