"""Tests for project member management and the invitation lifecycle."""

import pytest

from app.config.permissions_config import ModuleKey
from app.core.errors import AuthorityError, ConflictError, NotFoundError, TransportError, ValidationError
from app.modules.accessors.schemas import AccessorCreate
from app.modules.accessors.service import AccessorService
from app.modules.members.lifecycle import MemberStatus
from app.modules.members.schemas import CustomAuthority, NoAuthority, RoleAuthority
from app.modules.members.service import MemberService
from app.modules.roles.schemas import ModuleGrant, RoleCreate
from app.modules.roles.service import RoleService
from tests.conftest import OWNER_ID, PROJECT_ID
from tests.fakes import invitation_handler


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def service(store):
    return MemberService(store)


@pytest.fixture
def accessors(store):
    return AccessorService(store)


@pytest.fixture
def role(store):
    """An editor role whitelisted for the project."""
    roles = RoleService(store)
    role = roles.create_role(OWNER_ID, RoleCreate(
        name="Editor",
        grants=[ModuleGrant(module_key=ModuleKey.TASKS, can_view=True, can_create=True, can_edit=True)]
    ))
    roles.set_project_roles(PROJECT_ID, [role.id])
    return role


@pytest.fixture
def guest(accessors):
    """Accessor without a platform account."""
    return accessors.create_accessor(OWNER_ID, AccessorCreate(email="Anna@Schmidt-Bau.de", name="Anna"))


@pytest.fixture
def registered(accessors):
    """Accessor linked to a platform account."""
    return accessors.create_accessor(OWNER_ID, AccessorCreate(
        email="bernd@elektro-weber.de", name="Bernd", registered_account_id="account-bernd"
    ))


def custom_tasks():
    return CustomAuthority(grants=[ModuleGrant(module_key=ModuleKey.TASKS, can_view=True)])


# =============================================================================
# Adding members
# =============================================================================


class TestAddMember:
    """Direct add by a project admin."""

    def test_added_member_is_open(self, service, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id), OWNER_ID)
        assert member.status == MemberStatus.OPEN
        assert member.role_id == role.id
        assert member.member_type == "other"

    def test_account_copied_from_accessor(self, service, registered):
        member = service.add_member(PROJECT_ID, registered.id)
        assert member.account_id == "account-bernd"
        assert isinstance(member.authority, NoAuthority)

    def test_duplicate_member_conflicts(self, service, guest):
        service.add_member(PROJECT_ID, guest.id)
        with pytest.raises(ConflictError):
            service.add_member(PROJECT_ID, guest.id)

    def test_deleted_accessor_rejected(self, service, accessors, guest):
        accessors.delete_accessor(guest.id, OWNER_ID)
        with pytest.raises(ValidationError):
            service.add_member(PROJECT_ID, guest.id)

    def test_role_outside_whitelist_rejected(self, service, store, guest):
        other = RoleService(store).create_role(OWNER_ID, RoleCreate(name="Unlisted"))
        with pytest.raises(ValidationError):
            service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=other.id))
        assert store.rows("project_members") == []

    def test_custom_grants_stored(self, service, store, guest):
        member = service.add_member(PROJECT_ID, guest.id, custom_tasks())
        assert [g.module_key for g in member.custom_grants] == [ModuleKey.TASKS]
        assert len(store.rows("project_member_permissions")) == 1

    def test_add_writes_audit_entry(self, service, store, guest):
        service.add_member(PROJECT_ID, guest.id, acting_account_id=OWNER_ID)
        entries = store.rows("permission_audit_log")
        assert [e["action"] for e in entries] == ["member_added"]

    def test_audit_failure_does_not_fail_add(self, service, store, guest):
        store.fail("permission_audit_log")
        member = service.add_member(PROJECT_ID, guest.id)
        assert member.status == MemberStatus.OPEN


# =============================================================================
# Authority
# =============================================================================


class TestSetAuthority:
    """Role and custom grants are mutually exclusive."""

    def test_role_clears_custom_grants(self, service, store, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, custom_tasks())
        updated = service.set_authority(PROJECT_ID, member.id, RoleAuthority(role_id=role.id))
        assert updated.role_id == role.id
        assert updated.custom_grants == []
        assert store.rows("project_member_permissions") == []

    def test_custom_clears_role(self, service, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        updated = service.set_authority(PROJECT_ID, member.id, custom_tasks())
        assert updated.role_id is None
        assert isinstance(updated.authority, CustomAuthority)

    def test_none_clears_everything(self, service, guest):
        member = service.add_member(PROJECT_ID, guest.id, custom_tasks())
        updated = service.set_authority(PROJECT_ID, member.id, NoAuthority())
        assert not updated.has_authority

    def test_member_of_other_project_not_found(self, service, store, guest):
        member = service.add_member(PROJECT_ID, guest.id)
        with pytest.raises(NotFoundError):
            service.set_authority("project-2", member.id, NoAuthority())


# =============================================================================
# Invitations
# =============================================================================


class TestInvite:
    """Invitation guard, delivery and transitions."""

    def test_invite_without_account_sends_no_notification(self, service, store, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        response = service.invite(PROJECT_ID, member.id)
        assert response.member.status == MemberStatus.INVITED
        assert response.member.invited_at is not None
        assert response.notification_created is False
        assert store.rpc_calls == [("send_project_invitation", {
            "p_project_id": PROJECT_ID,
            "p_user_id": None,
            "p_email": "anna@schmidt-bau.de"
        })]

    def test_invite_registered_account_creates_notification(self, service, registered, role):
        member = service.add_member(PROJECT_ID, registered.id, RoleAuthority(role_id=role.id))
        response = service.invite(PROJECT_ID, member.id)
        assert response.notification_created is True
        assert "notification" in response.message

    def test_invite_requires_authority(self, service, store, guest):
        member = service.add_member(PROJECT_ID, guest.id)
        with pytest.raises(ValidationError):
            service.invite(PROJECT_ID, member.id)
        assert store.rpc_calls == []
        assert service.get_member(member.id).status == MemberStatus.OPEN

    def test_invite_with_deleted_role_rejected(self, service, store, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        RoleService(store).delete_role(role.id, OWNER_ID)
        with pytest.raises(ValidationError):
            service.invite(PROJECT_ID, member.id)
        assert store.rpc_calls == []
        assert service.get_member(member.id).status == MemberStatus.OPEN

    def test_invite_all_open_reports_deleted_role(self, service, store, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        RoleService(store).delete_role(role.id, OWNER_ID)
        response = service.invite_all_open(PROJECT_ID, OWNER_ID)
        assert response.invited == []
        assert list(response.failed) == [member.id]
        assert store.rpc_calls == []

    def test_invite_requires_email(self, service, store, role):
        accessor = store.add("accessors", {"owner_account_id": OWNER_ID, "name": "No Mail", "is_active": True})
        member = service.add_member(PROJECT_ID, accessor["id"], RoleAuthority(role_id=role.id))
        with pytest.raises(ValidationError):
            service.invite(PROJECT_ID, member.id)
        assert store.rpc_calls == []

    def test_reinvite_keeps_status_and_resends(self, service, store, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        service.invite(PROJECT_ID, member.id)
        response = service.invite(PROJECT_ID, member.id)
        assert response.member.status == MemberStatus.INVITED
        assert len(store.rpc_calls) == 2

    def test_inactive_member_cannot_be_invited(self, service, store, registered, role):
        member = service.add_member(PROJECT_ID, registered.id, RoleAuthority(role_id=role.id))
        service.invite(PROJECT_ID, member.id)
        service.accept_invitation(member.id, "account-bernd")
        service.set_inactive(PROJECT_ID, member.id)
        with pytest.raises(ValidationError):
            service.invite(PROJECT_ID, member.id)
        assert len(store.rpc_calls) == 1

    def test_notifier_failure_leaves_member_open(self, service, store, guest, role):
        store.rpc_handlers["send_project_invitation"] = invitation_handler(success=False, error="mail server down")
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        with pytest.raises(TransportError) as exc_info:
            service.invite(PROJECT_ID, member.id)
        assert exc_info.value.status_code == 503
        assert "mail server down" in exc_info.value.detail
        assert service.get_member(member.id).status == MemberStatus.OPEN

    def test_notifier_unreachable(self, service, store, guest, role):
        del store.rpc_handlers["send_project_invitation"]
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        with pytest.raises(TransportError):
            service.invite(PROJECT_ID, member.id)

    def test_invite_all_open(self, service, store, accessors, guest, registered, role):
        with_role = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        without = service.add_member(PROJECT_ID, registered.id)
        response = service.invite_all_open(PROJECT_ID, OWNER_ID)
        assert [i.member.id for i in response.invited] == [with_role.id]
        assert response.skipped == [without.id]
        assert response.failed == {}

    def test_invite_all_open_collects_failures(self, service, store, guest, role):
        store.rpc_handlers["send_project_invitation"] = invitation_handler(success=False, error="quota")
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        response = service.invite_all_open(PROJECT_ID)
        assert response.invited == []
        assert response.failed == {member.id: "quota"}


class TestAcceptInvitation:
    """Invited members become active when they accept."""

    def test_accept_activates_and_links_account(self, service, accessors, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        service.invite(PROJECT_ID, member.id)
        accepted = service.accept_invitation(member.id, "account-anna", "ANNA@schmidt-bau.de")
        assert accepted.status == MemberStatus.ACTIVE
        assert accepted.account_id == "account-anna"
        assert accepted.accepted_at is not None
        assert accessors.get_accessor(guest.id).registered_account_id == "account-anna"

    def test_accept_by_other_account_rejected(self, service, registered, role):
        member = service.add_member(PROJECT_ID, registered.id, RoleAuthority(role_id=role.id))
        service.invite(PROJECT_ID, member.id)
        with pytest.raises(AuthorityError):
            service.accept_invitation(member.id, "account-mallory")

    def test_accept_unlinked_invitation_requires_matching_email(self, service, store, accessors, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        service.invite(PROJECT_ID, member.id)
        with pytest.raises(AuthorityError):
            service.accept_invitation(member.id, "account-mallory", "mallory@example.com")
        with pytest.raises(AuthorityError):
            service.accept_invitation(member.id, "account-mallory")

        unchanged = service.get_member(member.id)
        assert unchanged.status == MemberStatus.INVITED
        assert unchanged.account_id is None
        assert accessors.get_accessor(guest.id).registered_account_id is None
        assert store.rows("permission_audit_log")[-1]["action"] == "member_invited"

    def test_open_member_cannot_accept(self, service, guest, role):
        member = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        with pytest.raises(ValidationError):
            service.accept_invitation(member.id, "account-anna", "anna@schmidt-bau.de")


# =============================================================================
# Suspension and removal
# =============================================================================


class TestSuspendAndRemove:

    def test_deactivate_and_reactivate_keep_grants(self, service, registered):
        member = service.add_member(PROJECT_ID, registered.id, custom_tasks())
        service.invite(PROJECT_ID, member.id)
        service.accept_invitation(member.id, "account-bernd")
        inactive = service.set_inactive(PROJECT_ID, member.id)
        assert inactive.status == MemberStatus.INACTIVE
        active = service.reactivate(PROJECT_ID, member.id)
        assert active.status == MemberStatus.ACTIVE
        assert [g.module_key for g in service.get_member(member.id).custom_grants] == [ModuleKey.TASKS]

    def test_open_member_cannot_be_deactivated(self, service, guest):
        member = service.add_member(PROJECT_ID, guest.id)
        with pytest.raises(ValidationError):
            service.set_inactive(PROJECT_ID, member.id)

    def test_remove_deletes_member_and_grants_in_one_statement(self, service, store, guest):
        member = service.add_member(PROJECT_ID, guest.id, custom_tasks())
        assert service.remove(PROJECT_ID, member.id) is True
        assert store.rows("project_members") == []
        assert store.rows("project_member_permissions") == []
        assert store.count_calls("project_members", "delete") == 1
        assert store.count_calls("project_member_permissions", "delete") == 0

    def test_remove_refused_by_store(self, service, store, guest):
        member = service.add_member(PROJECT_ID, guest.id)
        store.deny_writes.add("project_members")
        with pytest.raises(AuthorityError):
            service.remove(PROJECT_ID, member.id)


class TestLookup:

    def test_find_members_through_accessor_link(self, service, accessors, guest):
        member = service.add_member(PROJECT_ID, guest.id)
        accessors.link_registered_account(guest.id, "account-anna")
        found = service.find_members_for_account(PROJECT_ID, "account-anna")
        assert [m.id for m in found] == [member.id]

    def test_list_members_by_status(self, service, guest, registered, role):
        invited = service.add_member(PROJECT_ID, guest.id, RoleAuthority(role_id=role.id))
        service.add_member(PROJECT_ID, registered.id)
        service.invite(PROJECT_ID, invited.id)
        assert [m.id for m in service.list_members(PROJECT_ID, MemberStatus.INVITED)] == [invited.id]
        assert len(service.list_members(PROJECT_ID)) == 2
