"""Tests for teams, team project access and team sync."""

import pytest

from app.config.permissions_config import ModuleKey
from app.core.errors import AuthorityError, ConflictError, ValidationError
from app.modules.accessors.schemas import AccessorCreate, AccessorType
from app.modules.accessors.service import AccessorService
from app.modules.members.lifecycle import MemberStatus
from app.modules.members.service import MemberService
from app.modules.roles.schemas import ModuleGrant, RoleCreate
from app.modules.roles.service import RoleService
from app.modules.teams.schemas import TeamCreate, TeamMemberAdd, TeamRole
from app.modules.teams.service import TeamService
from tests.conftest import OWNER_ID, PROJECT_ID
from tests.fakes import seed_profile

ADMIN = "account-admin"
MATE = "account-mate"


@pytest.fixture
def service(store):
    return TeamService(store)


@pytest.fixture
def team(service, store):
    """Subcontractor team with an admin and one teammate, both with profiles."""
    seed_profile(store, ADMIN, "chef@dach-meier.de", "Karl Meier", "Dach Meier GmbH")
    seed_profile(store, MATE, "geselle@dach-meier.de", "Paul Lenz")
    team = service.create_team(TeamCreate(name="Dach Meier"), ADMIN)
    service.add_team_member(team.id, TeamMemberAdd(account_id=MATE))
    return team


@pytest.fixture
def role(store):
    roles = RoleService(store)
    role = roles.create_role(OWNER_ID, RoleCreate(
        name="Roofer",
        grants=[ModuleGrant(module_key=ModuleKey.DEFECTS, can_view=True, can_create=True)]
    ))
    roles.set_project_roles(PROJECT_ID, [role.id])
    return role


class TestTeams:
    """Team management."""

    def test_creator_is_team_admin(self, service, team):
        assert service.is_team_admin(team.id, ADMIN)
        assert not service.is_team_admin(team.id, MATE)

    def test_account_belongs_to_one_team(self, service, team):
        with pytest.raises(ConflictError):
            service.create_team(TeamCreate(name="Second"), MATE)
        other = service.create_team(TeamCreate(name="Other"), "account-x")
        with pytest.raises(ConflictError):
            service.add_team_member(other.id, TeamMemberAdd(account_id=MATE, role=TeamRole.MEMBER))

    def test_remove_team_member(self, service, team):
        assert service.remove_team_member(team.id, MATE) is True
        assert service.remove_team_member(team.id, MATE) is False

    def test_grant_access_is_idempotent(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id, OWNER_ID)
        service.grant_project_access(PROJECT_ID, team.id, OWNER_ID)
        assert len(store.rows("team_project_access")) == 1
        assert service.has_project_access(PROJECT_ID, team.id)

    def test_revoke_access(self, service, team):
        service.grant_project_access(PROJECT_ID, team.id)
        assert service.revoke_project_access(PROJECT_ID, team.id) is True
        assert service.list_project_teams(PROJECT_ID) == []


class TestTeamSync:
    """Bulk onboarding of teammates as active members."""

    def test_sync_adds_active_members_immediately(self, service, store, team, role):
        service.grant_project_access(PROJECT_ID, team.id, OWNER_ID)
        response = service.sync_team_to_project(ADMIN, team.id, PROJECT_ID, role_id=role.id)
        assert len(response.added) == 2
        assert response.failed == {}

        members = MemberService(store).list_members(PROJECT_ID)
        assert {m.status for m in members} == {MemberStatus.ACTIVE}
        assert all(m.team_id == team.id for m in members)
        assert all(m.role_id == role.id for m in members)
        assert all(m.invited_at is None and m.accepted_at is not None for m in members)
        assert store.rpc_calls == []

    def test_sync_creates_linked_subcontractor_accessors(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id)
        service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        accessors = store.rows("accessors")
        assert {a["registered_account_id"] for a in accessors} == {ADMIN, MATE}
        assert all(a["owner_account_id"] == OWNER_ID for a in accessors)
        assert all(a["accessor_type"] == AccessorType.SUBCONTRACTOR.value for a in accessors)
        mate = next(a for a in accessors if a["registered_account_id"] == MATE)
        assert mate["company"] == "Dach Meier"

    def test_sync_reuses_accessor_with_same_email(self, service, store, team):
        existing = AccessorService(store).create_accessor(OWNER_ID, AccessorCreate(email="geselle@dach-meier.de"))
        service.grant_project_access(PROJECT_ID, team.id)
        service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        assert len(store.rows("accessors")) == 2
        assert AccessorService(store).get_accessor(existing.id).registered_account_id == MATE

    def test_sync_skips_existing_members(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id)
        first = service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        second = service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        assert len(first.added) == 2
        assert second.added == []
        assert sorted(second.skipped) == sorted([ADMIN, MATE])

    def test_sync_restricted_to_selected_accounts(self, service, team):
        service.grant_project_access(PROJECT_ID, team.id)
        response = service.sync_team_to_project(ADMIN, team.id, PROJECT_ID, account_ids=[MATE])
        assert len(response.added) == 1

    def test_only_team_admin_can_sync(self, service, team):
        service.grant_project_access(PROJECT_ID, team.id)
        with pytest.raises(AuthorityError):
            service.sync_team_to_project(MATE, team.id, PROJECT_ID)

    def test_team_needs_project_access(self, service, team):
        with pytest.raises(AuthorityError):
            service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)

    def test_role_must_be_whitelisted(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id)
        unlisted = RoleService(store).create_role(OWNER_ID, RoleCreate(name="Unlisted"))
        with pytest.raises(ValidationError):
            service.sync_team_to_project(ADMIN, team.id, PROJECT_ID, role_id=unlisted.id)

    def test_partial_failure_is_reported(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id)
        store.deny_writes.add("project_members")
        response = service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        assert response.added == []
        assert set(response.failed) == {ADMIN, MATE}

    def test_sync_writes_audit_entry(self, service, store, team):
        service.grant_project_access(PROJECT_ID, team.id)
        service.sync_team_to_project(ADMIN, team.id, PROJECT_ID)
        actions = [e["action"] for e in store.rows("permission_audit_log")]
        assert actions == ["team_access_granted", "team_synced"]

    def test_owner_sync_without_team_access_loads_project_once(self, service, store):
        seed_profile(store, "account-helper", "helfer@bau-vogt.de", "Tim Roth")
        own = service.create_team(TeamCreate(name="Bau Vogt"), OWNER_ID)
        service.add_team_member(own.id, TeamMemberAdd(account_id="account-helper"))
        store.calls.clear()

        response = service.sync_team_to_project(OWNER_ID, own.id, PROJECT_ID)
        assert len(response.added) == 1
        assert response.skipped == [OWNER_ID]
        assert store.count_calls("projects", "select") == 1
