"""Tests for loading access snapshots from the store and answering permission questions."""

import pytest

from app.config.permissions_config import ModuleKey, Operation, Visibility
from app.modules.accessors.schemas import AccessorCreate
from app.modules.accessors.service import AccessorService
from app.modules.members.schemas import RoleAuthority
from app.modules.members.service import MemberService
from app.modules.permissions.resolver import ContentInstance, Viewer
from app.modules.permissions.service import PermissionService
from app.modules.roles.schemas import ModuleGrant, RoleCreate
from app.modules.roles.service import RoleService
from app.modules.visibility.service import VisibilityService
from tests.conftest import OWNER_ID, PROJECT_ID

WORKER = Viewer(account_id="account-worker")


@pytest.fixture
def service(store):
    return PermissionService(store)


@pytest.fixture
def role(store):
    roles = RoleService(store)
    role = roles.create_role(OWNER_ID, RoleCreate(
        name="Editor",
        grants=[ModuleGrant(module_key=ModuleKey.TASKS, can_view=True, can_create=True, can_edit=True)]
    ))
    roles.set_project_roles(PROJECT_ID, [role.id])
    return role


@pytest.fixture
def member(store, role):
    """Worker invited and accepted with the editor role."""
    accessor = AccessorService(store).create_accessor(OWNER_ID, AccessorCreate(email="worker@holzbau-kern.de"))
    members = MemberService(store)
    member = members.add_member(PROJECT_ID, accessor.id, RoleAuthority(role_id=role.id))
    members.invite(PROJECT_ID, member.id)
    return members.accept_invitation(member.id, WORKER.account_id, "worker@holzbau-kern.de")


class TestCheckPermission:
    """Consumer permission checks."""

    def test_active_member_with_role(self, service, member):
        assert service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.EDIT).allowed
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.DELETE).allowed
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.FILES, Operation.VIEW).allowed

    def test_invited_member_is_denied(self, service, store, role):
        accessor = AccessorService(store).create_accessor(OWNER_ID, AccessorCreate(
            email="new@holzbau-kern.de", registered_account_id=WORKER.account_id
        ))
        members = MemberService(store)
        pending = members.add_member(PROJECT_ID, accessor.id, RoleAuthority(role_id=role.id))
        members.invite(PROJECT_ID, pending.id)
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW).allowed

    def test_owner_allowed_without_member_rows(self, service, store):
        owner = Viewer(account_id=OWNER_ID)
        assert service.check_permission(owner, PROJECT_ID, ModuleKey.REPORTS, Operation.DELETE).allowed
        assert store.count_calls("project_members", "select") == 0

    def test_deleted_role_removes_authority(self, service, store, member, role):
        RoleService(store).delete_role(role.id, OWNER_ID)
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW).allowed

    def test_owner_only_default_hides_module(self, service, store, member):
        VisibilityService(store).update_default(PROJECT_ID, ModuleKey.TASKS, Visibility.OWNER_ONLY)
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW).allowed
        assert service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.CREATE).allowed

    def test_override_loaded_for_instance(self, service, store, member):
        VisibilityService(store).set_override(PROJECT_ID, ModuleKey.TASKS, "task-9", Visibility.OWNER_ONLY)
        hidden = ContentInstance(id="task-9")
        assert not service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW, hidden).allowed
        assert service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW, ContentInstance(id="task-1")).allowed

    def test_store_failure_degrades_to_deny(self, service, store, member):
        store.fail("project_members")
        decision = service.check_permission(WORKER, PROJECT_ID, ModuleKey.TASKS, Operation.VIEW)
        assert not decision.allowed
        assert decision.reason == "permission data unavailable"

    def test_unknown_project_denies(self, service):
        assert not service.check_permission(WORKER, "missing", ModuleKey.TASKS, Operation.VIEW).allowed


class TestEffectivePermissions:

    def test_lists_every_active_module(self, service, member):
        response = service.list_effective_permissions(WORKER, PROJECT_ID)
        assert response.member_id == member.id
        assert response.member_status == "active"
        by_key = {g.module_key: g for g in response.permissions}
        assert len(by_key) == len(ModuleKey)
        assert by_key[ModuleKey.TASKS].can_edit
        assert by_key[ModuleKey.FILES].is_empty

    def test_owner_flags(self, service):
        response = service.list_effective_permissions(Viewer(account_id=OWNER_ID), PROJECT_ID)
        assert response.is_project_owner
        assert response.member_id is None
        assert all(g.can_delete for g in response.permissions)

    def test_failure_returns_no_permissions(self, service, store):
        store.fail("projects")
        response = service.list_effective_permissions(WORKER, PROJECT_ID)
        assert response.permissions == []

    def test_filter_visible(self, service, store, member):
        VisibilityService(store).set_override(PROJECT_ID, ModuleKey.TASKS, "b", Visibility.OWNER_ONLY)
        items = [ContentInstance(id="a"), ContentInstance(id="b"), ContentInstance(id="c")]
        visible = service.filter_visible(WORKER, PROJECT_ID, ModuleKey.TASKS, items)
        assert [i.id for i in visible] == ["a", "c"]
