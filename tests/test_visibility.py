"""Tests for content visibility defaults and per-content overrides."""

import pytest

from app.config.permissions_config import ModuleKey, Visibility
from app.core.errors import TransportError
from app.modules.visibility.schemas import ContentDefaultItem
from app.modules.visibility.service import VisibilityService
from tests.conftest import OWNER_ID, PROJECT_ID
from tests.fakes import FakeSupabase, seed_catalog


@pytest.fixture
def service(store):
    return VisibilityService(store)


class TestContentDefaults:
    """Project-wide defaults per module."""

    def test_defaults_are_implicit_all_participants(self, service):
        defaults = service.get_defaults(PROJECT_ID)
        assert len(defaults) == len(ModuleKey)
        assert all(d.default_visibility == Visibility.ALL_PARTICIPANTS for d in defaults)
        assert not any(d.has_custom_default for d in defaults)

    def test_defaults_follow_active_catalog(self):
        store = FakeSupabase()
        seed_catalog(store, inactive=[ModuleKey.OBJEKTPLAN])
        keys = [d.module_key for d in VisibilityService(store).get_defaults(PROJECT_ID)]
        assert ModuleKey.OBJEKTPLAN not in keys
        assert keys[0] == ModuleKey.GENERAL_INFO

    def test_update_default_upserts(self, service, store):
        service.update_default(PROJECT_ID, ModuleKey.DIARY, Visibility.TEAM_ONLY, OWNER_ID)
        service.update_default(PROJECT_ID, ModuleKey.DIARY, Visibility.OWNER_ONLY, OWNER_ID)
        assert len(store.rows("project_content_defaults")) == 1
        assert service.get_default(PROJECT_ID, ModuleKey.DIARY) == Visibility.OWNER_ONLY

    def test_save_all_is_one_request(self, service, store):
        defaults = service.save_all(PROJECT_ID, [
            ContentDefaultItem(module_key=ModuleKey.TASKS, default_visibility=Visibility.TEAM_ONLY),
            ContentDefaultItem(module_key=ModuleKey.FILES, default_visibility=Visibility.OWNER_ONLY),
        ], OWNER_ID)
        assert store.count_calls("project_content_defaults", "upsert") == 1
        by_key = {d.module_key: d for d in defaults}
        assert by_key[ModuleKey.TASKS].default_visibility == Visibility.TEAM_ONLY
        assert by_key[ModuleKey.FILES].has_custom_default
        assert not by_key[ModuleKey.DIARY].has_custom_default

    def test_save_all_failure_writes_nothing(self, service, store):
        store.fail("project_content_defaults")
        with pytest.raises(TransportError):
            service.save_all(PROJECT_ID, [
                ContentDefaultItem(module_key=ModuleKey.TASKS, default_visibility=Visibility.TEAM_ONLY),
            ])
        assert store.tables.get("project_content_defaults", []) == []

    def test_reset_default(self, service):
        service.update_default(PROJECT_ID, ModuleKey.TASKS, Visibility.OWNER_ONLY)
        reset = service.reset_default(PROJECT_ID, ModuleKey.TASKS)
        assert reset.has_custom_default is False
        assert service.get_default(PROJECT_ID, ModuleKey.TASKS) == Visibility.ALL_PARTICIPANTS

    def test_invalid_rows_ignored(self, service, store):
        store.add("project_content_defaults", {
            "project_id": PROJECT_ID, "module_key": "kanban", "default_visibility": "team_only"
        })
        assert service.explicit_defaults(PROJECT_ID) == {}


class TestOverrides:
    """Per-content visibility overrides."""

    def test_set_and_list_override(self, service):
        service.set_override(PROJECT_ID, ModuleKey.FILES, "file-1", Visibility.OWNER_ONLY, OWNER_ID)
        overrides = service.list_overrides(PROJECT_ID, ModuleKey.FILES, ["file-1", "file-2"])
        assert overrides == {(ModuleKey.FILES, "file-1"): Visibility.OWNER_ONLY}

    def test_set_override_replaces(self, service, store):
        service.set_override(PROJECT_ID, ModuleKey.FILES, "file-1", Visibility.OWNER_ONLY)
        response = service.set_override(PROJECT_ID, ModuleKey.FILES, "file-1", Visibility.TEAM_ONLY)
        assert response.visibility == Visibility.TEAM_ONLY
        assert len(store.rows("content_visibility_overrides")) == 1

    def test_clear_override(self, service):
        service.set_override(PROJECT_ID, ModuleKey.FILES, "file-1", Visibility.OWNER_ONLY)
        assert service.clear_override(PROJECT_ID, ModuleKey.FILES, "file-1") is True
        assert service.clear_override(PROJECT_ID, ModuleKey.FILES, "file-1") is False

    def test_empty_content_id_list_reads_nothing(self, service, store):
        assert service.list_overrides(PROJECT_ID, ModuleKey.FILES, []) == {}
        assert store.count_calls("content_visibility_overrides", "select") == 0
