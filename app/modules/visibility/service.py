import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from supabase import Client

from app.config.permissions_config import ModuleKey, Visibility, DEFAULT_VISIBILITY
from app.core.errors import ValidationError
from app.database.supabase_client import store_call, rows, require_rows
from app.modules.audit.schemas import AuditAction
from app.modules.audit.service import AuditService
from app.modules.catalog.service import CatalogService
from app.modules.visibility.schemas import (
    ContentDefault, ContentDefaultItem, VisibilityOverrideResponse
)

logger = logging.getLogger(__name__)


class VisibilityService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.catalog = CatalogService(supabase)
        self.audit = AuditService(supabase)

    def explicit_defaults(self, project_id: str) -> Dict[ModuleKey, Visibility]:
        """Only the rows that were set explicitly"""
        with store_call("Load content defaults"):
            result = self.supabase.table("project_content_defaults")\
                .select("module_key, default_visibility")\
                .eq("project_id", project_id)\
                .execute()
        defaults = {}
        for row in rows(result):
            try:
                defaults[ModuleKey(row["module_key"])] = Visibility(row["default_visibility"])
            except ValueError:
                logger.warning(f"Ignoring invalid content default {row} in project {project_id}")
        return defaults

    def get_defaults(self, project_id: str) -> List[ContentDefault]:
        """One entry per active module; modules without a row are implicitly all_participants"""
        explicit = self.explicit_defaults(project_id)
        return [
            ContentDefault(
                module_key=module.module_key,
                module_name=module.module_name,
                default_visibility=explicit.get(module.module_key, DEFAULT_VISIBILITY),
                has_custom_default=module.module_key in explicit
            )
            for module in self.catalog.list_modules()
        ]

    def get_default(self, project_id: str, module_key: ModuleKey) -> Visibility:
        return self.explicit_defaults(project_id).get(module_key, DEFAULT_VISIBILITY)

    def update_default(self, project_id: str, module_key: ModuleKey, visibility: Visibility, acting_account_id: Optional[str] = None) -> ContentDefault:
        """Plain assignment; nothing is recomputed, readers pick it up on their next check"""
        with store_call("Save content default"):
            result = self.supabase.table("project_content_defaults").upsert(
                self._default_row(project_id, module_key, visibility),
                on_conflict="project_id,module_key"
            ).execute()
        require_rows(result, "Save content default")
        self.audit.log_action(acting_account_id, project_id, AuditAction.CONTENT_DEFAULTS_CHANGED, {
            module_key.value: visibility.value
        })
        return ContentDefault(module_key=module_key, default_visibility=visibility, has_custom_default=True)

    def save_all(self, project_id: str, defaults: List[ContentDefaultItem], acting_account_id: Optional[str] = None) -> List[ContentDefault]:
        """Upsert all given defaults in a single request, so the store applies them together"""
        by_module = {item.module_key: item.default_visibility for item in defaults}
        if not by_module:
            return self.get_defaults(project_id)
        payload = [self._default_row(project_id, key, vis) for key, vis in by_module.items()]
        with store_call("Save content defaults"):
            result = self.supabase.table("project_content_defaults").upsert(
                payload,
                on_conflict="project_id,module_key"
            ).execute()
        written = require_rows(result, "Save content defaults")
        if len(written) != len(payload):
            logger.warning(f"Saved {len(written)} of {len(payload)} content defaults for project {project_id}")
        self.audit.log_action(acting_account_id, project_id, AuditAction.CONTENT_DEFAULTS_CHANGED, {
            key.value: vis.value for key, vis in by_module.items()
        })
        return self.get_defaults(project_id)

    def reset_default(self, project_id: str, module_key: ModuleKey, acting_account_id: Optional[str] = None) -> ContentDefault:
        """Drop the explicit row; the module falls back to all_participants"""
        with store_call("Reset content default"):
            self.supabase.table("project_content_defaults")\
                .delete()\
                .eq("project_id", project_id)\
                .eq("module_key", module_key.value)\
                .execute()
        self.audit.log_action(acting_account_id, project_id, AuditAction.CONTENT_DEFAULTS_CHANGED, {
            module_key.value: None
        })
        return ContentDefault(module_key=module_key, default_visibility=DEFAULT_VISIBILITY, has_custom_default=False)

    # Per-instance overrides

    def list_overrides(self, project_id: str, module_key: ModuleKey, content_ids: Optional[List[str]] = None) -> Dict[Tuple[ModuleKey, str], Visibility]:
        with store_call("Load visibility overrides"):
            query = self.supabase.table("content_visibility_overrides")\
                .select("module_key, content_id, visibility")\
                .eq("project_id", project_id)\
                .eq("module_key", module_key.value)
            if content_ids is not None:
                if not content_ids:
                    return {}
                query = query.in_("content_id", content_ids)
            result = query.execute()
        return {
            (ModuleKey(row["module_key"]), row["content_id"]): Visibility(row["visibility"])
            for row in rows(result)
        }

    def set_override(self, project_id: str, module_key: ModuleKey, content_id: str, visibility: Visibility, acting_account_id: Optional[str] = None) -> VisibilityOverrideResponse:
        if not content_id:
            raise ValidationError("content_id is required")
        with store_call("Save visibility override"):
            result = self.supabase.table("content_visibility_overrides").upsert({
                "project_id": project_id,
                "module_key": module_key.value,
                "content_id": content_id,
                "visibility": visibility.value,
                "created_by": acting_account_id,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }, on_conflict="module_key,content_id").execute()
        row = require_rows(result, "Save visibility override")[0]
        self.audit.log_action(acting_account_id, project_id, AuditAction.CONTENT_OVERRIDE_CHANGED, {
            "module_key": module_key.value,
            "content_id": content_id,
            "visibility": visibility.value
        })
        return VisibilityOverrideResponse(**row)

    def clear_override(self, project_id: str, module_key: ModuleKey, content_id: str, acting_account_id: Optional[str] = None) -> bool:
        with store_call("Clear visibility override"):
            result = self.supabase.table("content_visibility_overrides")\
                .delete()\
                .eq("project_id", project_id)\
                .eq("module_key", module_key.value)\
                .eq("content_id", content_id)\
                .execute()
        removed = len(rows(result)) > 0
        if removed:
            self.audit.log_action(acting_account_id, project_id, AuditAction.CONTENT_OVERRIDE_CHANGED, {
                "module_key": module_key.value,
                "content_id": content_id,
                "visibility": None
            })
        return removed

    @staticmethod
    def _default_row(project_id: str, module_key: ModuleKey, visibility: Visibility) -> dict:
        return {
            "project_id": project_id,
            "module_key": module_key.value,
            "default_visibility": visibility.value,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }
