import logging
from typing import List

from supabase import Client

from app.config.permissions_config import ModuleKey
from app.database.supabase_client import store_call, rows
from app.modules.catalog.schemas import PermissionModuleResponse

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_modules(self) -> List[PermissionModuleResponse]:
        """Active modules ordered by display_order. Rows with unknown keys are skipped."""
        with store_call("List permission modules"):
            result = self.supabase.table("permission_modules")\
                .select("module_key, module_name, description, display_order, is_active")\
                .eq("is_active", True)\
                .order("display_order")\
                .execute()

        known = {k.value for k in ModuleKey}
        modules = []
        for row in rows(result):
            if row.get("module_key") not in known:
                logger.warning(f"Ignoring unknown module key in catalog: {row.get('module_key')}")
                continue
            modules.append(PermissionModuleResponse(**row))
        return modules

    def active_module_keys(self) -> List[ModuleKey]:
        return [m.module_key for m in self.list_modules()]
