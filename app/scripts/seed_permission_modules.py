"""
Seed Permission Modules Script
Populates the permission_modules catalog from config and deactivates rows
whose module key is no longer part of the catalog.
Can be run manually or as part of a deploy job.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.permissions_config import get_module_catalog
from app.database.supabase_client import SupabaseClient
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_modules(supabase: Client):
    """Seed permission modules from config"""
    logger.info("Seeding permission modules...")

    catalog = get_module_catalog()
    created_count = 0
    updated_count = 0

    for module in catalog:
        try:
            existing = supabase.table("permission_modules")\
                .select("module_key")\
                .eq("module_key", module["module_key"])\
                .execute()

            if existing.data:
                supabase.table("permission_modules")\
                    .update({
                        "module_name": module["module_name"],
                        "description": module["description"],
                        "display_order": module["display_order"],
                        "is_active": True
                    })\
                    .eq("module_key", module["module_key"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated module: {module['module_key']}")
            else:
                supabase.table("permission_modules").insert(module).execute()
                created_count += 1
                logger.debug(f"Created module: {module['module_key']}")
        except Exception as e:
            logger.error(f"Error processing module {module['module_key']}: {e}")

    logger.info(f"Modules seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def deactivate_stale_modules(supabase: Client):
    """Soft-disable catalog rows that are not in config any more"""
    known_keys = {m["module_key"] for m in get_module_catalog()}
    try:
        existing = supabase.table("permission_modules")\
            .select("module_key")\
            .eq("is_active", True)\
            .execute()
        stale = [m["module_key"] for m in (existing.data or []) if m["module_key"] not in known_keys]
        if stale:
            supabase.table("permission_modules")\
                .update({"is_active": False})\
                .in_("module_key", stale)\
                .execute()
            logger.info(f"Deactivated {len(stale)} stale modules: {', '.join(stale)}")
        return len(stale)
    except Exception as e:
        logger.error(f"Error deactivating stale modules: {e}")
        return 0


def main():
    """Main function to seed the module catalog"""
    try:
        supabase = SupabaseClient.get_service_client()

        logger.info("Starting permission module seeding...")
        count = seed_modules(supabase)
        stale = deactivate_stale_modules(supabase)

        logger.info(f"Seeding completed: {count} modules processed, {stale} deactivated")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
