"""
Permissions Configuration
Defines the closed catalog of permissionable project modules, the CRUD
operations a grant covers and the content visibility scopes.
Used by the seed script and as the single source of module keys.
"""

from enum import Enum


class ModuleKey(str, Enum):
    GENERAL_INFO = "general_info"
    TASKS = "tasks"
    DEFECTS = "defects"
    DIARY = "diary"
    DOCUMENTATION = "documentation"
    FILES = "files"
    SCHEDULE = "schedule"
    TIMELINE = "timeline"
    OBJEKTPLAN = "objektplan"
    COMMUNICATION = "communication"
    REPORTS = "reports"
    TIME_TRACKING = "time_tracking"
    PARTICIPANTS = "participants"


class Operation(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"

    @property
    def flag(self) -> str:
        return f"can_{self.value}"


class Visibility(str, Enum):
    ALL_PARTICIPANTS = "all_participants"
    TEAM_ONLY = "team_only"
    OWNER_ONLY = "owner_only"


DEFAULT_VISIBILITY = Visibility.ALL_PARTICIPANTS

# Catalog rows seeded into permission_modules, in display order
MODULES = {
    ModuleKey.GENERAL_INFO: {
        "name": "Allgemeine Informationen",
        "description": "Project master data, addresses and contacts"
    },
    ModuleKey.TASKS: {
        "name": "Aufgaben",
        "description": "Task lists and assignments"
    },
    ModuleKey.DEFECTS: {
        "name": "Mängel",
        "description": "Defect tracking"
    },
    ModuleKey.DIARY: {
        "name": "Bautagebuch",
        "description": "Construction diary entries"
    },
    ModuleKey.DOCUMENTATION: {
        "name": "Dokumentation",
        "description": "Photo and progress documentation"
    },
    ModuleKey.FILES: {
        "name": "Dateien",
        "description": "Project files and plans"
    },
    ModuleKey.SCHEDULE: {
        "name": "Terminplan",
        "description": "Schedule and milestones"
    },
    ModuleKey.TIMELINE: {
        "name": "Zeitstrahl",
        "description": "Project timeline"
    },
    ModuleKey.OBJEKTPLAN: {
        "name": "Objektplan",
        "description": "Building, floor and room structure"
    },
    ModuleKey.COMMUNICATION: {
        "name": "Kommunikation",
        "description": "Project messages"
    },
    ModuleKey.REPORTS: {
        "name": "Berichte",
        "description": "Generated reports"
    },
    ModuleKey.TIME_TRACKING: {
        "name": "Zeiterfassung",
        "description": "Time tracking entries"
    },
    ModuleKey.PARTICIPANTS: {
        "name": "Beteiligte",
        "description": "Project participants and their permissions"
    },
}


def get_module_catalog():
    """
    Returns the seedable catalog rows
    Format: [
        {"module_key": "general_info", "module_name": "...", "description": "...",
         "display_order": 10, "is_active": True},
        ...
    ]
    """
    catalog = []
    for index, (module_key, module_config) in enumerate(MODULES.items(), start=1):
        catalog.append({
            "module_key": module_key.value,
            "module_name": module_config["name"],
            "description": module_config["description"],
            "display_order": index * 10,
            "is_active": True
        })
    return catalog
