from typing import Dict, List

from supabase import Client

from app.core.errors import NotFoundError
from app.database.supabase_client import store_call, rows
from app.modules.projects.schemas import ProjectRef, ProfileRef


class ProjectService:
    """Read access to the externally owned projects and profiles tables"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_project(self, project_id: str) -> ProjectRef:
        with store_call("Load project"):
            result = self.supabase.table("projects")\
                .select("id, owner_account_id")\
                .eq("id", project_id)\
                .limit(1)\
                .execute()
        data = rows(result)
        if not data:
            raise NotFoundError(f"Project {project_id} not found")
        return ProjectRef(**data[0])

    def get_profiles(self, account_ids: List[str]) -> Dict[str, ProfileRef]:
        if not account_ids:
            return {}
        with store_call("Load profiles"):
            result = self.supabase.table("user_profiles")\
                .select("id, email, full_name, company")\
                .in_("id", account_ids)\
                .execute()
        return {row["id"]: ProfileRef(**row) for row in rows(result)}
