"""Permission audit log. Writing is best-effort: a failed audit write never fails the audited operation."""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from app.database.supabase_client import store_call, rows
from app.modules.audit.schemas import AuditAction, AuditLogResponse

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def log_action(
        self,
        account_id: Optional[str],
        project_id: Optional[str],
        action: AuditAction,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            self.supabase.table("permission_audit_log").insert({
                "account_id": account_id,
                "project_id": project_id,
                "action": action.value,
                "details": details or {}
            }).execute()
        except Exception as e:
            logger.warning(f"Audit log write failed for {action.value} on project {project_id}: {e}")

    def list_entries(self, project_id: Optional[str] = None, limit: int = 50) -> List[AuditLogResponse]:
        """Newest first, optionally restricted to one project"""
        with store_call("Load audit log"):
            query = self.supabase.table("permission_audit_log")\
                .select("id, account_id, project_id, action, details, created_at")
            if project_id:
                query = query.eq("project_id", project_id)
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .execute()
        return [AuditLogResponse(**row) for row in rows(result)]
