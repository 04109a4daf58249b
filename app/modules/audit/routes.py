from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.audit.schemas import AuditLogResponse
from app.modules.audit.service import AuditService
from app.core.dependencies import require_project_owner
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/projects/{project_id}/audit-log", tags=["audit"])


def get_audit_service(supabase: Client = Depends(get_supabase)) -> AuditService:
    return AuditService(supabase)


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_log(
    project_id: str,
    limit: int = Query(50, ge=1, le=500),
    user_data: Dict = Depends(require_project_owner),
    service: AuditService = Depends(get_audit_service)
):
    """Recent permission changes in the project, newest first"""
    return service.list_entries(project_id, limit)
