from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.catalog.schemas import PermissionModuleResponse
from app.modules.catalog.service import CatalogService
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/modules", tags=["modules"])


def get_catalog_service(supabase: Client = Depends(get_supabase)) -> CatalogService:
    return CatalogService(supabase)


@router.get("", response_model=List[PermissionModuleResponse])
async def list_modules(
    user_data: Dict = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service)
):
    """List active permission modules in display order"""
    return service.list_modules()
