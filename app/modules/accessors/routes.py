from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.accessors.schemas import (
    AccessorCreate, AccessorUpdate, AccessorResponse, LinkAccountRequest
)
from app.modules.accessors.service import AccessorService
from app.core.dependencies import get_current_user_id, is_super_user
from app.core.errors import AuthorityError
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/accessors", tags=["accessors"])


def get_accessor_service(supabase: Client = Depends(get_supabase)) -> AccessorService:
    return AccessorService(supabase)


@router.post("", response_model=AccessorResponse, status_code=201)
async def create_accessor(
    accessor_data: AccessorCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    """Create an accessor in the caller's directory"""
    return service.create_accessor(user_data["id"], accessor_data)


@router.get("", response_model=List[AccessorResponse])
async def list_accessors(
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    """List the caller's active accessors"""
    return service.list_accessors(user_data["id"])


@router.get("/{accessor_id}", response_model=AccessorResponse)
async def get_accessor(
    accessor_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    accessor = service.get_accessor(accessor_id)
    if accessor.owner_account_id != user_data["id"] and not is_super_user(user_data):
        raise AuthorityError("Accessor not accessible")
    return accessor


@router.put("/{accessor_id}", response_model=AccessorResponse)
async def update_accessor(
    accessor_id: str,
    accessor_data: AccessorUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    return service.update_accessor(accessor_id, accessor_data, user_data["id"], allow_all=is_super_user(user_data))


@router.delete("/{accessor_id}", status_code=204)
async def delete_accessor(
    accessor_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    """Soft delete an accessor"""
    service.delete_accessor(accessor_id, user_data["id"], allow_all=is_super_user(user_data))
    return None


@router.put("/{accessor_id}/account", response_model=AccessorResponse)
async def link_account(
    accessor_id: str,
    body: LinkAccountRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: AccessorService = Depends(get_accessor_service)
):
    """Link the accessor to a registered platform account"""
    accessor = service.get_accessor(accessor_id)
    if accessor.owner_account_id != user_data["id"] and not is_super_user(user_data):
        raise AuthorityError("Accessor not accessible")
    return service.link_registered_account(accessor_id, body.account_id)
