"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.permissions_config import ModuleKey, Operation
from app.core.errors import AuthorityError
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService, is_superuser_metadata
from app.modules.permissions.resolver import Decision, Viewer
from app.modules.permissions.service import PermissionService
from app.modules.projects.service import ProjectService
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache of permission decisions keyed by (project, module, operation)."""
    if not hasattr(request.state, "permission_cache"):
        request.state.permission_cache = {}
    return request.state.permission_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def is_super_user(user_data: dict) -> bool:
    """Check if user is a super user from app_metadata"""
    if user_data.get("is_superuser"):
        return True
    return is_superuser_metadata(user_data.get("app_metadata") or {})


def viewer_from(user_data: dict) -> Viewer:
    return Viewer(account_id=user_data["id"], is_superuser=is_super_user(user_data))


def get_viewer(user_data: dict = Depends(get_current_user_id)) -> Viewer:
    return viewer_from(user_data)


def get_permission_service(supabase: Client = Depends(get_supabase)) -> PermissionService:
    return PermissionService(supabase)


def require_project_permission(module_key: ModuleKey, operation: Operation):
    """Factory function to create a project permission check dependency; the route must have a project_id path param"""
    def check_permission(
        project_id: str,
        request: Request,
        user_data: dict = Depends(get_current_user_id),
        service: PermissionService = Depends(get_permission_service)
    ) -> dict:
        """Dependency to check the caller holds operation on module in the project"""
        cache = _get_request_cache(request)
        key = (project_id, module_key, operation)
        decision: Decision = cache.get(key)
        if decision is None:
            decision = service.check_permission(viewer_from(user_data), project_id, module_key, operation)
            cache[key] = decision
        if not decision.allowed:
            raise AuthorityError(
                f"Insufficient permissions. Required: {module_key.value}:{operation.value} ({decision.reason})"
            )
        return user_data
    return check_permission


def require_project_owner(
    project_id: str,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Only the project owner (or a super user) may change project-wide settings"""
    if is_super_user(user_data):
        return user_data
    project = ProjectService(supabase).get_project(project_id)
    if project.owner_account_id != user_data["id"]:
        raise AuthorityError("Only the project owner can perform this action")
    return user_data
