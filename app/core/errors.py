"""
Error taxonomy for the permission core.

Every error is an HTTPException so that services can raise them directly and
FastAPI renders them without extra handlers. ``detail`` always carries a
human-readable cause.
"""

from fastapi import HTTPException, status


class PermissionCoreError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(PermissionCoreError):
    """Request rejected locally before any mutation was attempted."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthorityError(PermissionCoreError):
    """Write rejected by the store's access rules, or it affected zero rows."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PermissionCoreError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PermissionCoreError):
    status_code = status.HTTP_409_CONFLICT


class TransportError(PermissionCoreError):
    """Store or notifier unreachable. Never retried automatically."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
