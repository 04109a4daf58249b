"""Invitation delivery through the store's send_project_invitation RPC."""

import logging
from typing import Optional

from pydantic import BaseModel
from supabase import Client

from app.config import settings
from app.core.errors import TransportError

logger = logging.getLogger(__name__)


class InvitationResult(BaseModel):
    success: bool = False
    notification_created: bool = False
    error: Optional[str] = None


class InvitationNotifier:
    def __init__(self, supabase: Client, rpc_name: Optional[str] = None):
        self.supabase = supabase
        self.rpc_name = rpc_name or settings.invitation_rpc

    def send_invitation(self, project_id: str, account_id: Optional[str], email: str) -> InvitationResult:
        """Blocking, single attempt. Any failure is raised; the caller re-invites to retry."""
        try:
            response = self.supabase.rpc(self.rpc_name, {
                "p_project_id": project_id,
                "p_user_id": account_id,
                "p_email": email
            }).execute()
        except Exception as e:
            logger.error(f"Invitation delivery to {email} for project {project_id} failed: {e}")
            raise TransportError(f"Invitation could not be sent: {e}")

        payload = response.data
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        result = InvitationResult(**(payload or {}))
        if not result.success:
            logger.warning(f"Invitation for {email} rejected by notifier: {result.error}")
            raise TransportError(result.error or "Invitation could not be sent")
        return result
