"""
Loads AccessSnapshots from the store and answers the consumer questions.

This is the only API the rest of the application needs: check_permission and
list_effective_permissions. Read failures never raise here; they are logged
and resolve to "no access".
"""

import logging
from typing import List, Optional

from supabase import Client

from app.config.permissions_config import ModuleKey, Operation
from app.modules.catalog.service import CatalogService
from app.modules.members.service import MemberService
from app.modules.permissions import resolver
from app.modules.permissions.resolver import (
    AccessSnapshot, ContentInstance, Decision, MemberRecord, RoleRecord, Viewer
)
from app.modules.permissions.schemas import EffectivePermissionsResponse
from app.modules.projects.service import ProjectService
from app.modules.roles.service import RoleService
from app.modules.members.schemas import RoleAuthority
from app.modules.visibility.service import VisibilityService

logger = logging.getLogger(__name__)


class PermissionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.projects = ProjectService(supabase)
        self.catalog = CatalogService(supabase)
        self.members = MemberService(supabase)
        self.roles = RoleService(supabase)
        self.visibility = VisibilityService(supabase)

    def load_snapshot(
        self,
        project_id: str,
        viewer: Viewer,
        module_key: Optional[ModuleKey] = None,
        content_ids: Optional[List[str]] = None,
    ) -> AccessSnapshot:
        """Everything the resolver needs for one viewer in one project"""
        project = self.projects.get_project(project_id)
        snapshot = AccessSnapshot(
            project_id=project.id,
            owner_account_id=project.owner_account_id,
            active_modules=self.catalog.active_module_keys()
        )
        if resolver.is_privileged(snapshot, viewer):
            return snapshot

        members = self.members.find_members_for_account(project_id, viewer.account_id)
        accessors = {a.id: a for a in self.members.accessors.get_accessors([m.accessor_id for m in members])}
        for member in members:
            accessor = accessors.get(member.accessor_id)
            snapshot.members.append(MemberRecord(
                id=member.id,
                status=member.status,
                authority=member.authority,
                account_id=member.account_id,
                accessor_account_id=accessor.registered_account_id if accessor else None,
                team_id=member.team_id,
                accepted_at=member.accepted_at
            ))

        role_ids = [m.authority.role_id for m in snapshot.members if isinstance(m.authority, RoleAuthority)]
        if role_ids:
            grants = self.roles.get_grants_for_roles(role_ids)
            for role in self.roles.get_roles(role_ids):
                snapshot.roles[role.id] = RoleRecord(
                    id=role.id,
                    is_active=role.is_active,
                    grants={g.module_key: g for g in grants.get(role.id, [])}
                )

        snapshot.visibility_defaults = self.visibility.explicit_defaults(project_id)
        if module_key is not None and content_ids:
            snapshot.overrides = self.visibility.list_overrides(project_id, module_key, content_ids)
        return snapshot

    def check_permission(
        self,
        viewer: Viewer,
        project_id: str,
        module_key: ModuleKey,
        operation: Operation,
        instance: Optional[ContentInstance] = None,
    ) -> Decision:
        content_ids = [instance.id] if instance is not None and instance.id else None
        try:
            snapshot = self.load_snapshot(project_id, viewer, module_key, content_ids)
        except Exception as e:
            logger.error(f"Permission check for {viewer.account_id} on {project_id}/{module_key.value} degraded to deny: {e}")
            return Decision(False, "permission data unavailable")
        decision = resolver.check_permission(snapshot, viewer, module_key, operation, instance)
        logger.debug(f"check {viewer.account_id} {project_id} {module_key.value}:{operation.value} -> {decision}")
        return decision

    def list_effective_permissions(self, viewer: Viewer, project_id: str) -> EffectivePermissionsResponse:
        try:
            snapshot = self.load_snapshot(project_id, viewer)
        except Exception as e:
            logger.error(f"Effective permissions for {viewer.account_id} on {project_id} degraded to none: {e}")
            return EffectivePermissionsResponse(project_id=project_id)

        member = None if resolver.is_privileged(snapshot, viewer) else resolver.find_member(snapshot, viewer)
        permissions = resolver.effective_permissions(snapshot, viewer)
        return EffectivePermissionsResponse(
            project_id=project_id,
            is_project_owner=viewer.account_id == snapshot.owner_account_id,
            is_superuser=viewer.is_superuser,
            member_id=member.id if member else None,
            member_status=member.status.value if member else None,
            permissions=list(permissions.values())
        )

    def filter_visible(
        self,
        viewer: Viewer,
        project_id: str,
        module_key: ModuleKey,
        instances: List[ContentInstance],
    ) -> List[ContentInstance]:
        content_ids = [i.id for i in instances if i.id]
        try:
            snapshot = self.load_snapshot(project_id, viewer, module_key, content_ids)
        except Exception as e:
            logger.error(f"Visibility filter for {viewer.account_id} on {project_id}/{module_key.value} degraded to empty: {e}")
            return []
        return resolver.filter_visible(snapshot, viewer, module_key, instances)
