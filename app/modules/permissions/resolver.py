"""
Permission resolution over an explicit snapshot of project access data.

Everything in this module is pure: callers load an AccessSnapshot (see
service.py) and ask questions about it. Nothing here touches the store.

Decision order for (viewer, module, operation[, instance]):

1. project owner or platform superuser: allow
2. find the viewer's member row (by account_id or the accessor's linked
   account); missing or not active: deny
3. effective authority for the module: role grants if the role is active,
   else custom grants, else nothing
4. operation flag not granted: deny
5. view only: instance visibility scope (override, else module default)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from app.config.permissions_config import ModuleKey, Operation, Visibility, DEFAULT_VISIBILITY
from app.modules.members.lifecycle import MemberStatus, is_effective
from app.modules.members.schemas import CustomAuthority, NoAuthority, RoleAuthority
from app.modules.roles.schemas import ModuleGrant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Viewer:
    account_id: str
    is_superuser: bool = False


@dataclass(frozen=True)
class MemberRecord:
    id: str
    status: MemberStatus
    authority: object = field(default_factory=NoAuthority)
    account_id: Optional[str] = None
    accessor_account_id: Optional[str] = None
    team_id: Optional[str] = None
    accepted_at: Optional[datetime] = None

    def belongs_to(self, account_id: str) -> bool:
        return account_id in (self.account_id, self.accessor_account_id)


@dataclass(frozen=True)
class RoleRecord:
    id: str
    is_active: bool
    grants: Dict[ModuleKey, ModuleGrant] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentInstance:
    """A piece of module content whose visibility is being checked"""
    id: Optional[str] = None
    owner_team_id: Optional[str] = None
    creator_account_id: Optional[str] = None


@dataclass
class AccessSnapshot:
    project_id: str
    owner_account_id: str
    active_modules: List[ModuleKey] = field(default_factory=lambda: list(ModuleKey))
    members: List[MemberRecord] = field(default_factory=list)
    roles: Dict[str, RoleRecord] = field(default_factory=dict)
    visibility_defaults: Dict[ModuleKey, Visibility] = field(default_factory=dict)
    overrides: Dict[Tuple[ModuleKey, str], Visibility] = field(default_factory=dict)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def _no_grant(module_key: ModuleKey) -> ModuleGrant:
    return ModuleGrant(module_key=module_key)


def _full_grant(module_key: ModuleKey) -> ModuleGrant:
    return ModuleGrant(module_key=module_key, can_view=True, can_create=True, can_edit=True, can_delete=True)


def is_privileged(snapshot: AccessSnapshot, viewer: Viewer) -> bool:
    return viewer.is_superuser or viewer.account_id == snapshot.owner_account_id


def find_member(snapshot: AccessSnapshot, viewer: Viewer) -> Optional[MemberRecord]:
    """
    The viewer's member row; an active row wins over stale duplicates.
    Among several active rows the earliest accepted one wins, then the lowest id.
    """
    candidates = sorted(
        (m for m in snapshot.members if m.belongs_to(viewer.account_id)),
        key=_acceptance_order
    )
    if not candidates:
        return None
    active = [m for m in candidates if is_effective(m.status)]
    if len(active) > 1:
        logger.warning(
            f"Account {viewer.account_id} has {len(active)} active member rows in project "
            f"{snapshot.project_id}; using {active[0].id}"
        )
    return active[0] if active else candidates[0]


def _acceptance_order(member: MemberRecord) -> Tuple[bool, float, str]:
    accepted = member.accepted_at
    return (accepted is None, accepted.timestamp() if accepted else 0.0, member.id)


def effective_authority(snapshot: AccessSnapshot, member: MemberRecord, module_key: ModuleKey) -> ModuleGrant:
    authority = member.authority
    if isinstance(authority, RoleAuthority):
        role = snapshot.roles.get(authority.role_id)
        # Soft-deleted or dangling roles carry no authority
        if role is None or not role.is_active:
            return _no_grant(module_key)
        return role.grants.get(module_key) or _no_grant(module_key)
    if isinstance(authority, CustomAuthority):
        for grant in authority.grants:
            if grant.module_key == module_key:
                return grant
    return _no_grant(module_key)


def effective_visibility(snapshot: AccessSnapshot, module_key: ModuleKey, instance: Optional[ContentInstance] = None) -> Visibility:
    if instance is not None and instance.id is not None:
        override = snapshot.overrides.get((module_key, instance.id))
        if override is not None:
            return override
    return snapshot.visibility_defaults.get(module_key, DEFAULT_VISIBILITY)


def instance_visible(
    snapshot: AccessSnapshot,
    viewer: Viewer,
    member: MemberRecord,
    module_key: ModuleKey,
    instance: Optional[ContentInstance] = None,
) -> bool:
    """Scope check for a non-privileged, view-authorized active member"""
    visibility = effective_visibility(snapshot, module_key, instance)
    if visibility == Visibility.ALL_PARTICIPANTS:
        return True
    if visibility == Visibility.OWNER_ONLY:
        return False
    # team_only
    if instance is None:
        return True
    if instance.creator_account_id is not None:
        if instance.creator_account_id in (viewer.account_id, snapshot.owner_account_id):
            return True
    return member.team_id is not None and instance.owner_team_id == member.team_id


def check_permission(
    snapshot: AccessSnapshot,
    viewer: Viewer,
    module_key: ModuleKey,
    operation: Operation,
    instance: Optional[ContentInstance] = None,
) -> Decision:
    if is_privileged(snapshot, viewer):
        return Decision(True, "owner" if viewer.account_id == snapshot.owner_account_id else "superuser")

    member = find_member(snapshot, viewer)
    if member is None:
        return Decision(False, "not a project member")
    if not is_effective(member.status):
        return Decision(False, f"membership is {MemberStatus(member.status).value}")

    if module_key not in snapshot.active_modules:
        return Decision(False, f"module {module_key.value} is not active")

    grant = effective_authority(snapshot, member, module_key)
    if not grant.allows(operation):
        return Decision(False, f"no {operation.value} grant on {module_key.value}")

    if operation == Operation.VIEW and not instance_visible(snapshot, viewer, member, module_key, instance):
        visibility = effective_visibility(snapshot, module_key, instance)
        return Decision(False, f"hidden by {visibility.value} visibility")

    return Decision(True, "granted")


def effective_permissions(snapshot: AccessSnapshot, viewer: Viewer) -> Dict[ModuleKey, ModuleGrant]:
    """Module-level grants for every active module, view folded with the module default scope"""
    if is_privileged(snapshot, viewer):
        return {key: _full_grant(key) for key in snapshot.active_modules}

    member = find_member(snapshot, viewer)
    if member is None or not is_effective(member.status):
        return {key: _no_grant(key) for key in snapshot.active_modules}

    permissions = {}
    for key in snapshot.active_modules:
        grant = effective_authority(snapshot, member, key)
        can_view = grant.can_view and instance_visible(snapshot, viewer, member, key)
        # Built field by field: the write-implies-view validator must not re-enable view here
        permissions[key] = ModuleGrant.model_construct(
            module_key=key,
            can_view=can_view,
            can_create=grant.can_create,
            can_edit=grant.can_edit,
            can_delete=grant.can_delete
        )
    return permissions


def filter_visible(
    snapshot: AccessSnapshot,
    viewer: Viewer,
    module_key: ModuleKey,
    instances: Iterable[ContentInstance],
) -> List[ContentInstance]:
    return [
        instance for instance in instances
        if check_permission(snapshot, viewer, module_key, Operation.VIEW, instance).allowed
    ]
