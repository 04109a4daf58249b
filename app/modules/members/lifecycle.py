"""
Project member lifecycle.

    open --invite--> invited --accept--> active <--deactivate/reactivate--> inactive

Re-inviting an invited or active member keeps its status; the invitation is
re-emitted by the caller. Removal is not a transition: it deletes the row from
any state.
"""

from enum import Enum

from app.core.errors import ValidationError


class MemberStatus(str, Enum):
    OPEN = "open"
    INVITED = "invited"
    ACTIVE = "active"
    INACTIVE = "inactive"


class MemberEvent(str, Enum):
    INVITE = "invite"
    ACCEPT = "accept"
    DEACTIVATE = "deactivate"
    REACTIVATE = "reactivate"


TRANSITIONS = {
    (MemberStatus.OPEN, MemberEvent.INVITE): MemberStatus.INVITED,
    (MemberStatus.INVITED, MemberEvent.INVITE): MemberStatus.INVITED,
    (MemberStatus.ACTIVE, MemberEvent.INVITE): MemberStatus.ACTIVE,
    (MemberStatus.INVITED, MemberEvent.ACCEPT): MemberStatus.ACTIVE,
    (MemberStatus.ACTIVE, MemberEvent.DEACTIVATE): MemberStatus.INACTIVE,
    (MemberStatus.INACTIVE, MemberEvent.DEACTIVATE): MemberStatus.INACTIVE,
    (MemberStatus.INACTIVE, MemberEvent.REACTIVATE): MemberStatus.ACTIVE,
    (MemberStatus.ACTIVE, MemberEvent.REACTIVATE): MemberStatus.ACTIVE,
}

# Statuses that carry effective permissions
EFFECTIVE_STATUSES = frozenset({MemberStatus.ACTIVE})


def next_status(current: MemberStatus, event: MemberEvent) -> MemberStatus:
    """Target status for an event, or ValidationError if the transition is illegal"""
    try:
        return TRANSITIONS[(MemberStatus(current), event)]
    except KeyError:
        raise ValidationError(f"Cannot {event.value} a member in status '{MemberStatus(current).value}'")


def is_effective(status: MemberStatus) -> bool:
    return MemberStatus(status) in EFFECTIVE_STATUSES
