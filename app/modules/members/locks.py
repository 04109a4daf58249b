"""Thread-safe registry of per-member invite locks, so one process never sends two invites for a member at once."""
import threading
import logging
from contextlib import contextmanager

from app.core.errors import ConflictError

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: dict[str, threading.Lock] = {}


def _member_lock(member_id: str) -> threading.Lock:
    with _lock:
        lock = _registry.get(member_id)
        if lock is None:
            lock = threading.Lock()
            _registry[member_id] = lock
        return lock


@contextmanager
def invite_lock(member_id: str):
    """Hold the member's invite lock; a second concurrent invite is rejected instead of queued."""
    lock = _member_lock(member_id)
    if not lock.acquire(blocking=False):
        logger.info(f"Invite already in progress for member {member_id}")
        raise ConflictError("An invitation for this member is already being sent")
    try:
        yield
    finally:
        lock.release()
        with _lock:
            if _registry.get(member_id) is lock and not lock.locked():
                _registry.pop(member_id, None)


def is_locked(member_id: str) -> bool:
    with _lock:
        lock = _registry.get(member_id)
    return lock is not None and lock.locked()
