"""Ownership and role checks for per-task operations."""

import enum
import logging

from .errors import Forbidden
from .models.user import Role

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = "Forbidden: cannot access others' tasks"


class Decision(enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(requester_id: int, requester_role: Role, owner_id: int) -> Decision:
    """Admins may touch any task; everyone else only their own."""
    if Role(requester_role) is Role.ADMIN or requester_id == owner_id:
        return Decision.ALLOW
    return Decision.DENY


def ensure_can_access(requester_id: int, requester_role: Role, owner_id: int) -> None:
    """Raise :class:`Forbidden` unless :func:`authorize` allows the request.

    Callers must confirm the task exists first so a missing task is reported
    as not found rather than forbidden.
    """
    if authorize(requester_id, requester_role, owner_id) is Decision.DENY:
        logger.warning(
            "access denied requester=%s role=%s owner=%s",
            requester_id,
            Role(requester_role).value,
            owner_id,
        )
        raise Forbidden(FORBIDDEN_MESSAGE)
