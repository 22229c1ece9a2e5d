"""
Session status state machine.

    scheduled -> completed    (direct update)
    scheduled -> cancelled    (cancel session / cancel series)
    completed -> cancelled    (only when allowed by configuration)

Cancelled is terminal. Setting a session to the status it already has is a
no-op and always allowed.
"""

from enum import Enum
from typing import Dict, FrozenSet

from core.exceptions import InvalidStatusTransitionError


class SessionStatus(str, Enum):
    """Lifecycle status of a therapy session."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_BASE_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.SCHEDULED: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


def parse_session_status(value: "str | SessionStatus") -> SessionStatus:
    """Convert a raw status value, raising InvalidStatusTransitionError if unknown."""
    try:
        return SessionStatus(value)
    except ValueError:
        raise InvalidStatusTransitionError(
            f"Invalid status '{value}'. Must be scheduled, completed, or cancelled"
        )


def is_transition_allowed(
    current: "str | SessionStatus",
    new: "str | SessionStatus",
    allow_completed_to_cancelled: bool
) -> bool:
    """Check whether a session may move from ``current`` to ``new``."""
    current_status = SessionStatus(current)
    new_status = SessionStatus(new)

    if current_status == new_status:
        return True
    if (
        current_status == SessionStatus.COMPLETED
        and new_status == SessionStatus.CANCELLED
    ):
        return allow_completed_to_cancelled
    return new_status in _BASE_TRANSITIONS[current_status]


def validate_status_transition(
    current: "str | SessionStatus",
    new: "str | SessionStatus",
    allow_completed_to_cancelled: bool
) -> SessionStatus:
    """
    Validate a status change.

    Returns:
        The new status as a SessionStatus

    Raises:
        InvalidStatusTransitionError: If ``new`` is unknown or the move is not allowed
    """
    new_status = parse_session_status(new)
    current_status = parse_session_status(current)
    if not is_transition_allowed(current_status, new_status, allow_completed_to_cancelled):
        raise InvalidStatusTransitionError(
            f"Cannot change session status from {current_status.value} to {new_status.value}"
        )
    return new_status
