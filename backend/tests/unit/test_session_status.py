"""
Unit tests for the session status state machine.
"""

import pytest

from core.exceptions import InvalidStatusTransitionError
from utils.session_status import SessionStatus, is_transition_allowed, validate_status_transition


class TestTransitions:
    """Test which status changes are allowed."""

    @pytest.mark.parametrize("current,new", [
        ("scheduled", "completed"),
        ("scheduled", "cancelled"),
        ("scheduled", "scheduled"),
        ("completed", "completed"),
        ("cancelled", "cancelled"),
    ])
    def test_allowed(self, current, new):
        assert is_transition_allowed(current, new, allow_completed_to_cancelled=False)

    @pytest.mark.parametrize("current,new", [
        ("cancelled", "scheduled"),
        ("cancelled", "completed"),
        ("completed", "scheduled"),
    ])
    def test_rejected(self, current, new):
        assert not is_transition_allowed(current, new, allow_completed_to_cancelled=True)

    def test_completed_to_cancelled_follows_flag(self):
        assert is_transition_allowed("completed", "cancelled", allow_completed_to_cancelled=True)
        assert not is_transition_allowed("completed", "cancelled", allow_completed_to_cancelled=False)


class TestValidateStatusTransition:
    """Test the validating wrapper."""

    def test_returns_new_status(self):
        result = validate_status_transition("scheduled", "completed", allow_completed_to_cancelled=True)
        assert result is SessionStatus.COMPLETED

    def test_raises_on_disallowed_move(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            validate_status_transition("cancelled", "scheduled", allow_completed_to_cancelled=True)
        assert exc_info.value.status_code == 400
        assert "cancelled" in exc_info.value.message

    def test_raises_on_unknown_status(self):
        with pytest.raises(InvalidStatusTransitionError):
            validate_status_transition("scheduled", "no_show", allow_completed_to_cancelled=True)
