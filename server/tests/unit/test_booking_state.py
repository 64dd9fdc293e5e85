"""Unit tests for the booking status lifecycle."""

import pytest

from playzone.core.exceptions import InvalidStateTransitionError
from playzone.models.booking import BookingStatus
from playzone.services.booking_state import TERMINAL_STATES, can_transition, ensure_transition


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "completed"),
        ("confirmed", "cancelled"),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(1, current, target) == BookingStatus(target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "completed"),
        ("pending", "pending"),
        ("confirmed", "pending"),
        ("confirmed", "confirmed"),
        ("completed", "cancelled"),
        ("cancelled", "confirmed"),
        ("cancelled", "cancelled"),
    ],
)
def test_forbidden_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        ensure_transition(7, current, target)
    assert exc_info.value.status_code == 409
    assert exc_info.value.code == "INVALID_STATE_TRANSITION"


def test_terminal_states():
    assert TERMINAL_STATES == {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
