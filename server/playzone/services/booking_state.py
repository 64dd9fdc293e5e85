"""Booking status lifecycle."""

from ..core.exceptions import InvalidStateTransitionError
from ..models.booking import BookingStatus

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: str, target: str) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def ensure_transition(booking_id: int, current: str, target: str) -> BookingStatus:
    """
    Validate a status change and return the target status.

    Raises:
        InvalidStateTransitionError: If the lifecycle forbids the change,
            including a change to the current status
    """
    if not can_transition(current, target):
        raise InvalidStateTransitionError(
            booking_id=booking_id,
            current_status=BookingStatus(current).value,
            requested_status=BookingStatus(target).value,
        )
    return BookingStatus(target)
