"""
Booking status state machine.

The API is authoritative for transitions; this table lets the client reject
an impossible status update before sending it.
"""

from typing import Dict, FrozenSet, List, Union

from .booking import BookingStatus

StatusLike = Union[BookingStatus, str]

VALID_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING_STYLIST_APPROVAL: frozenset(
        {BookingStatus.PENDING_CUSTOMER_PAYMENT, BookingStatus.DECLINED, BookingStatus.CANCELLED}
    ),
    BookingStatus.PENDING_CUSTOMER_PAYMENT: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(
        {BookingStatus.AWAITING_CUSTOMER_CONFIRMATION, BookingStatus.DISPUTED}
    ),
    BookingStatus.AWAITING_CUSTOMER_CONFIRMATION: frozenset({BookingStatus.SETTLED, BookingStatus.DISPUTED}),
    BookingStatus.DISPUTED: frozenset({BookingStatus.SETTLED, BookingStatus.CANCELLED}),
    BookingStatus.SETTLED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.DECLINED: frozenset(),
}

# Display order for get_valid_next_states
_ORDER = list(BookingStatus)


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: StatusLike, new: StatusLike):
        self.current = BookingStatus(current)
        self.new = BookingStatus(new)
        super().__init__(f"Invalid status transition: {self.current.value} -> {self.new.value}")


def can_transition_to(current: StatusLike, new: StatusLike) -> bool:
    return BookingStatus(new) in VALID_TRANSITIONS[BookingStatus(current)]


def validate_transition(current: StatusLike, new: StatusLike) -> None:
    if not can_transition_to(current, new):
        raise InvalidTransitionError(current, new)


def is_terminal_status(status: StatusLike) -> bool:
    return not VALID_TRANSITIONS[BookingStatus(status)]


def get_valid_next_states(status: StatusLike) -> List[BookingStatus]:
    allowed = VALID_TRANSITIONS[BookingStatus(status)]
    return [s for s in _ORDER if s in allowed]
