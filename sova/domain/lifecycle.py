"""Booking status state machine."""

from __future__ import annotations

from sova.domain.errors import InvalidTransitionError
from sova.domain.models import BookingStatus


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Date changes are only accepted before the guest arrives.
AMENDABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def _coerce(status: BookingStatus | str) -> BookingStatus:
    try:
        return BookingStatus(status)
    except ValueError as exc:
        raise InvalidTransitionError(str(status), "?") from exc


def allowed_transitions(status: BookingStatus | str) -> frozenset[BookingStatus]:
    return BOOKING_TRANSITIONS[_coerce(status)]


def is_terminal(status: BookingStatus | str) -> bool:
    return not allowed_transitions(status)


def validate_transition(current: BookingStatus | str, target: BookingStatus | str) -> BookingStatus:
    """Return ``target`` as a status if ``current -> target`` is allowed."""
    current_status = _coerce(current)
    try:
        target_status = BookingStatus(target)
    except ValueError as exc:
        raise InvalidTransitionError(current_status.value, str(target)) from exc
    if target_status not in BOOKING_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target_status.value)
    return target_status
