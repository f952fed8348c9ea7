"""Error taxonomy for booking and occupancy workflows.

All of these indicate caller or data errors; none of them are retryable.
Overbooking is deliberately absent: it is reported as a flag on
``OccupancyDay`` rather than raised.
"""

from __future__ import annotations

from typing import Iterable


class BookingError(Exception):
    """Base exception for booking domain failures."""


class InvalidRangeError(BookingError):
    """Raised when a date range is empty or reversed."""


class InvalidBookingError(BookingError):
    """Raised when booking attributes violate entity invariants."""


class InvalidInventoryError(BookingError):
    """Raised when a room inventory configuration is unusable."""


class UnknownRoomTypeError(BookingError):
    """Raised when a room type is absent from the inventory."""

    def __init__(self, room_type: str) -> None:
        super().__init__(f"Unknown room type '{room_type}'")
        self.room_type = room_type


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist in the store."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking '{booking_id}' was not found")
        self.booking_id = booking_id


class MalformedRecordError(BookingError):
    """Raised when a stored row cannot be turned into a valid entity."""


class InvalidTransitionError(BookingError):
    """Raised for a status change the lifecycle does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid booking transition: {current} -> {target}")
        self.current = current
        self.target = target


class ConflictError(BookingError):
    """Raised at insert time when overlapping bookings block the candidate."""

    def __init__(self, booking_ids: Iterable[str], message: str | None = None) -> None:
        self.booking_ids = frozenset(booking_ids)
        super().__init__(
            message
            or "Booking overlaps existing bookings: " + ", ".join(sorted(self.booking_ids))
        )
