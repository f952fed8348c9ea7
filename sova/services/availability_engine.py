"""Pure occupancy and conflict computations over booking snapshots.

Nothing here performs I/O or logs. Callers pass explicit snapshots fetched
from the store and decide policy (reject, waitlist, alert) from the typed
results.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable, Sequence

from sova.domain.errors import InvalidInventoryError, InvalidRangeError
from sova.domain.models import (
    NO_CONFLICT,
    Booking,
    ConflictResult,
    DateRange,
    OccupancyDay,
)


GRANULARITY_ROOM_TYPE = "room_type"
GRANULARITY_ROOM_NUMBER = "room_number"


def as_date_range(value: DateRange | tuple[date, date]) -> DateRange:
    if isinstance(value, DateRange):
        return value
    try:
        start, end = value
    except (TypeError, ValueError) as exc:
        raise InvalidRangeError("date range must be a (start, end) pair") from exc
    return DateRange(start, end)


def compute_occupancy(
    bookings: Iterable[Booking],
    room_type: str,
    date_range: DateRange | tuple[date, date],
    total_rooms: int,
) -> tuple[OccupancyDay, ...]:
    """Count active bookings of ``room_type`` covering each day of the range.

    The raw count is kept on every entry; days where it exceeds
    ``total_rooms`` come back flagged as overbooked.
    """
    window = as_date_range(date_range)
    if total_rooms < 0:
        raise InvalidInventoryError(f"total rooms for '{room_type}' must be >= 0")

    # Sweep: +1 on the first covered night, -1 on the first uncovered one.
    deltas: Counter[date] = Counter()
    for booking in bookings:
        if booking.room_type != room_type or not booking.is_active:
            continue
        first = max(booking.check_in, window.start)
        stop = min(booking.check_out, window.end)
        if first >= stop:
            continue
        deltas[first] += 1
        deltas[stop] -= 1

    days: list[OccupancyDay] = []
    running = 0
    for day in window:
        running += deltas.get(day, 0)
        days.append(
            OccupancyDay(
                day=day,
                room_type=room_type,
                occupied=running,
                total_rooms=total_rooms,
            )
        )
    return tuple(days)


def detect_conflict(existing_bookings: Iterable[Booking], candidate: Booking) -> ConflictResult:
    """Report every non-cancelled booking whose stay overlaps the candidate's."""
    if candidate.is_cancelled:
        return NO_CONFLICT
    overlapping = frozenset(
        booking.booking_id
        for booking in existing_bookings
        if booking.booking_id != candidate.booking_id
        and not booking.is_cancelled
        and booking.overlaps(candidate)
    )
    if not overlapping:
        return NO_CONFLICT
    return ConflictResult(booking_ids=overlapping)


def conflict_scope(
    bookings: Iterable[Booking],
    candidate: Booking,
    granularity: str = GRANULARITY_ROOM_TYPE,
) -> list[Booking]:
    """Narrow ``bookings`` to those competing with ``candidate`` for the same unit.

    ``room_number`` granularity falls back to the room type when the
    candidate has no room assigned yet.
    """
    if granularity not in (GRANULARITY_ROOM_TYPE, GRANULARITY_ROOM_NUMBER):
        raise ValueError(f"Unsupported conflict granularity '{granularity}'")
    scoped = [booking for booking in bookings if booking.room_type == candidate.room_type]
    if granularity == GRANULARITY_ROOM_NUMBER and candidate.room_number is not None:
        scoped = [booking for booking in scoped if booking.room_number == candidate.room_number]
    return scoped


def nights_over_capacity(
    existing_bookings: Sequence[Booking],
    candidate: Booking,
    total_rooms: int,
) -> tuple[OccupancyDay, ...]:
    """Return the nights of the candidate's stay that it would push over capacity."""
    if not candidate.is_active:
        return ()
    others = [booking for booking in existing_bookings if booking.booking_id != candidate.booking_id]
    projected = compute_occupancy(
        [*others, candidate],
        candidate.room_type,
        candidate.stay_range(),
        total_rooms,
    )
    return tuple(day for day in projected if day.overbooked)
