from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from sova.domain.errors import InvalidInventoryError, InvalidRangeError
from sova.domain.models import Booking, BookingStatus, DateRange
from sova.services.availability_engine import compute_occupancy, nights_over_capacity


def _booking(booking_id: str, check_in: date, check_out: date, **overrides) -> Booking:
    fields = {
        "booking_id": booking_id,
        "guest_id": f"guest-{booking_id}",
        "room_type": "Standard",
        "check_in": check_in,
        "check_out": check_out,
        "rate_per_night": Decimal("150"),
        "status": BookingStatus.CONFIRMED,
    }
    fields.update(overrides)
    return Booking(**fields)


JUNE_WINDOW = DateRange(date(2025, 6, 1), date(2025, 6, 4))


def test_overlapping_stays_count_per_day() -> None:
    bookings = [
        _booking("id1", date(2025, 6, 1), date(2025, 6, 3)),
        _booking("id2", date(2025, 6, 2), date(2025, 6, 4)),
    ]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=2)

    assert [(day.day, day.occupied) for day in days] == [
        (date(2025, 6, 1), 1),
        (date(2025, 6, 2), 2),
        (date(2025, 6, 3), 1),
    ]
    assert not any(day.overbooked for day in days)


def test_third_overlapping_stay_flags_overbooking() -> None:
    bookings = [
        _booking("id1", date(2025, 6, 1), date(2025, 6, 3)),
        _booking("id2", date(2025, 6, 2), date(2025, 6, 4)),
        _booking("id3", date(2025, 6, 2), date(2025, 6, 3)),
    ]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=2)
    by_day = {day.day: day for day in days}

    assert by_day[date(2025, 6, 2)].occupied == 3
    assert by_day[date(2025, 6, 2)].overbooked
    assert by_day[date(2025, 6, 2)].overbooked_by == 1
    assert not by_day[date(2025, 6, 1)].overbooked
    assert not by_day[date(2025, 6, 3)].overbooked


def test_empty_bookings_report_zero_every_day() -> None:
    window = DateRange(date(2025, 12, 28), date(2026, 1, 5))

    days = compute_occupancy([], "Standard", window, total_rooms=10)

    assert len(days) == 8
    assert [day.day for day in days] == list(window)
    assert all(day.occupied == 0 and not day.overbooked for day in days)


def test_zero_inventory_with_no_bookings_is_not_overbooked() -> None:
    days = compute_occupancy([], "Suite", JUNE_WINDOW, total_rooms=0)

    assert all(not day.overbooked for day in days)


@pytest.mark.parametrize(
    "status",
    [BookingStatus.PENDING, BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT],
)
def test_inactive_statuses_never_occupy(status) -> None:
    bookings = [_booking("id1", date(2025, 6, 1), date(2025, 6, 4), status=status)]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=2)

    assert all(day.occupied == 0 for day in days)


def test_checked_in_guests_occupy() -> None:
    bookings = [
        _booking("id1", date(2025, 6, 1), date(2025, 6, 2), status=BookingStatus.CHECKED_IN)
    ]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=2)

    assert [day.occupied for day in days] == [1, 0, 0]


def test_other_room_types_are_filtered_out() -> None:
    bookings = [
        _booking("id1", date(2025, 6, 1), date(2025, 6, 4), room_type="Suite"),
        _booking("id2", date(2025, 6, 1), date(2025, 6, 2)),
    ]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=2)

    assert [day.occupied for day in days] == [1, 0, 0]


def test_stays_are_clipped_to_the_window() -> None:
    bookings = [
        _booking("long", date(2025, 5, 20), date(2025, 6, 20)),
        _booking("before", date(2025, 5, 1), date(2025, 6, 1)),
        _booking("after", date(2025, 6, 4), date(2025, 6, 9)),
    ]

    days = compute_occupancy(bookings, "Standard", JUNE_WINDOW, total_rooms=5)

    assert [day.occupied for day in days] == [1, 1, 1]


def test_reversed_range_raises() -> None:
    with pytest.raises(InvalidRangeError):
        compute_occupancy([], "Standard", (date(2025, 6, 4), date(2025, 6, 1)), total_rooms=2)


def test_empty_range_raises() -> None:
    with pytest.raises(InvalidRangeError):
        compute_occupancy([], "Standard", (date(2025, 6, 1), date(2025, 6, 1)), total_rooms=2)


def test_negative_inventory_raises() -> None:
    with pytest.raises(InvalidInventoryError):
        compute_occupancy([], "Standard", JUNE_WINDOW, total_rooms=-1)


def test_nights_over_capacity_lists_only_full_nights() -> None:
    existing = [
        _booking("id1", date(2025, 6, 1), date(2025, 6, 3)),
        _booking("id2", date(2025, 6, 2), date(2025, 6, 4)),
    ]
    candidate = _booking("new", date(2025, 6, 1), date(2025, 6, 4))

    over = nights_over_capacity(existing, candidate, total_rooms=2)

    assert [day.day for day in over] == [date(2025, 6, 2)]


def test_pending_candidate_never_exceeds_capacity() -> None:
    existing = [_booking("id1", date(2025, 6, 1), date(2025, 6, 3))]
    candidate = _booking("new", date(2025, 6, 1), date(2025, 6, 3), status=BookingStatus.PENDING)

    assert nights_over_capacity(existing, candidate, total_rooms=1) == ()
