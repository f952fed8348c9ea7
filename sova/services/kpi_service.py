"""Pure KPI aggregation: occupancy rate, ADR, RevPAR and revenue per day."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from sova.domain.errors import UnknownRoomTypeError
from sova.domain.models import (
    Booking,
    DateRange,
    KPIDay,
    KPIReport,
    Order,
    RoomInventory,
)
from sova.services.availability_engine import as_date_range, compute_occupancy


CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _mean(values: list[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def compute_kpis(
    bookings: Iterable[Booking],
    orders: Iterable[Order],
    date_range: DateRange | tuple[date, date],
    inventory: RoomInventory,
) -> KPIReport:
    """Derive per-day and range KPIs from booking and order snapshots.

    Occupancy is clamped per room type before it feeds the occupancy rate,
    so overbooked days read 100% for that type and carry ``overbooked``.
    ADR averages the nightly rates of every active booking on the day.
    """
    window = as_date_range(date_range)
    booking_list = list(bookings)
    order_list = list(orders)

    for booking in booking_list:
        if not booking.is_cancelled and booking.room_type not in inventory.totals:
            raise UnknownRoomTypeError(booking.room_type)

    occupancy_by_type = {
        room_type: compute_occupancy(
            booking_list,
            room_type,
            window,
            inventory.total_rooms(room_type),
        )
        for room_type in inventory.room_types
    }

    rate_sums: dict[date, Decimal] = defaultdict(lambda: ZERO)
    rooms_sold: Counter[date] = Counter()
    check_ins: Counter[date] = Counter()
    check_outs: Counter[date] = Counter()
    for booking in booking_list:
        if booking.is_cancelled:
            continue
        check_ins[booking.check_in] += 1
        check_outs[booking.check_out] += 1
        if not booking.is_active:
            continue
        night = max(booking.check_in, window.start)
        stop = min(booking.check_out, window.end)
        while night < stop:
            rate_sums[night] += booking.rate_per_night
            rooms_sold[night] += 1
            night += timedelta(days=1)

    order_revenue: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for order in order_list:
        if order.counts_as_revenue and window.contains(order.order_date):
            order_revenue[order.order_date] += order.amount

    fallback_rate = inventory.default_nightly_rate or ZERO
    capacity = inventory.total_capacity
    days: list[KPIDay] = []
    for index, day in enumerate(window):
        entries = [occupancy[index] for occupancy in occupancy_by_type.values()]
        occupied = sum(entry.clamped_occupied for entry in entries)
        occupancy_rate = (
            Decimal(occupied) / Decimal(capacity) * HUNDRED if capacity else ZERO
        )
        sold = rooms_sold.get(day, 0)
        adr = rate_sums[day] / Decimal(sold) if sold else fallback_rate
        days.append(
            KPIDay(
                day=day,
                occupied=occupied,
                total_rooms=capacity,
                occupancy_rate=quantize(occupancy_rate),
                adr=quantize(adr),
                revpar=quantize(occupancy_rate / HUNDRED * adr),
                room_revenue=quantize(rate_sums[day]),
                revenue=quantize(order_revenue[day]),
                check_ins=check_ins.get(day, 0),
                check_outs=check_outs.get(day, 0),
                overbooked=any(entry.overbooked for entry in entries),
            )
        )

    rates = [item.occupancy_rate for item in days]
    total_room_revenue = sum((rate_sums[day] for day in window), ZERO)
    total_sold = sum(rooms_sold.get(day, 0) for day in window)
    return KPIReport(
        date_range=window,
        days=tuple(days),
        average_occupancy_rate=quantize(_mean(rates)),
        peak_occupancy_rate=max(rates),
        lowest_occupancy_rate=min(rates),
        adr=quantize(total_room_revenue / Decimal(total_sold) if total_sold else fallback_rate),
        revpar=quantize(_mean([item.revpar for item in days])),
        total_revenue=quantize(sum((item.revenue for item in days), ZERO)),
        total_room_revenue=quantize(total_room_revenue),
        total_check_ins=sum(item.check_ins for item in days),
        total_check_outs=sum(item.check_outs for item in days),
        overbooked_days=tuple(item.day for item in days if item.overbooked),
    )
