"""Domain models for bookings, inventory and occupancy reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterator, Mapping, Optional
from uuid import uuid4

from sova.domain.errors import (
    InvalidBookingError,
    InvalidInventoryError,
    InvalidRangeError,
    UnknownRoomTypeError,
)


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


# Statuses that hold a room on the nights they cover.
ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN})


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _to_decimal(value: object, label: str) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise InvalidBookingError(f"{label} must be a decimal amount") from exc
    if not amount.is_finite():
        raise InvalidBookingError(f"{label} must be finite")
    if amount < 0:
        raise InvalidBookingError(f"{label} must be >= 0")
    return amount


def new_booking_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class DateRange:
    """Half-open calendar range ``[start, end)``."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Date range start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current < self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class Booking:
    """A reservation for one room of ``room_type`` over ``[check_in, check_out)``."""

    guest_id: str
    room_type: str
    check_in: date
    check_out: date
    rate_per_night: Decimal
    status: BookingStatus = BookingStatus.PENDING
    room_number: Optional[str] = None
    booking_id: str = field(default_factory=new_booking_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not str(self.booking_id).strip():
            raise InvalidBookingError("booking_id must be non-empty")
        if not str(self.guest_id).strip():
            raise InvalidBookingError("guest_id must be non-empty")
        if not str(self.room_type).strip():
            raise InvalidBookingError("room_type must be non-empty")
        if self.room_number is not None and not str(self.room_number).strip():
            raise InvalidBookingError("room_number must be non-empty when provided")
        if not isinstance(self.check_in, date) or not isinstance(self.check_out, date):
            raise InvalidBookingError("check_in and check_out must be dates")
        if self.check_out <= self.check_in:
            raise InvalidBookingError(
                f"check_out {self.check_out.isoformat()} must be after check_in {self.check_in.isoformat()}"
            )
        try:
            status = BookingStatus(self.status)
        except ValueError as exc:
            raise InvalidBookingError(f"Unknown booking status '{self.status}'") from exc
        object.__setattr__(self, "status", status)
        object.__setattr__(
            self, "rate_per_night", _to_decimal(self.rate_per_night, "rate_per_night")
        )

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED

    def occupies(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    def overlaps(self, other: Booking) -> bool:
        return self.check_in < other.check_out and other.check_in < self.check_out

    def stay_range(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)


@dataclass(frozen=True)
class Order:
    """Ancillary revenue line (room service, shuttle, spa) joined to reports by date."""

    order_date: date
    amount: Decimal
    status: OrderStatus = OrderStatus.COMPLETED
    description: Optional[str] = None
    order_id: str = field(default_factory=new_booking_id)

    def __post_init__(self) -> None:
        try:
            status = OrderStatus(self.status)
        except ValueError as exc:
            raise InvalidBookingError(f"Unknown order status '{self.status}'") from exc
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "amount", _to_decimal(self.amount, "amount"))

    @property
    def counts_as_revenue(self) -> bool:
        return self.status is not OrderStatus.CANCELLED


@dataclass(frozen=True)
class RoomInventory:
    """Configured room totals per type; the source of truth for capacity."""

    totals: Mapping[str, int]
    default_nightly_rate: Optional[Decimal] = None

    def __post_init__(self) -> None:
        for room_type, total in self.totals.items():
            if not str(room_type).strip():
                raise InvalidInventoryError("room type names must be non-empty")
            if int(total) < 0:
                raise InvalidInventoryError(f"total rooms for '{room_type}' must be >= 0")
        object.__setattr__(self, "totals", dict(self.totals))
        if self.default_nightly_rate is not None and self.default_nightly_rate < 0:
            raise InvalidInventoryError("default_nightly_rate must be >= 0")

    @property
    def room_types(self) -> tuple[str, ...]:
        return tuple(sorted(self.totals))

    @property
    def total_capacity(self) -> int:
        return sum(self.totals.values())

    def total_rooms(self, room_type: str) -> int:
        try:
            return int(self.totals[room_type])
        except KeyError as exc:
            raise UnknownRoomTypeError(room_type) from exc


@dataclass(frozen=True)
class OccupancyDay:
    day: date
    room_type: str
    occupied: int
    total_rooms: int

    @property
    def overbooked(self) -> bool:
        return self.occupied > self.total_rooms

    @property
    def overbooked_by(self) -> int:
        return max(0, self.occupied - self.total_rooms)

    @property
    def clamped_occupied(self) -> int:
        return min(max(self.occupied, 0), self.total_rooms)

    @property
    def available(self) -> int:
        return self.total_rooms - self.clamped_occupied

    def to_dict(self) -> dict[str, str | int | bool]:
        return {
            "day": self.day.isoformat(),
            "room_type": self.room_type,
            "occupied": self.occupied,
            "total_rooms": self.total_rooms,
            "available": self.available,
            "overbooked": self.overbooked,
            "overbooked_by": self.overbooked_by,
        }


@dataclass(frozen=True)
class ConflictResult:
    """Ids of every existing booking overlapping a candidate (empty means no conflict)."""

    booking_ids: frozenset[str] = frozenset()

    @property
    def has_conflict(self) -> bool:
        return bool(self.booking_ids)

    def __bool__(self) -> bool:
        return self.has_conflict


NO_CONFLICT = ConflictResult()


@dataclass(frozen=True)
class KPIDay:
    day: date
    occupied: int
    total_rooms: int
    occupancy_rate: Decimal
    adr: Decimal
    revpar: Decimal
    room_revenue: Decimal
    revenue: Decimal
    check_ins: int
    check_outs: int
    overbooked: bool


@dataclass(frozen=True)
class KPIReport:
    date_range: DateRange
    days: tuple[KPIDay, ...]
    average_occupancy_rate: Decimal
    peak_occupancy_rate: Decimal
    lowest_occupancy_rate: Decimal
    adr: Decimal
    revpar: Decimal
    total_revenue: Decimal
    total_room_revenue: Decimal
    total_check_ins: int
    total_check_outs: int
    overbooked_days: tuple[date, ...]


@dataclass(frozen=True)
class BookingStatistics:
    total_bookings: int
    average_stay_length: float
    status_counts: dict[str, int]
    completed_orders: int
