"""Booking workflow: creation with conflict policy, lifecycle moves, amendments."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sova.domain.errors import ConflictError, InvalidBookingError
from sova.domain.models import (
    Booking,
    BookingStatus,
    ConflictResult,
    DateRange,
    RoomInventory,
)
from sova.repository.booking_repository import BookingRepository, ConflictCheck
from sova.services.availability_engine import (
    GRANULARITY_ROOM_NUMBER,
    conflict_scope,
    detect_conflict,
    nights_over_capacity,
)
from sova.utils.config import Settings, get_settings
from sova.utils.logger import get_logger


logger = get_logger(__name__)


def build_inventory(settings: Settings) -> RoomInventory:
    return RoomInventory(
        totals=settings.room_inventory,
        default_nightly_rate=settings.default_nightly_rate,
    )


class BookingService:
    """Applies the conflict policy around the store's atomic writes.

    At ``room_number`` granularity any overlap on the same room blocks the
    booking. At ``room_type`` granularity a booking is blocked only when it
    would take some night of its stay above the configured room total.
    ``allow_overbooking`` downgrades both to a logged warning.
    """

    def __init__(
        self,
        repository: Optional[BookingRepository] = None,
        settings: Optional[Settings] = None,
        inventory: Optional[RoomInventory] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or BookingRepository(self._settings)
        self._inventory = inventory or build_inventory(self._settings)

    @property
    def inventory(self) -> RoomInventory:
        return self._inventory

    def _resolve_granularity(self, granularity: Optional[str]) -> str:
        return granularity or self._settings.conflict_granularity

    def _conflict_check(self, granularity: str, allow_overbooking: bool) -> ConflictCheck:
        def check(candidate: Booking, existing: list[Booking]) -> None:
            scoped = conflict_scope(existing, candidate, granularity)
            if granularity == GRANULARITY_ROOM_NUMBER and candidate.room_number is not None:
                result = detect_conflict(scoped, candidate)
                blocked = result.has_conflict
                message = None
            else:
                over = nights_over_capacity(
                    scoped,
                    candidate,
                    self._inventory.total_rooms(candidate.room_type),
                )
                result = detect_conflict(scoped, candidate) if over else ConflictResult()
                blocked = bool(over)
                message = (
                    f"{candidate.room_type} is fully booked on "
                    + ", ".join(day.day.isoformat() for day in over)
                    if over
                    else None
                )
            if not blocked:
                return
            if allow_overbooking:
                logger.warning(
                    "Accepting booking %s despite conflicts with %s",
                    candidate.booking_id,
                    ", ".join(sorted(result.booking_ids)),
                )
                return
            raise ConflictError(result.booking_ids, message)

        return check

    def create_booking(
        self,
        *,
        guest_id: str,
        room_type: str,
        check_in: date,
        check_out: date,
        rate_per_night: Decimal,
        status: BookingStatus = BookingStatus.PENDING,
        room_number: Optional[str] = None,
        booking_id: Optional[str] = None,
        granularity: Optional[str] = None,
        allow_overbooking: bool = False,
    ) -> Booking:
        # Unknown room types fail before anything touches the store.
        self._inventory.total_rooms(room_type)
        fields = {
            "guest_id": guest_id,
            "room_type": room_type,
            "check_in": check_in,
            "check_out": check_out,
            "rate_per_night": rate_per_night,
            "status": status,
            "room_number": room_number,
        }
        if booking_id is not None:
            fields["booking_id"] = booking_id
        candidate = Booking(**fields)
        if candidate.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidBookingError("new bookings must start as pending or confirmed")
        check = self._conflict_check(self._resolve_granularity(granularity), allow_overbooking)
        return self._repository.insert_booking(candidate, conflict_check=check)

    def preview_conflicts(
        self,
        candidate: Booking,
        granularity: Optional[str] = None,
    ) -> ConflictResult:
        """Report overlaps for ``candidate`` without persisting anything."""
        self._inventory.total_rooms(candidate.room_type)
        existing = self._repository.list_bookings(
            room_type=candidate.room_type,
            date_range=candidate.stay_range(),
        )
        scoped = conflict_scope(existing, candidate, self._resolve_granularity(granularity))
        return detect_conflict(scoped, candidate)

    def transition_status(
        self,
        booking_id: str,
        new_status: BookingStatus | str,
        *,
        granularity: Optional[str] = None,
        allow_overbooking: bool = False,
    ) -> Booking:
        check = self._conflict_check(self._resolve_granularity(granularity), allow_overbooking)
        return self._repository.update_booking_status(
            booking_id,
            new_status,
            conflict_check=check,
        )

    def confirm(
        self,
        booking_id: str,
        *,
        granularity: Optional[str] = None,
        allow_overbooking: bool = False,
    ) -> Booking:
        return self.transition_status(
            booking_id,
            BookingStatus.CONFIRMED,
            granularity=granularity,
            allow_overbooking=allow_overbooking,
        )

    def check_in(self, booking_id: str) -> Booking:
        return self.transition_status(booking_id, BookingStatus.CHECKED_IN)

    def check_out(self, booking_id: str) -> Booking:
        return self.transition_status(booking_id, BookingStatus.CHECKED_OUT)

    def cancel(self, booking_id: str) -> Booking:
        return self.transition_status(booking_id, BookingStatus.CANCELLED)

    def amend_dates(
        self,
        booking_id: str,
        check_in: date,
        check_out: date,
        *,
        granularity: Optional[str] = None,
        allow_overbooking: bool = False,
    ) -> Booking:
        check = self._conflict_check(self._resolve_granularity(granularity), allow_overbooking)
        return self._repository.amend_booking_dates(
            booking_id,
            check_in,
            check_out,
            conflict_check=check,
        )

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._repository.get_booking(booking_id)

    def list_bookings(
        self,
        room_type: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        status: BookingStatus | str | Iterable[BookingStatus | str] | None = None,
    ) -> list[Booking]:
        return self._repository.list_bookings(
            room_type=room_type,
            date_range=date_range,
            status=status,
        )
