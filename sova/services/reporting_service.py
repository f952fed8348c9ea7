"""Report assembly: store snapshots in, engine results and tabular views out."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

import pandas as pd

from sova.domain.models import (
    BookingStatistics,
    BookingStatus,
    DateRange,
    KPIDay,
    KPIReport,
    OccupancyDay,
    OrderStatus,
    RoomInventory,
)
from sova.repository.booking_repository import BookingRepository
from sova.services.availability_engine import compute_occupancy
from sova.services.booking_service import build_inventory
from sova.services.kpi_service import compute_kpis
from sova.utils.config import Settings, get_settings
from sova.utils.logger import get_logger


logger = get_logger(__name__)


class ReportingService:
    """Every call reads a fresh snapshot; reports are point-in-time views."""

    def __init__(
        self,
        repository: Optional[BookingRepository] = None,
        settings: Optional[Settings] = None,
        inventory: Optional[RoomInventory] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or BookingRepository(self._settings)
        self._inventory = inventory or build_inventory(self._settings)

    def occupancy_report(self, room_type: str, date_range: DateRange) -> tuple[OccupancyDay, ...]:
        total_rooms = self._inventory.total_rooms(room_type)
        bookings = self._repository.list_bookings(room_type=room_type, date_range=date_range)
        days = compute_occupancy(bookings, room_type, date_range, total_rooms)
        overbooked = [day.day.isoformat() for day in days if day.overbooked]
        if overbooked:
            logger.warning(
                "%s overbooked on %s",
                room_type,
                ", ".join(overbooked),
            )
        return days

    def kpi_report(self, date_range: DateRange) -> KPIReport:
        # One extra leading day so stays checking out on the first day are included.
        bookings = self._repository.list_bookings(
            date_range=DateRange(date_range.start - timedelta(days=1), date_range.end),
        )
        orders = self._repository.list_orders(date_range)
        report = compute_kpis(bookings, orders, date_range, self._inventory)
        logger.info(
            "KPI report %s -> %s: avg occupancy %s%%, revenue %s",
            date_range.start.isoformat(),
            date_range.end.isoformat(),
            report.average_occupancy_rate,
            report.total_revenue,
        )
        return report

    def booking_statistics(self, date_range: Optional[DateRange] = None) -> BookingStatistics:
        bookings = self._repository.list_bookings(date_range=date_range)
        orders = self._repository.list_orders(date_range)
        frame = pd.DataFrame(
            [
                {"status": booking.status.value, "nights": booking.nights}
                for booking in bookings
            ],
            columns=["status", "nights"],
        )
        status_counts = {status.value: 0 for status in BookingStatus}
        if not frame.empty:
            status_counts.update(
                {str(key): int(value) for key, value in frame["status"].value_counts().items()}
            )
        return BookingStatistics(
            total_bookings=int(len(frame)),
            average_stay_length=float(frame["nights"].mean()) if not frame.empty else 0.0,
            status_counts=status_counts,
            completed_orders=sum(1 for order in orders if order.status is OrderStatus.COMPLETED),
        )

    def occupancy_frame(self, room_type: str, date_range: DateRange) -> pd.DataFrame:
        days = self.occupancy_report(room_type, date_range)
        frame = pd.DataFrame([day.to_dict() for day in days])
        frame["day"] = pd.to_datetime(frame["day"], format="%Y-%m-%d")
        return frame.set_index("day")

    def kpi_frame(self, date_range: DateRange) -> pd.DataFrame:
        report = self.kpi_report(date_range)
        frame = pd.DataFrame([kpi_day_to_dict(day) for day in report.days])
        frame["day"] = pd.to_datetime(frame["day"], format="%Y-%m-%d")
        return frame.set_index("day")


def kpi_day_to_dict(day: KPIDay) -> dict[str, Any]:
    return {
        "day": day.day.isoformat(),
        "occupied": day.occupied,
        "total_rooms": day.total_rooms,
        "occupancy_rate": float(day.occupancy_rate),
        "adr": float(day.adr),
        "revpar": float(day.revpar),
        "room_revenue": float(day.room_revenue),
        "revenue": float(day.revenue),
        "check_ins": day.check_ins,
        "check_outs": day.check_outs,
        "overbooked": day.overbooked,
    }
