"""Controller layer for occupancy and KPI reports."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from sova.controllers.dependencies import get_reporting_service
from sova.domain.errors import InvalidRangeError, MalformedRecordError, UnknownRoomTypeError
from sova.domain.models import DateRange, KPIReport
from sova.services.reporting_service import ReportingService, kpi_day_to_dict
from sova.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


class OccupancyDayResponse(BaseModel):
    day: date
    room_type: str
    occupied: int = Field(ge=0)
    total_rooms: int = Field(ge=0)
    available: int = Field(ge=0)
    overbooked: bool
    overbooked_by: int = Field(ge=0)


class OccupancyReportResponse(BaseModel):
    room_type: str
    start: date
    end: date
    days: list[OccupancyDayResponse]
    overbooked_days: list[date]


class KPIDayResponse(BaseModel):
    day: date
    occupied: int = Field(ge=0)
    total_rooms: int = Field(ge=0)
    occupancy_rate: float = Field(ge=0.0, le=100.0)
    adr: float = Field(ge=0.0)
    revpar: float = Field(ge=0.0)
    room_revenue: float = Field(ge=0.0)
    revenue: float = Field(ge=0.0)
    check_ins: int = Field(ge=0)
    check_outs: int = Field(ge=0)
    overbooked: bool


class KPIReportResponse(BaseModel):
    start: date
    end: date
    days: list[KPIDayResponse]
    average_occupancy_rate: float = Field(ge=0.0, le=100.0)
    peak_occupancy_rate: float = Field(ge=0.0, le=100.0)
    lowest_occupancy_rate: float = Field(ge=0.0, le=100.0)
    adr: float = Field(ge=0.0)
    revpar: float = Field(ge=0.0)
    total_revenue: float = Field(ge=0.0)
    total_room_revenue: float = Field(ge=0.0)
    total_check_ins: int = Field(ge=0)
    total_check_outs: int = Field(ge=0)
    overbooked_days: list[date]

    @classmethod
    def from_report(cls, report: KPIReport) -> KPIReportResponse:
        return cls(
            start=report.date_range.start,
            end=report.date_range.end,
            days=[KPIDayResponse(**kpi_day_to_dict(day)) for day in report.days],
            average_occupancy_rate=float(report.average_occupancy_rate),
            peak_occupancy_rate=float(report.peak_occupancy_rate),
            lowest_occupancy_rate=float(report.lowest_occupancy_rate),
            adr=float(report.adr),
            revpar=float(report.revpar),
            total_revenue=float(report.total_revenue),
            total_room_revenue=float(report.total_room_revenue),
            total_check_ins=report.total_check_ins,
            total_check_outs=report.total_check_outs,
            overbooked_days=list(report.overbooked_days),
        )


class BookingStatisticsResponse(BaseModel):
    total_bookings: int = Field(ge=0)
    average_stay_length: float = Field(ge=0.0)
    status_counts: dict[str, int]
    completed_orders: int = Field(ge=0)


def _date_range(start: date, end: date) -> DateRange:
    try:
        return DateRange(start, end)
    except InvalidRangeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get("/occupancy", response_model=OccupancyReportResponse, status_code=status.HTTP_200_OK)
async def occupancy_report(
    room_type: str,
    start: date,
    end: date,
    service: ReportingService = Depends(get_reporting_service),
) -> OccupancyReportResponse:
    """Per-day occupancy for one room type; overbooked days are flagged, not clamped."""
    date_range = _date_range(start, end)
    try:
        days = service.occupancy_report(room_type, date_range)
    except UnknownRoomTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except MalformedRecordError as exc:
        logger.error("Occupancy report aborted: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Booking store returned malformed data",
        ) from exc
    return OccupancyReportResponse(
        room_type=room_type,
        start=date_range.start,
        end=date_range.end,
        days=[OccupancyDayResponse(**day.to_dict()) for day in days],
        overbooked_days=[day.day for day in days if day.overbooked],
    )


@router.get("/kpis", response_model=KPIReportResponse, status_code=status.HTTP_200_OK)
async def kpi_report(
    start: date,
    end: date,
    service: ReportingService = Depends(get_reporting_service),
) -> KPIReportResponse:
    date_range = _date_range(start, end)
    try:
        report = service.kpi_report(date_range)
    except UnknownRoomTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Stored bookings reference a room type missing from inventory: {exc}",
        ) from exc
    except MalformedRecordError as exc:
        logger.error("KPI report aborted: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Booking store returned malformed data",
        ) from exc
    return KPIReportResponse.from_report(report)


@router.get(
    "/statistics",
    response_model=BookingStatisticsResponse,
    status_code=status.HTTP_200_OK,
)
async def booking_statistics(
    start: Optional[date] = None,
    end: Optional[date] = None,
    service: ReportingService = Depends(get_reporting_service),
) -> BookingStatisticsResponse:
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must be supplied together",
        )
    date_range = _date_range(start, end) if start is not None and end is not None else None
    try:
        stats = service.booking_statistics(date_range)
    except MalformedRecordError as exc:
        logger.error("Booking statistics aborted: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Booking store returned malformed data",
        ) from exc
    return BookingStatisticsResponse(
        total_bookings=stats.total_bookings,
        average_stay_length=stats.average_stay_length,
        status_counts=stats.status_counts,
        completed_orders=stats.completed_orders,
    )
