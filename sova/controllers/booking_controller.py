"""HTTP controller layer for bookings, orders and inventory."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from sova.controllers.dependencies import get_booking_service, get_repository
from sova.domain.errors import (
    BookingNotFoundError,
    ConflictError,
    InvalidBookingError,
    InvalidRangeError,
    InvalidTransitionError,
    MalformedRecordError,
    UnknownRoomTypeError,
)
from sova.domain.models import Booking, BookingStatus, DateRange, Order, OrderStatus
from sova.repository.booking_repository import BookingRepository
from sova.services.booking_service import BookingService
from sova.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])

Granularity = Literal["room_type", "room_number"]


class StayDates(BaseModel):
    check_in: date
    check_out: date

    @field_validator("check_out")
    @classmethod
    def validate_check_out_after_check_in(cls, value: date, info: ValidationInfo) -> date:
        check_in = info.data.get("check_in")
        if check_in is not None and value <= check_in:
            raise ValueError("check_out must be after check_in")
        return value


class BookingCreateRequest(StayDates):
    guest_id: str = Field(min_length=1)
    room_type: str = Field(min_length=1)
    room_number: Optional[str] = Field(default=None, min_length=1)
    rate_per_night: Decimal = Field(ge=0)
    status: Literal["pending", "confirmed"] = "pending"
    booking_id: Optional[str] = Field(default=None, min_length=1)
    granularity: Optional[Granularity] = None
    allow_overbooking: bool = False


class ConflictPreviewRequest(StayDates):
    room_type: str = Field(min_length=1)
    room_number: Optional[str] = Field(default=None, min_length=1)
    booking_id: Optional[str] = Field(default=None, min_length=1)
    granularity: Optional[Granularity] = None


class ConflictPreviewResponse(BaseModel):
    has_conflict: bool
    booking_ids: list[str]


class StatusUpdateRequest(BaseModel):
    status: BookingStatus
    granularity: Optional[Granularity] = None
    allow_overbooking: bool = False


class DateAmendRequest(StayDates):
    granularity: Optional[Granularity] = None
    allow_overbooking: bool = False


class BookingResponse(BaseModel):
    booking_id: str
    guest_id: str
    room_type: str
    room_number: Optional[str] = None
    check_in: date
    check_out: date
    nights: int = Field(gt=0)
    status: BookingStatus
    rate_per_night: float = Field(ge=0.0)
    created_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> BookingResponse:
        return cls(
            booking_id=booking.booking_id,
            guest_id=booking.guest_id,
            room_type=booking.room_type,
            room_number=booking.room_number,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=booking.nights,
            status=booking.status,
            rate_per_night=float(booking.rate_per_night),
            created_at=booking.created_at,
        )


class OrderCreateRequest(BaseModel):
    order_date: date
    amount: Decimal = Field(ge=0)
    status: OrderStatus = OrderStatus.COMPLETED
    description: Optional[str] = None


class OrderResponse(BaseModel):
    order_id: str
    order_date: date
    amount: float = Field(ge=0.0)
    status: OrderStatus
    description: Optional[str] = None


class InventoryResponse(BaseModel):
    room_types: dict[str, int]
    total_capacity: int = Field(ge=0)
    default_nightly_rate: Optional[float] = None


def _conflict_detail(exc: ConflictError) -> dict[str, object]:
    return {"message": str(exc), "booking_ids": sorted(exc.booking_ids)}


def _optional_range(start: Optional[date], end: Optional[date]) -> Optional[DateRange]:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must be supplied together",
        )
    try:
        return DateRange(start, end)
    except InvalidRangeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get("/health", status_code=status.HTTP_200_OK)
async def health(request: Request) -> dict[str, str]:
    ready = getattr(request.app.state, "repository", None) is not None
    return {"status": "ok" if ready else "starting"}


@router.get("/inventory", response_model=InventoryResponse, status_code=status.HTTP_200_OK)
async def get_inventory(
    service: BookingService = Depends(get_booking_service),
) -> InventoryResponse:
    inventory = service.inventory
    return InventoryResponse(
        room_types={room_type: inventory.total_rooms(room_type) for room_type in inventory.room_types},
        total_capacity=inventory.total_capacity,
        default_nightly_rate=(
            float(inventory.default_nightly_rate)
            if inventory.default_nightly_rate is not None
            else None
        ),
    )


@router.get("/bookings", response_model=list[BookingResponse], status_code=status.HTTP_200_OK)
async def list_bookings(
    room_type: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    date_range = _optional_range(start, end)
    try:
        bookings = service.list_bookings(
            room_type=room_type,
            date_range=date_range,
            status=booking_status,
        )
    except MalformedRecordError as exc:
        logger.error("Booking store returned malformed data: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Booking store returned malformed data",
        ) from exc
    return [BookingResponse.from_booking(booking) for booking in bookings]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    booking = service.get_booking(booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking '{booking_id}' was not found",
        )
    return BookingResponse.from_booking(booking)


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Validate, conflict-check and persist a booking in one store transaction."""
    try:
        booking = service.create_booking(
            guest_id=payload.guest_id,
            room_type=payload.room_type,
            room_number=payload.room_number,
            check_in=payload.check_in,
            check_out=payload.check_out,
            rate_per_night=payload.rate_per_night,
            status=BookingStatus(payload.status),
            booking_id=payload.booking_id,
            granularity=payload.granularity,
            allow_overbooking=payload.allow_overbooking,
        )
        return BookingResponse.from_booking(booking)
    except ConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_conflict_detail(exc),
        ) from exc
    except UnknownRoomTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except InvalidBookingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc


@router.post(
    "/bookings/conflicts",
    response_model=ConflictPreviewResponse,
    status_code=status.HTTP_200_OK,
)
async def preview_conflicts(
    payload: ConflictPreviewRequest,
    service: BookingService = Depends(get_booking_service),
) -> ConflictPreviewResponse:
    """Report overlapping bookings for a prospective stay without storing it."""
    fields = {
        "guest_id": "conflict-preview",
        "room_type": payload.room_type,
        "room_number": payload.room_number,
        "check_in": payload.check_in,
        "check_out": payload.check_out,
        "rate_per_night": Decimal("0"),
        "status": BookingStatus.CONFIRMED,
    }
    if payload.booking_id is not None:
        fields["booking_id"] = payload.booking_id
    try:
        result = service.preview_conflicts(Booking(**fields), granularity=payload.granularity)
    except InvalidBookingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except UnknownRoomTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return ConflictPreviewResponse(
        has_conflict=result.has_conflict,
        booking_ids=sorted(result.booking_ids),
    )


@router.post(
    "/bookings/{booking_id}/status",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def update_booking_status(
    booking_id: str,
    payload: StatusUpdateRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.transition_status(
            booking_id,
            payload.status,
            granularity=payload.granularity,
            allow_overbooking=payload.allow_overbooking,
        )
        return BookingResponse.from_booking(booking)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except ConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_conflict_detail(exc),
        ) from exc
    except UnknownRoomTypeError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Booking references a room type missing from inventory: {exc}",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking status failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking status",
        ) from exc


@router.post(
    "/bookings/{booking_id}/dates",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def amend_booking_dates(
    booking_id: str,
    payload: DateAmendRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.amend_dates(
            booking_id,
            payload.check_in,
            payload.check_out,
            granularity=payload.granularity,
            allow_overbooking=payload.allow_overbooking,
        )
        return BookingResponse.from_booking(booking)
    except BookingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_conflict_detail(exc),
        ) from exc
    except InvalidBookingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking amendment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to amend booking",
        ) from exc


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=order.order_id,
        order_date=order.order_date,
        amount=float(order.amount),
        status=order.status,
        description=order.description,
    )


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateRequest,
    repository: BookingRepository = Depends(get_repository),
) -> OrderResponse:
    try:
        order = repository.insert_order(
            Order(
                order_date=payload.order_date,
                amount=payload.amount,
                status=payload.status,
                description=payload.description,
            )
        )
    except InvalidBookingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return _order_response(order)


@router.get("/orders", response_model=list[OrderResponse], status_code=status.HTTP_200_OK)
async def list_orders(
    start: Optional[date] = None,
    end: Optional[date] = None,
    repository: BookingRepository = Depends(get_repository),
) -> list[OrderResponse]:
    orders = repository.list_orders(_optional_range(start, end))
    return [_order_response(order) for order in orders]
