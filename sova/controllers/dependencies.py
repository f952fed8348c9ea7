"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from sova.repository.booking_repository import BookingRepository
from sova.services.booking_service import BookingService
from sova.services.reporting_service import ReportingService
from sova.utils.config import get_settings


def get_repository(request: Request) -> BookingRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking store is not initialized",
        )
    return repository


def get_booking_service(request: Request) -> BookingService:
    service = getattr(request.app.state, "booking_service", None)
    if service is None:
        service = BookingService(
            repository=get_repository(request),
            settings=get_settings(),
        )
        request.app.state.booking_service = service
    return service


def get_reporting_service(request: Request) -> ReportingService:
    service = getattr(request.app.state, "reporting_service", None)
    if service is None:
        service = ReportingService(
            repository=get_repository(request),
            settings=get_settings(),
        )
        request.app.state.reporting_service = service
    return service
