"""
FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the booking store and services, registers routers, and runs
startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from sova.controllers.booking_controller import router as booking_router
from sova.controllers.report_controller import router as report_router
from sova.repository.booking_repository import BookingRepository
from sova.services.booking_service import BookingService, build_inventory
from sova.services.reporting_service import ReportingService
from sova.utils.config import Settings, get_settings
from sova.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are attached to app.state and resolved by the dependency
    providers; every dependency is traceable from this function.
    """
    settings = settings or get_settings()
    inventory = build_inventory(settings)

    # --- Repository (SQLite booking store + order feed) ---
    repository = BookingRepository(settings)

    # --- Services (engine callers, no direct DB access) ---
    booking_service = BookingService(
        repository=repository,
        settings=settings,
        inventory=inventory,
    )
    reporting_service = ReportingService(
        repository=repository,
        settings=settings,
        inventory=inventory,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(booking_router)
    app.include_router(report_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.booking_service = booking_service
    app.state.reporting_service = reporting_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before the optional demo seed.
    """
    repository: BookingRepository = app.state.repository
    booking_service: BookingService = app.state.booking_service

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo bookings (skipped if Bookings table not empty)")
        repository.seed_demo_data(booking_service.inventory)

    logger.info(
        "Startup complete, inventory %s",
        ", ".join(
            f"{room_type}={booking_service.inventory.total_rooms(room_type)}"
            for room_type in booking_service.inventory.room_types
        ),
    )


# Module-level app object for uvicorn
app = create_app()
