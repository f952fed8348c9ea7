from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from sova.controllers.booking_controller import router as booking_router
from sova.controllers.report_controller import router as report_router
from sova.repository.booking_repository import BookingRepository
from sova.services.booking_service import BookingService
from sova.services.reporting_service import ReportingService
from sova.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    base = get_settings()
    return replace(
        base,
        database_path=tmp_path / filename,
        room_inventory={"Standard": 2, "Deluxe": 2},
        conflict_granularity="room_type",
        seed_demo_data=False,
    )


def _build_test_app(tmp_path) -> tuple[FastAPI, BookingRepository]:
    settings = _build_test_settings(tmp_path, "booking_flow.db")
    repository = BookingRepository(settings)
    repository.initialize_database()

    app = FastAPI()
    app.include_router(booking_router)
    app.include_router(report_router)
    app.state.repository = repository
    app.state.booking_service = BookingService(repository=repository, settings=settings)
    app.state.reporting_service = ReportingService(repository=repository, settings=settings)
    return app, repository


def _payload(**overrides) -> dict:
    payload = {
        "guest_id": "guest-1",
        "room_type": "Standard",
        "check_in": "2025-06-01",
        "check_out": "2025-06-03",
        "rate_per_night": "100.00",
        "status": "confirmed",
    }
    payload.update(overrides)
    return payload


def test_booking_end_to_end_flow(tmp_path):
    app, repository = _build_test_app(tmp_path)

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json() == {"status": "ok"}

        inventory = client.get("/inventory")
        assert inventory.status_code == 200
        assert inventory.json()["room_types"] == {"Deluxe": 2, "Standard": 2}
        assert inventory.json()["total_capacity"] == 4

        first = client.post("/bookings", json=_payload(booking_id="id1"))
        assert first.status_code == 201
        assert first.json()["nights"] == 2
        assert first.json()["status"] == "confirmed"

        second = client.post(
            "/bookings",
            json=_payload(booking_id="id2", check_in="2025-06-02", check_out="2025-06-04", rate_per_night="200"),
        )
        assert second.status_code == 201

        full = client.post(
            "/bookings",
            json=_payload(check_in="2025-06-02", check_out="2025-06-03"),
        )
        assert full.status_code == 409
        assert full.json()["detail"]["booking_ids"] == ["id1", "id2"]

        fetched = client.get("/bookings/id1")
        assert fetched.status_code == 200
        assert fetched.json()["check_out"] == "2025-06-03"

        listed = client.get(
            "/bookings",
            params={"room_type": "Standard", "start": "2025-06-03", "end": "2025-06-10"},
        )
        assert listed.status_code == 200
        assert [item["booking_id"] for item in listed.json()] == ["id2"]

        occupancy = client.get(
            "/reports/occupancy",
            params={"room_type": "Standard", "start": "2025-06-01", "end": "2025-06-04"},
        )
        assert occupancy.status_code == 200
        assert [day["occupied"] for day in occupancy.json()["days"]] == [1, 2, 1]
        assert occupancy.json()["overbooked_days"] == []

        kpis = client.get("/reports/kpis", params={"start": "2025-06-01", "end": "2025-06-04"})
        assert kpis.status_code == 200
        body = kpis.json()
        assert [day["occupancy_rate"] for day in body["days"]] == [25.0, 50.0, 25.0]
        assert body["adr"] == 150.0
        assert body["total_room_revenue"] == 600.0

    assert repository.count_bookings() == 2


def test_lifecycle_over_http(tmp_path):
    app, repository = _build_test_app(tmp_path)

    with TestClient(app) as client:
        created = client.post("/bookings", json=_payload(booking_id="stay", status="pending"))
        assert created.status_code == 201

        for target in ("confirmed", "checked_in", "checked_out"):
            moved = client.post("/bookings/stay/status", json={"status": target})
            assert moved.status_code == 200
            assert moved.json()["status"] == target

        reopened = client.post("/bookings/stay/status", json={"status": "confirmed"})
        assert reopened.status_code == 409
        assert "checked_out -> confirmed" in reopened.json()["detail"]

        missing = client.post("/bookings/ghost/status", json={"status": "cancelled"})
        assert missing.status_code == 404

    assert repository.get_booking("stay").status.value == "checked_out"


def test_confirming_held_bookings_respects_capacity(tmp_path):
    app, repository = _build_test_app(tmp_path)

    with TestClient(app) as client:
        for booking_id in ("h1", "h2", "h3"):
            held = client.post("/bookings", json=_payload(booking_id=booking_id, status="pending"))
            assert held.status_code == 201

        assert client.post("/bookings/h1/status", json={"status": "confirmed"}).status_code == 200
        assert client.post("/bookings/h2/status", json={"status": "confirmed"}).status_code == 200

        full = client.post("/bookings/h3/status", json={"status": "confirmed"})
        assert full.status_code == 409
        assert full.json()["detail"]["booking_ids"] == ["h1", "h2"]

        forced = client.post(
            "/bookings/h3/status",
            json={"status": "confirmed", "allow_overbooking": True},
        )
        assert forced.status_code == 200

        occupancy = client.get(
            "/reports/occupancy",
            params={"room_type": "Standard", "start": "2025-06-01", "end": "2025-06-03"},
        )
        assert occupancy.json()["overbooked_days"] == ["2025-06-01", "2025-06-02"]

    assert repository.get_booking("h3").status.value == "confirmed"


def test_amend_dates_over_http(tmp_path):
    app, _ = _build_test_app(tmp_path)

    with TestClient(app) as client:
        client.post("/bookings", json=_payload(booking_id="mine", room_type="Deluxe"))
        client.post(
            "/bookings",
            json=_payload(booking_id="a", room_type="Deluxe", check_in="2025-06-05", check_out="2025-06-07"),
        )
        client.post(
            "/bookings",
            json=_payload(booking_id="b", room_type="Deluxe", check_in="2025-06-05", check_out="2025-06-07"),
        )

        moved = client.post(
            "/bookings/mine/dates",
            json={"check_in": "2025-06-02", "check_out": "2025-06-05"},
        )
        assert moved.status_code == 200
        assert moved.json()["nights"] == 3

        blocked = client.post(
            "/bookings/mine/dates",
            json={"check_in": "2025-06-04", "check_out": "2025-06-06"},
        )
        assert blocked.status_code == 409
        assert blocked.json()["detail"]["booking_ids"] == ["a", "b"]

        missing = client.post(
            "/bookings/ghost/dates",
            json={"check_in": "2025-06-04", "check_out": "2025-06-06"},
        )
        assert missing.status_code == 404


def test_invalid_payloads_are_rejected(tmp_path):
    app, repository = _build_test_app(tmp_path)

    with TestClient(app) as client:
        same_day = client.post("/bookings", json=_payload(check_out="2025-06-01"))
        assert same_day.status_code == 422

        negative = client.post("/bookings", json=_payload(rate_per_night="-5"))
        assert negative.status_code == 422

        checked_in = client.post("/bookings", json=_payload(status="checked_in"))
        assert checked_in.status_code == 422

        unknown_type = client.post("/bookings", json=_payload(room_type="Penthouse"))
        assert unknown_type.status_code == 404

        missing = client.get("/bookings/nope")
        assert missing.status_code == 404

        half_range = client.get("/bookings", params={"start": "2025-06-01"})
        assert half_range.status_code == 400

        reversed_range = client.get(
            "/reports/occupancy",
            params={"room_type": "Standard", "start": "2025-06-04", "end": "2025-06-01"},
        )
        assert reversed_range.status_code == 400

        unknown_report = client.get(
            "/reports/occupancy",
            params={"room_type": "Penthouse", "start": "2025-06-01", "end": "2025-06-04"},
        )
        assert unknown_report.status_code == 404

    assert repository.count_bookings() == 0


def test_conflict_preview_and_orders(tmp_path):
    app, repository = _build_test_app(tmp_path)

    with TestClient(app) as client:
        client.post(
            "/bookings",
            json=_payload(booking_id="id4", check_in="2025-07-11", check_out="2025-07-13"),
        )

        preview = client.post(
            "/bookings/conflicts",
            json={"room_type": "Standard", "check_in": "2025-07-10", "check_out": "2025-07-12"},
        )
        assert preview.status_code == 200
        assert preview.json() == {"has_conflict": True, "booking_ids": ["id4"]}

        clear = client.post(
            "/bookings/conflicts",
            json={"room_type": "Standard", "check_in": "2025-07-13", "check_out": "2025-07-15"},
        )
        assert clear.json() == {"has_conflict": False, "booking_ids": []}

        unknown = client.post(
            "/bookings/conflicts",
            json={"room_type": "Penthouse", "check_in": "2025-07-10", "check_out": "2025-07-12"},
        )
        assert unknown.status_code == 404

        order = client.post("/orders", json={"order_date": "2025-07-11", "amount": "42.10"})
        assert order.status_code == 201
        assert order.json()["status"] == "completed"

        orders = client.get("/orders", params={"start": "2025-07-01", "end": "2025-08-01"})
        assert [item["amount"] for item in orders.json()] == [42.1]

        stats = client.get("/reports/statistics")
        assert stats.status_code == 200
        assert stats.json()["total_bookings"] == 1
        assert stats.json()["completed_orders"] == 1

    assert repository.count_bookings() == 1


def test_missing_store_returns_service_unavailable():
    app = FastAPI()
    app.include_router(booking_router)

    with TestClient(app) as client:
        response = client.get("/orders")

    assert response.status_code == 503
