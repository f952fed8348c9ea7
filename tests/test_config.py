from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import pytest

from sova.services.booking_service import build_inventory
from sova.utils.config import (
    Settings,
    _parse_inventory,
    _parse_optional_decimal,
    get_settings,
    validate_settings,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_inventory_string_is_parsed():
    assert _parse_inventory("Standard=40, Deluxe = 20,,Suite=0") == {
        "Standard": 40,
        "Deluxe": 20,
        "Suite": 0,
    }


@pytest.mark.parametrize("raw", ["Standard", "=4", "Standard=many", "Standard=-1"])
def test_malformed_inventory_strings_raise(raw):
    with pytest.raises(ValueError):
        _parse_inventory(raw)


def test_optional_decimal_parsing():
    assert _parse_optional_decimal(None) is None
    assert _parse_optional_decimal("  ") is None
    assert _parse_optional_decimal("129.50") == Decimal("129.50")
    with pytest.raises(ValueError):
        _parse_optional_decimal("cheap")
    with pytest.raises(ValueError):
        _parse_optional_decimal("-1")


def test_settings_are_read_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SOVA_ROOM_INVENTORY", "Standard=3,Suite=1")
    monkeypatch.setenv("SOVA_DEFAULT_NIGHTLY_RATE", "99")
    monkeypatch.setenv("SOVA_CONFLICT_GRANULARITY", "ROOM_NUMBER")
    monkeypatch.setenv("SOVA_DATABASE_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("SOVA_SEED_DEMO_DATA", "yes")

    settings = get_settings()

    assert settings.room_inventory == {"Standard": 3, "Suite": 1}
    assert settings.default_nightly_rate == Decimal("99")
    assert settings.conflict_granularity == "room_number"
    assert settings.database_path == Path(tmp_path / "env.db")
    assert settings.seed_demo_data is True
    assert build_inventory(settings).total_capacity == 4


def test_unknown_granularity_from_environment_fails(monkeypatch):
    monkeypatch.setenv("SOVA_CONFLICT_GRANULARITY", "floor")

    with pytest.raises(ValueError):
        get_settings()


@pytest.mark.parametrize(
    "overrides",
    [
        {"db_busy_timeout_seconds": 0},
        {"seed_days": 0},
        {"room_inventory": {"Standard": -2}},
    ],
)
def test_validate_settings_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        validate_settings(replace(Settings(), **overrides))
