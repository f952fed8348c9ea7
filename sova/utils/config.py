"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()

CONFLICT_GRANULARITIES = ("room_type", "room_number")


def _parse_inventory(raw: str) -> dict[str, int]:
    """Parse ``"Standard=40,Deluxe=20"`` into a room type -> count mapping."""
    inventory: dict[str, int] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        room_type, separator, count = chunk.partition("=")
        room_type = room_type.strip()
        if not separator or not room_type:
            raise ValueError(f"SOVA_ROOM_INVENTORY entry '{chunk}' must look like Type=count")
        try:
            total = int(count.strip())
        except ValueError as exc:
            raise ValueError(f"SOVA_ROOM_INVENTORY count for '{room_type}' must be an integer") from exc
        if total < 0:
            raise ValueError(f"SOVA_ROOM_INVENTORY count for '{room_type}' must be >= 0")
        inventory[room_type] = total
    return inventory


def _parse_optional_decimal(raw: Optional[str]) -> Optional[Decimal]:
    if raw is None or not raw.strip():
        return None
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError("SOVA_DEFAULT_NIGHTLY_RATE must be a decimal amount") from exc
    if value < 0:
        raise ValueError("SOVA_DEFAULT_NIGHTLY_RATE must be >= 0")
    return value


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str = "SOVA Occupancy Service"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    database_path: Path = Path("data/sova.db")
    db_busy_timeout_seconds: float = 10.0
    room_inventory: dict[str, int] = field(
        default_factory=lambda: {"Standard": 40, "Deluxe": 20, "Suite": 8}
    )
    default_nightly_rate: Optional[Decimal] = None
    conflict_granularity: str = "room_type"
    seed_demo_data: bool = False
    seed_random_seed: int = 42
    seed_days: int = 30


def validate_settings(settings: Settings) -> None:
    if settings.conflict_granularity not in CONFLICT_GRANULARITIES:
        raise ValueError(
            f"conflict_granularity must be one of {', '.join(CONFLICT_GRANULARITIES)}"
        )
    if settings.db_busy_timeout_seconds <= 0:
        raise ValueError("db_busy_timeout_seconds must be > 0")
    if settings.seed_days <= 0:
        raise ValueError("seed_days must be > 0")
    for room_type, total in settings.room_inventory.items():
        if total < 0:
            raise ValueError(f"room_inventory total for '{room_type}' must be >= 0")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings from the environment once per process."""
    defaults = Settings()
    raw_inventory = os.getenv("SOVA_ROOM_INVENTORY")
    settings = Settings(
        app_name=os.getenv("SOVA_APP_NAME", defaults.app_name),
        app_version=os.getenv("SOVA_APP_VERSION", defaults.app_version),
        log_level=os.getenv("SOVA_LOG_LEVEL", defaults.log_level).upper(),
        database_path=Path(os.getenv("SOVA_DATABASE_PATH", str(defaults.database_path))),
        db_busy_timeout_seconds=float(
            os.getenv("SOVA_DB_BUSY_TIMEOUT_SECONDS", str(defaults.db_busy_timeout_seconds))
        ),
        room_inventory=(
            _parse_inventory(raw_inventory)
            if raw_inventory is not None
            else dict(defaults.room_inventory)
        ),
        default_nightly_rate=_parse_optional_decimal(os.getenv("SOVA_DEFAULT_NIGHTLY_RATE")),
        conflict_granularity=os.getenv(
            "SOVA_CONFLICT_GRANULARITY", defaults.conflict_granularity
        ).strip().lower(),
        seed_demo_data=_parse_bool(os.getenv("SOVA_SEED_DEMO_DATA", "false")),
        seed_random_seed=int(os.getenv("SOVA_SEED_RANDOM_SEED", str(defaults.seed_random_seed))),
        seed_days=int(os.getenv("SOVA_SEED_DAYS", str(defaults.seed_days))),
    )
    validate_settings(settings)
    return settings
