"""Repository layer responsible for all database access."""

from __future__ import annotations

import random
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from threading import RLock
from typing import Callable, Iterable, Iterator, Optional

from sova.domain.errors import (
    BookingError,
    BookingNotFoundError,
    InvalidBookingError,
    MalformedRecordError,
)
from sova.domain.lifecycle import AMENDABLE_STATUSES, validate_transition
from sova.domain.models import (
    Booking,
    BookingStatus,
    DateRange,
    Order,
    OrderStatus,
    RoomInventory,
)
from sova.utils.config import Settings, get_settings
from sova.utils.logger import get_logger


logger = get_logger(__name__)

# Receives the candidate and the overlapping non-cancelled bookings of its
# room type; raises ConflictError to abort the write.
ConflictCheck = Callable[[Booking, list[Booking]], None]

_BOOKING_COLUMNS = (
    "id, guest_id, room_type, room_number, check_in, check_out, "
    "status, rate_per_night, created_at"
)


class BookingRepository:
    """SQLite store for bookings and orders.

    Every write runs under ``BEGIN IMMEDIATE`` plus a process-level lock, so
    a conflict check performed inside the write sees every committed
    booking and no other writer can slip in before the insert.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = RLock()

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.db_busy_timeout_seconds,
            isolation_level=None,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        return connection

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            yield connection
        finally:
            connection.close()

    @contextmanager
    def _writing(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock:
            connection = self._connect()
            try:
                connection.execute("BEGIN IMMEDIATE;")
                try:
                    yield connection
                except BaseException:
                    connection.execute("ROLLBACK;")
                    raise
                connection.execute("COMMIT;")
            finally:
                connection.close()

    def initialize_database(self) -> None:
        """Create tables and indexes; safe to call repeatedly."""
        try:
            with self._writing() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id TEXT PRIMARY KEY,
                        guest_id TEXT NOT NULL,
                        room_type TEXT NOT NULL,
                        room_number TEXT,
                        check_in TEXT NOT NULL,
                        check_out TEXT NOT NULL,
                        status TEXT NOT NULL,
                        rate_per_night TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        CHECK (check_out > check_in)
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Orders (
                        id TEXT PRIMARY KEY,
                        order_date TEXT NOT NULL,
                        amount TEXT NOT NULL,
                        status TEXT NOT NULL,
                        description TEXT
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_type_stay
                    ON Bookings(room_type, check_in, check_out);
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_orders_date
                    ON Orders(order_date);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    # --- row mapping -------------------------------------------------------

    @staticmethod
    def _row_to_booking(row: sqlite3.Row) -> Booking:
        try:
            return Booking(
                booking_id=str(row["id"]),
                guest_id=str(row["guest_id"]),
                room_type=str(row["room_type"]),
                room_number=row["room_number"],
                check_in=date.fromisoformat(row["check_in"]),
                check_out=date.fromisoformat(row["check_out"]),
                status=BookingStatus(row["status"]),
                rate_per_night=Decimal(row["rate_per_night"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
        except (BookingError, ArithmeticError, TypeError, ValueError) as exc:
            raise MalformedRecordError(f"Stored booking row {row['id']!r} is invalid: {exc}") from exc

    @staticmethod
    def _row_to_order(row: sqlite3.Row) -> Order:
        try:
            return Order(
                order_id=str(row["id"]),
                order_date=date.fromisoformat(row["order_date"]),
                amount=Decimal(row["amount"]),
                status=OrderStatus(row["status"]),
                description=row["description"],
            )
        except (BookingError, ArithmeticError, TypeError, ValueError) as exc:
            raise MalformedRecordError(f"Stored order row {row['id']!r} is invalid: {exc}") from exc

    @staticmethod
    def _booking_params(booking: Booking) -> tuple[Optional[str], ...]:
        return (
            booking.booking_id,
            booking.guest_id,
            booking.room_type,
            booking.room_number,
            booking.check_in.isoformat(),
            booking.check_out.isoformat(),
            booking.status.value,
            str(booking.rate_per_night),
            booking.created_at.isoformat(),
        )

    # --- bookings ----------------------------------------------------------

    def _fetch_booking(self, conn: sqlite3.Connection, booking_id: str) -> Booking:
        row = conn.execute(
            f"SELECT {_BOOKING_COLUMNS} FROM Bookings WHERE id = ?;",
            (booking_id,),
        ).fetchone()
        if row is None:
            raise BookingNotFoundError(booking_id)
        return self._row_to_booking(row)

    def _fetch_overlapping(
        self,
        conn: sqlite3.Connection,
        room_type: str,
        stay: DateRange,
    ) -> list[Booking]:
        rows = conn.execute(
            f"""
            SELECT {_BOOKING_COLUMNS}
            FROM Bookings
            WHERE room_type = ?
              AND status != ?
              AND check_in < ?
              AND check_out > ?
            ORDER BY check_in ASC, id ASC;
            """,
            (
                room_type,
                BookingStatus.CANCELLED.value,
                stay.end.isoformat(),
                stay.start.isoformat(),
            ),
        ).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._reading() as conn:
            try:
                return self._fetch_booking(conn, booking_id)
            except BookingNotFoundError:
                return None

    def list_bookings(
        self,
        room_type: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        status: BookingStatus | str | Iterable[BookingStatus | str] | None = None,
    ) -> list[Booking]:
        """Return bookings matching every supplied filter.

        ``date_range`` keeps bookings whose stay overlaps the range.
        """
        clauses: list[str] = []
        params: list[str] = []
        if room_type is not None:
            clauses.append("room_type = ?")
            params.append(room_type)
        if date_range is not None:
            clauses.append("check_in < ? AND check_out > ?")
            params.extend([date_range.end.isoformat(), date_range.start.isoformat()])
        if status is not None:
            statuses = [status] if isinstance(status, (str, BookingStatus)) else list(status)
            values = [BookingStatus(item).value for item in statuses]
            if not values:
                return []
            clauses.append(f"status IN ({','.join('?' for _ in values)})")
            params.extend(values)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._reading() as conn:
            rows = conn.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                {where}
                ORDER BY check_in ASC, created_at ASC, id ASC;
                """,
                tuple(params),
            ).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def insert_booking(
        self,
        booking: Booking,
        conflict_check: Optional[ConflictCheck] = None,
    ) -> Booking:
        """Persist ``booking``; ``conflict_check`` runs inside the same write."""
        with self._writing() as conn:
            if conflict_check is not None:
                existing = self._fetch_overlapping(conn, booking.room_type, booking.stay_range())
                conflict_check(booking, existing)
            try:
                conn.execute(
                    f"""
                    INSERT INTO Bookings ({_BOOKING_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    self._booking_params(booking),
                )
            except sqlite3.IntegrityError as exc:
                raise InvalidBookingError(
                    f"Booking '{booking.booking_id}' could not be stored: {exc}"
                ) from exc
        logger.info(
            "Stored booking %s (%s %s -> %s, %s)",
            booking.booking_id,
            booking.room_type,
            booking.check_in.isoformat(),
            booking.check_out.isoformat(),
            booking.status.value,
        )
        return booking

    def update_booking_status(
        self,
        booking_id: str,
        new_status: BookingStatus | str,
        conflict_check: Optional[ConflictCheck] = None,
    ) -> Booking:
        """Apply a lifecycle transition atomically.

        Confirming a pending booking is the moment it starts holding a room,
        so ``conflict_check`` runs against the current overlaps first.
        """
        with self._writing() as conn:
            current = self._fetch_booking(conn, booking_id)
            target = validate_transition(current.status, new_status)
            if conflict_check is not None and target is BookingStatus.CONFIRMED:
                confirmed = replace(current, status=target)
                existing = self._fetch_overlapping(conn, current.room_type, current.stay_range())
                conflict_check(
                    confirmed,
                    [booking for booking in existing if booking.booking_id != booking_id],
                )
            conn.execute(
                "UPDATE Bookings SET status = ? WHERE id = ?;",
                (target.value, booking_id),
            )
        logger.info(
            "Booking %s moved %s -> %s",
            booking_id,
            current.status.value,
            target.value,
        )
        return replace(current, status=target)

    def amend_booking_dates(
        self,
        booking_id: str,
        check_in: date,
        check_out: date,
        conflict_check: Optional[ConflictCheck] = None,
    ) -> Booking:
        with self._writing() as conn:
            current = self._fetch_booking(conn, booking_id)
            if current.status not in AMENDABLE_STATUSES:
                raise InvalidBookingError(
                    f"Booking '{booking_id}' is {current.status.value}; dates can no longer change"
                )
            amended = replace(current, check_in=check_in, check_out=check_out)
            if conflict_check is not None:
                existing = self._fetch_overlapping(conn, amended.room_type, amended.stay_range())
                conflict_check(
                    amended,
                    [booking for booking in existing if booking.booking_id != booking_id],
                )
            conn.execute(
                "UPDATE Bookings SET check_in = ?, check_out = ? WHERE id = ?;",
                (check_in.isoformat(), check_out.isoformat(), booking_id),
            )
        logger.info(
            "Booking %s amended to %s -> %s",
            booking_id,
            check_in.isoformat(),
            check_out.isoformat(),
        )
        return amended

    def count_bookings(self) -> int:
        with self._reading() as conn:
            return int(conn.execute("SELECT COUNT(*) AS count FROM Bookings;").fetchone()["count"])

    # --- orders ------------------------------------------------------------

    def insert_order(self, order: Order) -> Order:
        with self._writing() as conn:
            conn.execute(
                """
                INSERT INTO Orders (id, order_date, amount, status, description)
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    order.order_id,
                    order.order_date.isoformat(),
                    str(order.amount),
                    order.status.value,
                    order.description,
                ),
            )
        return order

    def list_orders(self, date_range: Optional[DateRange] = None) -> list[Order]:
        """Return orders dated inside ``date_range`` (all orders when omitted)."""
        query = "SELECT id, order_date, amount, status, description FROM Orders"
        params: tuple[str, ...] = ()
        if date_range is not None:
            query += " WHERE order_date >= ? AND order_date < ?"
            params = (date_range.start.isoformat(), date_range.end.isoformat())
        query += " ORDER BY order_date ASC, id ASC;"
        with self._reading() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_order(row) for row in rows]

    # --- demo data ---------------------------------------------------------

    def seed_demo_data(self, inventory: RoomInventory) -> None:
        """Seed deterministic demo bookings and orders when the store is empty.

        Each room gets back-to-back stays separated by random gaps, so the
        seeded data never overbooks.
        """
        if self.count_bookings() > 0:
            logger.info("Bookings already present; skipping demo seed")
            return

        rng = random.Random(self._settings.seed_random_seed)
        today = datetime.now(timezone.utc).date()
        window_start = today - timedelta(days=self._settings.seed_days)
        window_end = today + timedelta(days=self._settings.seed_days)
        base_rates = {"Standard": 180, "Deluxe": 260, "Suite": 420}

        bookings: list[Booking] = []
        for room_type in inventory.room_types:
            base_rate = base_rates.get(room_type, 200)
            for room_index in range(inventory.total_rooms(room_type)):
                room_number = f"{room_type[:1].upper()}{room_index + 101}"
                cursor_day = window_start + timedelta(days=rng.randint(0, 3))
                while cursor_day < window_end:
                    nights = rng.randint(1, 5)
                    check_out = cursor_day + timedelta(days=nights)
                    bookings.append(
                        Booking(
                            guest_id=f"guest-{rng.randint(1000, 9999)}",
                            room_type=room_type,
                            room_number=room_number,
                            check_in=cursor_day,
                            check_out=check_out,
                            status=self._demo_status(rng, cursor_day, check_out, today),
                            rate_per_night=Decimal(base_rate + rng.randint(-20, 40)),
                        )
                    )
                    cursor_day = check_out + timedelta(days=rng.randint(0, 3))

        orders = [
            Order(
                order_date=window_start + timedelta(days=offset),
                amount=Decimal(rng.randint(1500, 9000)) / Decimal(100),
                description=rng.choice(["room service", "shuttle", "spa", "minibar"]),
            )
            for offset in range((window_end - window_start).days)
            for _ in range(rng.randint(0, 6))
        ]

        with self._writing() as conn:
            conn.executemany(
                f"""
                INSERT INTO Bookings ({_BOOKING_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                [self._booking_params(booking) for booking in bookings],
            )
            conn.executemany(
                """
                INSERT INTO Orders (id, order_date, amount, status, description)
                VALUES (?, ?, ?, ?, ?);
                """,
                [
                    (
                        order.order_id,
                        order.order_date.isoformat(),
                        str(order.amount),
                        order.status.value,
                        order.description,
                    )
                    for order in orders
                ],
            )
        logger.info(
            "Demo seed completed with %s bookings and %s orders",
            len(bookings),
            len(orders),
        )

    @staticmethod
    def _demo_status(
        rng: random.Random,
        check_in: date,
        check_out: date,
        today: date,
    ) -> BookingStatus:
        if rng.random() < 0.05:
            return BookingStatus.CANCELLED
        if check_out <= today:
            return BookingStatus.CHECKED_OUT
        if check_in <= today:
            return BookingStatus.CHECKED_IN
        return BookingStatus.CONFIRMED if rng.random() < 0.8 else BookingStatus.PENDING
