# gym_booking/sync.py
"""Synchronization between the in-memory store and its source of truth.

Services apply a mutation to the store first and then hand the matching
row-level ``Change`` list to a ``Synchronizer``. A failed write is reported as
``PersistenceFailed``; the in-memory state is left as it is.
"""
import abc
import logging
import os
import tempfile
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gym_booking import models
from gym_booking.entities import (
    ACTIVE_STATUSES,
    Admin,
    Booking,
    BookingStatus,
    PaymentStatus,
    Student,
    TimeSlot,
    Trainer,
    Weekday,
    email_key,
)
from gym_booking.exceptions import PersistenceFailed
from gym_booking.store import TABLES, GymStore, Snapshot

logger = logging.getLogger(__name__)


@dataclass
class Change:
    table: str
    op: str  # insert | update | delete
    key: str
    values: Dict[str, Any] = field(default_factory=dict)
    # column values the row must still hold for the write to apply
    expect: Dict[str, Any] = field(default_factory=dict)


# -- row mapping -------------------------------------------------------------

def to_row(entity) -> Dict[str, Any]:
    if isinstance(entity, TimeSlot):
        return {
            "id": entity.id,
            "trainer_id": entity.trainer_id,
            "day": entity.day.value,
            "start_time": entity.start_time,
            "end_time": entity.end_time,
            "is_booked": entity.is_booked,
        }
    if isinstance(entity, Booking):
        return {
            "id": entity.id,
            "student_id": entity.student_id,
            "trainer_id": entity.trainer_id,
            "time_slot_id": entity.time_slot_id,
            "date": entity.date,
            "status": entity.status.value,
            "payment_status": entity.payment_status.value,
            "created_at": entity.created_at,
        }
    row = {
        "id": entity.id,
        "name": entity.name,
        "email": entity.email,
        "email_key": email_key(entity.email),
        "role": entity.role,
        "avatar_url": entity.avatar_url,
        "password_hash": entity.password_hash,
        "created_at": entity.created_at,
    }
    if isinstance(entity, Student):
        row["membership_type"] = entity.membership_type
    elif isinstance(entity, Trainer):
        row["expertise"] = list(entity.expertise)
        row["bio"] = entity.bio
    return row


def account_from_row(row: models.Account):
    common = dict(
        id=row.id,
        name=row.name,
        email=row.email,
        avatar_url=row.avatar_url,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
    if row.role == "student":
        return Student(membership_type=row.membership_type, **common)
    if row.role == "trainer":
        return Trainer(expertise=list(row.expertise or []), bio=row.bio or "", **common)
    return Admin(**common)


def slot_from_row(row: models.TimeSlot) -> TimeSlot:
    return TimeSlot(
        id=row.id,
        trainer_id=row.trainer_id,
        day=Weekday(row.day),
        start_time=row.start_time,
        end_time=row.end_time,
        is_booked=row.is_booked,
    )


def booking_from_row(row: models.Booking) -> Booking:
    return Booking(
        id=row.id,
        student_id=row.student_id,
        trainer_id=row.trainer_id,
        time_slot_id=row.time_slot_id,
        date=row.date,
        status=BookingStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        created_at=row.created_at,
    )


def inserted(table: str, entity) -> Change:
    return Change(table, "insert", entity.id, to_row(entity))


def updated(table: str, entity, columns: List[str], expect: Optional[Dict[str, Any]] = None) -> Change:
    row = to_row(entity)
    return Change(table, "update", entity.id, {c: row[c] for c in columns}, expect or {})


def deleted(table: str, key: str, expect: Optional[Dict[str, Any]] = None) -> Change:
    return Change(table, "delete", key, expect=expect or {})


# -- change feed -------------------------------------------------------------

Listener = Callable[[str, str], None]


class ChangeFeed:
    """Publish/subscribe channel keyed by table name.

    Listeners run on a single background worker, in publish order, so a
    publisher never waits on a listener.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="change-feed")

    def subscribe(self, table: str, listener: Listener) -> Callable[[], None]:
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        with self._lock:
            self._listeners[table].append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners[table]:
                    self._listeners[table].remove(listener)

        return unsubscribe

    def publish(self, table: str, origin: str) -> None:
        with self._lock:
            listeners = list(self._listeners[table])
        for listener in listeners:
            self._worker.submit(self._deliver, listener, table, origin)

    def wait(self) -> None:
        """Block until every notification published so far was delivered."""
        self._worker.submit(lambda: None).result()

    def close(self) -> None:
        self._worker.shutdown(wait=True)

    @staticmethod
    def _deliver(listener: Listener, table: str, origin: str) -> None:
        try:
            listener(table, origin)
        except Exception:
            logger.exception("Change listener failed for table %s", table)


def follow(store: GymStore, feed: ChangeFeed, synchronizer: "Synchronizer") -> Callable[[], None]:
    """Reload a store's table whenever another writer publishes a change to it."""

    def on_change(table: str, origin: str) -> None:
        if origin == store.origin:
            return
        store.replace_table(table, synchronizer.load_table(table))
        logger.info("Refreshed %s after change from %s", table, origin)

    unsubscribers = [feed.subscribe(table, on_change) for table in TABLES]

    def stop():
        for unsubscribe in unsubscribers:
            unsubscribe()

    return stop


# -- synchronizers -------------------------------------------------------------

class Synchronizer(abc.ABC):
    def load(self) -> Snapshot:
        return Snapshot()

    def load_table(self, table: str) -> list:
        return getattr(self.load(), table)

    @abc.abstractmethod
    def persist(self, store: GymStore, changes: List[Change]) -> None:
        """Store ``changes``; raise PersistenceFailed when that is not possible."""

    def close(self) -> None:
        pass


class MemorySynchronizer(Synchronizer):
    """Keeps state only in process; records what it was asked to write."""

    def __init__(self):
        self.history: List[Change] = []

    def persist(self, store, changes):
        self.history.extend(changes)


_snapshot_adapter = TypeAdapter(Snapshot)


class SnapshotSynchronizer(Synchronizer):
    """Mirrors the whole store into a JSON file after every change."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Snapshot:
        if not os.path.exists(self.path):
            return Snapshot()
        try:
            with open(self.path, "rb") as fh:
                return _snapshot_adapter.validate_json(fh.read())
        except (OSError, ValidationError) as exc:
            raise PersistenceFailed(
                f"Could not read snapshot {self.path}",
                details={"reason": "unreadable_snapshot", "error": str(exc)},
            ) from exc

    def persist(self, store, changes):
        payload = _snapshot_adapter.dump_json(store.snapshot(), indent=2)
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".gym-", suffix=".json")
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            logger.error("Failed to write snapshot %s: %s", self.path, exc)
            raise PersistenceFailed(
                "Could not write snapshot",
                details={"reason": "io_error", "error": str(exc)},
            ) from exc


class _StaleWrite(Exception):
    pass


_MODELS = {
    "accounts": models.Account,
    "time_slots": models.TimeSlot,
    "bookings": models.Booking,
}

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


class DatabaseSynchronizer(Synchronizer):
    """Writes changes to the relational store, one transaction per operation.

    The in-memory checks are repeated inside the transaction so that two
    processes sharing the database cannot both win the same slot or email.
    """

    def __init__(self, session_factory, feed: Optional[ChangeFeed] = None):
        self.session_factory = session_factory
        self.feed = feed

    def load(self) -> Snapshot:
        return Snapshot(
            accounts=self.load_table("accounts"),
            time_slots=self.load_table("time_slots"),
            bookings=self.load_table("bookings"),
        )

    def load_table(self, table: str) -> list:
        model = _MODELS[table]
        try:
            with self.session_factory() as session:
                if table == "accounts":
                    rows = session.scalars(select(model).order_by(model.created_at)).all()
                    return [account_from_row(r) for r in rows]
                if table == "time_slots":
                    rows = session.scalars(select(model)).all()
                    return [slot_from_row(r) for r in rows]
                rows = session.scalars(select(model).order_by(model.created_at)).all()
                return [booking_from_row(r) for r in rows]
        except SQLAlchemyError as exc:
            raise PersistenceFailed(
                f"Could not load {table}",
                details={"reason": "database_error", "error": str(exc)},
            ) from exc

    def persist(self, store, changes):
        session = self.session_factory()
        try:
            for change in changes:
                self._guard(session, change)
                self._apply(session, change)
            session.commit()
        except (_StaleWrite, IntegrityError) as exc:
            session.rollback()
            logger.error("Rejected stale write: %s", exc)
            raise PersistenceFailed(
                "The change conflicts with a concurrent update",
                details={"reason": "stale_write", "error": str(exc)},
            ) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Database write failed: %s", exc)
            raise PersistenceFailed(
                "The database rejected the change",
                details={"reason": "database_error", "error": str(exc)},
            ) from exc
        finally:
            session.close()

        if self.feed is not None:
            for table in dict.fromkeys(c.table for c in changes):
                self.feed.publish(table, store.origin)

    def _apply(self, session, change: Change) -> None:
        model = _MODELS[change.table]
        if change.op == "insert":
            session.add(model(**change.values))
            session.flush()
            return

        conditions = [model.id == change.key]
        conditions.extend(getattr(model, column) == value for column, value in change.expect.items())
        if change.op == "update":
            stmt = update(model).where(and_(*conditions)).values(**change.values)
        elif change.op == "delete":
            stmt = delete(model).where(and_(*conditions))
        else:
            raise ValueError(f"Unknown change op: {change.op}")

        result = session.execute(stmt)
        if result.rowcount != 1:
            raise _StaleWrite(f"{change.op} {change.table}/{change.key} matched {result.rowcount} rows")

    def _guard(self, session, change: Change) -> None:
        """Re-check the cross-row invariants against the database."""
        if change.table == "time_slots" and change.op == "insert":
            values = change.values
            overlapping = session.scalars(
                select(models.TimeSlot.id).where(
                    models.TimeSlot.trainer_id == values["trainer_id"],
                    models.TimeSlot.day == values["day"],
                    models.TimeSlot.start_time < values["end_time"],
                    models.TimeSlot.end_time > values["start_time"],
                )
            ).first()
            if overlapping is not None:
                raise _StaleWrite(f"time slot overlaps {overlapping}")

        elif change.table == "time_slots" and change.op == "delete":
            if self._has_active_booking(session, models.Booking.time_slot_id == change.key):
                raise _StaleWrite(f"time slot {change.key} has an active booking")

        elif change.table == "accounts" and change.op == "delete":
            by_account = (models.Booking.student_id == change.key) | (models.Booking.trainer_id == change.key)
            if self._has_active_booking(session, by_account):
                raise _StaleWrite(f"account {change.key} has active bookings")

    @staticmethod
    def _has_active_booking(session, condition) -> bool:
        found = session.scalars(
            select(models.Booking.id).where(condition, models.Booking.status.in_(_ACTIVE))
        ).first()
        return found is not None
