# gym_booking/store.py
"""In-memory entity store.

One ``GymStore`` is built by the application's composition root and handed to
every service. Mutations happen under ``store.lock`` so an operation's checks
and writes never interleave with another operation.
"""
import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Annotated, Dict, Iterable, List, Optional

from pydantic import Field

from gym_booking.entities import (
    Account,
    Admin,
    Booking,
    Student,
    TimeSlot,
    Trainer,
    Weekday,
    email_key,
    new_id,
)

logger = logging.getLogger(__name__)

TABLES = ("accounts", "time_slots", "bookings")


@dataclass
class Snapshot:
    accounts: List[Annotated[Account, Field(discriminator="role")]] = field(default_factory=list)
    time_slots: List[TimeSlot] = field(default_factory=list)
    bookings: List[Booking] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.accounts or self.time_slots or self.bookings)


class GymStore:
    def __init__(self, origin: Optional[str] = None):
        self.origin = origin or new_id("store")
        self.lock = threading.RLock()
        self.accounts: Dict[str, Account] = {}
        self.time_slots: Dict[str, TimeSlot] = {}
        self.bookings: Dict[str, Booking] = {}

    # -- views -------------------------------------------------------------

    @property
    def students(self) -> List[Student]:
        return [a for a in self.accounts.values() if isinstance(a, Student)]

    @property
    def trainers(self) -> List[Trainer]:
        return [a for a in self.accounts.values() if isinstance(a, Trainer)]

    @property
    def admins(self) -> List[Admin]:
        return [a for a in self.accounts.values() if isinstance(a, Admin)]

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    def get_student(self, student_id: str) -> Optional[Student]:
        account = self.accounts.get(student_id)
        return account if isinstance(account, Student) else None

    def get_trainer(self, trainer_id: str) -> Optional[Trainer]:
        account = self.accounts.get(trainer_id)
        return account if isinstance(account, Trainer) else None

    def get_slot(self, slot_id: str) -> Optional[TimeSlot]:
        return self.time_slots.get(slot_id)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.bookings.get(booking_id)

    def find_account_by_email(self, email: str) -> Optional[Account]:
        key = email_key(email)
        for account in self.accounts.values():
            if email_key(account.email) == key:
                return account
        return None

    def slots_for_trainer(self, trainer_id: str, day: Optional[Weekday] = None) -> List[TimeSlot]:
        return [
            s for s in self.time_slots.values()
            if s.trainer_id == trainer_id and (day is None or s.day == day)
        ]

    def active_booking_for_slot(self, slot_id: str) -> Optional[Booking]:
        for booking in self.bookings.values():
            if booking.time_slot_id == slot_id and booking.is_active:
                return booking
        return None

    # -- mutation ----------------------------------------------------------

    def add_account(self, account: Account) -> None:
        self.accounts[account.id] = account

    def remove_account(self, account_id: str) -> None:
        self.accounts.pop(account_id, None)

    def add_slot(self, slot: TimeSlot) -> None:
        self.time_slots[slot.id] = slot
        trainer = self.get_trainer(slot.trainer_id)
        if trainer is not None and slot.id not in trainer.availability:
            trainer.availability.append(slot.id)

    def remove_slot(self, slot_id: str) -> None:
        slot = self.time_slots.pop(slot_id, None)
        if slot is None:
            return
        trainer = self.get_trainer(slot.trainer_id)
        if trainer is not None:
            trainer.availability = [s for s in trainer.availability if s != slot_id]

    def add_booking(self, booking: Booking) -> None:
        self.bookings[booking.id] = booking
        student = self.get_student(booking.student_id)
        if student is not None:
            student.bookings.append(booking.id)
        trainer = self.get_trainer(booking.trainer_id)
        if trainer is not None:
            trainer.bookings.append(booking.id)

    # -- bulk load ---------------------------------------------------------

    def load(self, snapshot: Snapshot) -> None:
        with self.lock:
            self.accounts = {a.id: a for a in snapshot.accounts}
            self.time_slots = {s.id: s for s in snapshot.time_slots}
            self.bookings = {b.id: b for b in snapshot.bookings}
            self._relink()
        logger.info(
            "Loaded store: %d accounts, %d time slots, %d bookings",
            len(self.accounts), len(self.time_slots), len(self.bookings),
        )

    def replace_table(self, table: str, rows: Iterable) -> None:
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        with self.lock:
            setattr(self, table, {row.id: row for row in rows})
            self._relink()

    def snapshot(self) -> Snapshot:
        with self.lock:
            return Snapshot(
                accounts=copy.deepcopy(list(self.accounts.values())),
                time_slots=copy.deepcopy(list(self.time_slots.values())),
                bookings=copy.deepcopy(list(self.bookings.values())),
            )

    def _relink(self) -> None:
        """Rebuild the per-account reference lists from the canonical collections."""
        for account in self.accounts.values():
            if isinstance(account, Student):
                account.bookings = [
                    b.id for b in self.bookings.values() if b.student_id == account.id
                ]
            elif isinstance(account, Trainer):
                account.bookings = [
                    b.id for b in self.bookings.values() if b.trainer_id == account.id
                ]
                account.availability = [
                    s.id for s in self.time_slots.values() if s.trainer_id == account.id
                ]
