# gym_booking/services/account_service.py
"""
Account lifecycle: registration, trainer onboarding, removal and login.

Emails are unique across every role, compared case-insensitively. Accounts
with a pending or confirmed booking cannot be removed.
"""

import secrets
from typing import List, Optional

from gym_booking.auth import get_password_hash, verify_password
from gym_booking.entities import Account, Admin, Role, Student, Trainer, new_id
from gym_booking.exceptions import (
    AccountNotFound,
    EmailInUse,
    HasActiveBookings,
    UnknownTrainer,
    ValidationFailed,
)
from gym_booking.services.base import BaseService
from gym_booking.sync import deleted, inserted


class AccountService(BaseService):
    def register_account(
        self,
        name: str,
        email: str,
        role: Role = Role.STUDENT,
        password: Optional[str] = None,
        avatar_url: Optional[str] = None,
        membership_type: Optional[str] = None,
        expertise: Optional[List[str]] = None,
        bio: str = "",
    ) -> Account:
        role = Role(role)
        email = email.strip()
        if not email:
            raise ValidationFailed("Email is required")
        password_hash = get_password_hash(password) if password else None

        with self.store.lock:
            if self.store.find_account_by_email(email) is not None:
                self.logger.warning("Registration rejected, email in use: %s", email)
                raise EmailInUse(details={"email": email})

            common = dict(name=name, email=email, avatar_url=avatar_url, password_hash=password_hash)
            if role == Role.STUDENT:
                account = Student(id=new_id("student"), membership_type=membership_type, **common)
            elif role == Role.TRAINER:
                account = Trainer(id=new_id("trainer"), expertise=list(expertise or []), bio=bio, **common)
            else:
                account = Admin(id=new_id("admin"), **common)

            self.store.add_account(account)
            self.log_operation("register_account", account_id=account.id, role=role.value)
            self._persist("register_account", [inserted("accounts", account)])
        return account

    def add_trainer(
        self,
        name: str,
        email: str,
        expertise: Optional[List[str]] = None,
        bio: str = "",
        avatar_url: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Trainer:
        # Trainers created by an admin get a throwaway password until they reset it
        return self.register_account(
            name,
            email,
            role=Role.TRAINER,
            password=password or secrets.token_urlsafe(12),
            avatar_url=avatar_url,
            expertise=expertise,
            bio=bio,
        )

    def remove_student(self, student_id: str) -> None:
        with self.store.lock:
            student = self.store.get_student(student_id)
            if student is None:
                raise AccountNotFound("Student not found", details={"student_id": student_id})
            self._check_no_active_bookings(student_id)

            self.store.remove_account(student_id)
            self.log_operation("remove_student", student_id=student_id)
            self._persist("remove_student", [deleted("accounts", student_id)])

    def remove_trainer(self, trainer_id: str) -> None:
        with self.store.lock:
            trainer = self.store.get_trainer(trainer_id)
            if trainer is None:
                raise UnknownTrainer(details={"trainer_id": trainer_id})
            self._check_no_active_bookings(trainer_id)

            # Slot-level check: a booking on one of these slots may name another trainer id
            slots = self.store.slots_for_trainer(trainer_id)
            for slot in slots:
                booking = self.store.active_booking_for_slot(slot.id)
                if booking is not None:
                    raise HasActiveBookings(
                        details={"trainer_id": trainer_id, "time_slot_id": slot.id, "booking_id": booking.id}
                    )

            changes = []
            for slot in slots:
                self.store.remove_slot(slot.id)
                changes.append(deleted("time_slots", slot.id))
            self.store.remove_account(trainer_id)
            changes.append(deleted("accounts", trainer_id))

            self.log_operation("remove_trainer", trainer_id=trainer_id, slots_removed=len(slots))
            self._persist("remove_trainer", changes)

    def authenticate(self, email: str, password: str) -> Optional[Account]:
        with self.store.lock:
            account = self.store.find_account_by_email(email)
        if account is None or not account.password_hash:
            return None
        if not verify_password(password, account.password_hash):
            return None
        return account

    def get_account(self, account_id: str) -> Account:
        with self.store.lock:
            account = self.store.get_account(account_id)
        if account is None:
            raise AccountNotFound(details={"account_id": account_id})
        return account

    def get_trainer(self, trainer_id: str) -> Trainer:
        with self.store.lock:
            trainer = self.store.get_trainer(trainer_id)
        if trainer is None:
            raise UnknownTrainer(details={"trainer_id": trainer_id})
        return trainer

    def list_students(self) -> List[Student]:
        with self.store.lock:
            return self.store.students

    def list_trainers(self) -> List[Trainer]:
        with self.store.lock:
            return self.store.trainers

    def _check_no_active_bookings(self, account_id: str) -> None:
        active = [
            b.id for b in self.store.bookings.values()
            if b.is_active and account_id in (b.student_id, b.trainer_id)
        ]
        if active:
            self.logger.warning("Refusing to remove %s: %d active bookings", account_id, len(active))
            raise HasActiveBookings(details={"account_id": account_id, "booking_ids": active})
