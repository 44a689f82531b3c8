# gym_booking/services/booking_service.py
"""
Booking Service

Owns the booking lifecycle:

    pending --pay--> confirmed --complete--> completed
       |                 |
       +----cancel-------+--> cancelled

A booking holds its time slot (``is_booked``) while it is pending or
confirmed; cancelling releases the slot. Completed and cancelled bookings are
terminal.
"""

from datetime import date
from typing import List, Optional, Set

from gym_booking.entities import Booking, BookingStatus, PaymentStatus, new_id
from gym_booking.exceptions import (
    BookingNotFound,
    InvalidTransition,
    SlotUnavailable,
    UnknownStudent,
    UnknownTrainer,
)
from gym_booking.payments import PaymentGateway
from gym_booking.schemas import PaymentDetails
from gym_booking.services.base import BaseService
from gym_booking.store import GymStore
from gym_booking.sync import Synchronizer, inserted, updated


class BookingService(BaseService):
    def __init__(self, store: GymStore, sync: Synchronizer, gateway: PaymentGateway):
        super().__init__(store, sync)
        self.gateway = gateway
        # bookings whose charge is out at the gateway; guarded by store.lock
        self._in_flight: Set[str] = set()

    # -- commands ----------------------------------------------------------

    def create_booking(self, student_id: str, trainer_id: str, time_slot_id: str, booking_date: date) -> Booking:
        with self.store.lock:
            slot = self.store.get_slot(time_slot_id)
            if slot is None or slot.is_booked or slot.trainer_id != trainer_id:
                self.logger.warning("Slot %s not available for trainer %s", time_slot_id, trainer_id)
                raise SlotUnavailable(details={"time_slot_id": time_slot_id})
            if self.store.get_student(student_id) is None:
                raise UnknownStudent(details={"student_id": student_id})
            if self.store.get_trainer(trainer_id) is None:
                raise UnknownTrainer(details={"trainer_id": trainer_id})

            booking = Booking(
                id=new_id("booking"),
                student_id=student_id,
                trainer_id=trainer_id,
                time_slot_id=time_slot_id,
                date=booking_date,
            )
            slot.is_booked = True
            self.store.add_booking(booking)
            self.log_operation(
                "create_booking", booking_id=booking.id, student_id=student_id, slot_id=time_slot_id
            )
            self._persist(
                "create_booking",
                [
                    updated("time_slots", slot, ["is_booked"], expect={"is_booked": False}),
                    inserted("bookings", booking),
                ],
            )
        return booking

    def cancel_booking(self, booking_id: str) -> Booking:
        with self.store.lock:
            booking = self._get_booking(booking_id)
            self._check_not_in_flight(booking_id)
            self._check_transition(booking, BookingStatus.CANCELLED)

            previous = booking.status
            booking.status = BookingStatus.CANCELLED
            changes = [updated("bookings", booking, ["status"], expect={"status": previous.value})]

            slot = self.store.get_slot(booking.time_slot_id)
            if slot is not None and slot.is_booked:
                slot.is_booked = False
                changes.append(updated("time_slots", slot, ["is_booked"], expect={"is_booked": True}))

            self.log_operation("cancel_booking", booking_id=booking_id, previous=previous.value)
            self._persist("cancel_booking", changes)
        return booking

    def complete_booking(self, booking_id: str) -> Booking:
        with self.store.lock:
            booking = self._get_booking(booking_id)
            self._check_transition(booking, BookingStatus.COMPLETED)
            if booking.payment_status != PaymentStatus.PAID:
                raise InvalidTransition(
                    "Booking cannot be completed before it is paid",
                    details={"booking_id": booking_id, "payment_status": booking.payment_status.value},
                )

            booking.status = BookingStatus.COMPLETED
            self.log_operation("complete_booking", booking_id=booking_id)
            self._persist(
                "complete_booking",
                [updated("bookings", booking, ["status"], expect={"status": BookingStatus.CONFIRMED.value})],
            )
        return booking

    def process_payment(self, booking_id: str, details: PaymentDetails) -> bool:
        """Charge the booking; a decline returns False and leaves the booking pending.

        The gateway is called without holding the store lock. While the charge
        is out, the booking is marked in flight: cancelling it or paying it
        again raises ``InvalidTransition``.
        """
        with self.store.lock:
            booking = self._get_booking(booking_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidTransition(
                    "Only pending bookings can be paid",
                    details={"booking_id": booking_id, "status": booking.status.value},
                )
            self._check_not_in_flight(booking_id)
            self._in_flight.add(booking_id)

        try:
            approved = self.gateway.charge(details)
            with self.store.lock:
                self._record_payment(booking_id, approved)
        finally:
            with self.store.lock:
                self._in_flight.discard(booking_id)
        return approved

    # -- queries -----------------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        with self.store.lock:
            return self._get_booking(booking_id)

    def bookings_for_student(self, student_id: str) -> List[Booking]:
        with self.store.lock:
            return [b for b in self.store.bookings.values() if b.student_id == student_id]

    def bookings_for_trainer(self, trainer_id: str) -> List[Booking]:
        with self.store.lock:
            return [b for b in self.store.bookings.values() if b.trainer_id == trainer_id]

    def booking_for_slot(self, time_slot_id: str) -> Optional[Booking]:
        """The active booking on a slot, else the most recent one, else None."""
        with self.store.lock:
            active = self.store.active_booking_for_slot(time_slot_id)
            if active is not None:
                return active
            history = [b for b in self.store.bookings.values() if b.time_slot_id == time_slot_id]
        return history[-1] if history else None

    def list_bookings(
        self,
        student_id: Optional[str] = None,
        trainer_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Booking]:
        with self.store.lock:
            bookings = list(self.store.bookings.values())
        if student_id:
            bookings = [b for b in bookings if b.student_id == student_id]
        if trainer_id:
            bookings = [b for b in bookings if b.trainer_id == trainer_id]
        if status:
            bookings = [b for b in bookings if b.status == status]
        if start_date:
            bookings = [b for b in bookings if b.date >= start_date]
        if end_date:
            bookings = [b for b in bookings if b.date <= end_date]
        return bookings

    # -- helpers -----------------------------------------------------------

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(details={"booking_id": booking_id})
        return booking

    def _record_payment(self, booking_id: str, approved: bool) -> None:
        # the table may have been reloaded from the backend while the charge was out
        booking = self._get_booking(booking_id)
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransition(
                "Booking changed while the payment was processed",
                details={"booking_id": booking_id, "status": booking.status.value, "approved": approved},
            )

        if approved:
            booking.payment_status = PaymentStatus.PAID
            booking.status = BookingStatus.CONFIRMED
        else:
            booking.payment_status = PaymentStatus.FAILED
            self.logger.warning("Payment declined for booking %s", booking_id)

        self.log_operation("process_payment", booking_id=booking_id, approved=approved)
        self._persist(
            "process_payment",
            [
                updated(
                    "bookings",
                    booking,
                    ["status", "payment_status"],
                    expect={"status": BookingStatus.PENDING.value},
                )
            ],
        )

    def _check_not_in_flight(self, booking_id: str) -> None:
        if booking_id in self._in_flight:
            self.logger.warning("Booking %s has a payment in progress", booking_id)
            raise InvalidTransition(
                "A payment for this booking is in progress",
                details={"booking_id": booking_id},
            )

    def _check_transition(self, booking: Booking, target: BookingStatus) -> None:
        if not booking.can_move_to(target):
            self.logger.warning(
                "Rejected %s -> %s for booking %s", booking.status.value, target.value, booking.id
            )
            raise InvalidTransition(
                f"Booking is {booking.status.value} and cannot become {target.value}",
                details={"booking_id": booking.id, "status": booking.status.value},
            )
