import threading
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import date, time

import pytest

from gym_booking.entities import BookingStatus, PaymentStatus, Weekday
from gym_booking.exceptions import (
    BookingNotFound,
    Conflict,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
    UnknownStudent,
    UnknownTrainer,
)
from gym_booking.payments import PaymentGateway
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService

SESSION_DATE = date(2024, 5, 6)


def assert_slot_flags_match_bookings(store):
    for slot in store.time_slots.values():
        active = [b for b in store.bookings.values() if b.time_slot_id == slot.id and b.is_active]
        assert len(active) <= 1
        assert slot.is_booked == (len(active) == 1)


def test_book_pay_complete_flow(bookings, store, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.PENDING
    assert store.get_slot(monday_slot.id).is_booked is True
    assert student.bookings == [booking.id]
    assert trainer.bookings == [booking.id]

    assert bookings.process_payment(booking.id, card) is True
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID

    bookings.complete_booking(booking.id)
    assert booking.status == BookingStatus.COMPLETED
    assert_slot_flags_match_bookings(store)


def test_cancel_pending_lets_trainer_publish_the_window_again(bookings, schedule, store, student, trainer, monday_slot):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    bookings.cancel_booking(booking.id)

    assert booking.status == BookingStatus.CANCELLED
    assert store.get_slot(monday_slot.id).is_booked is False
    again = schedule.add_time_slot(trainer.id, Weekday.MONDAY, time(8, 0), time(9, 0))
    assert again is monday_slot
    assert again.is_booked is False
    assert list(store.time_slots) == [monday_slot.id]
    assert trainer.availability == [monday_slot.id]
    assert_slot_flags_match_bookings(store)


def test_cancel_confirmed_booking_keeps_payment_status(bookings, store, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    bookings.process_payment(booking.id, card)

    bookings.cancel_booking(booking.id)

    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == PaymentStatus.PAID
    assert store.get_slot(monday_slot.id).is_booked is False


def test_slot_can_be_rebooked_after_cancellation(bookings, store, student, trainer, monday_slot):
    first = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    bookings.cancel_booking(first.id)

    second = bookings.create_booking(student.id, trainer.id, monday_slot.id, date(2024, 5, 13))

    assert second.status == BookingStatus.PENDING
    assert student.bookings == [first.id, second.id]
    assert_slot_flags_match_bookings(store)


def test_booked_slot_is_unavailable(bookings, accounts, student, trainer, monday_slot):
    other = accounts.register_account("Jamie Smith", "jamie@example.com")
    bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    with pytest.raises(SlotUnavailable) as exc_info:
        bookings.create_booking(other.id, trainer.id, monday_slot.id, SESSION_DATE)
    assert isinstance(exc_info.value, Conflict)
    assert exc_info.value.status_code == 409


def test_missing_slot_is_unavailable(bookings, student, trainer):
    with pytest.raises(SlotUnavailable):
        bookings.create_booking(student.id, trainer.id, "slot-missing", SESSION_DATE)


def test_slot_of_another_trainer_is_unavailable(bookings, accounts, student, monday_slot):
    other = accounts.add_trainer("Riley Thompson", "riley@example.com")
    with pytest.raises(SlotUnavailable):
        bookings.create_booking(student.id, other.id, monday_slot.id, SESSION_DATE)


def test_unknown_student_and_trainer(bookings, store, student, trainer, monday_slot):
    with pytest.raises(UnknownStudent):
        bookings.create_booking("student-nope", trainer.id, monday_slot.id, SESSION_DATE)
    # a trainer id is not a student id
    with pytest.raises(UnknownStudent):
        bookings.create_booking(trainer.id, trainer.id, monday_slot.id, SESSION_DATE)

    store.remove_account(trainer.id)
    with pytest.raises(UnknownTrainer):
        bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    assert store.bookings == {}
    assert store.get_slot(monday_slot.id).is_booked is False


@pytest.mark.parametrize("target", ["pending", "cancelled", "completed"])
def test_complete_rejects_non_confirmed(target, bookings, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    if target == "cancelled":
        bookings.cancel_booking(booking.id)
    elif target == "completed":
        bookings.process_payment(booking.id, card)
        bookings.complete_booking(booking.id)

    with pytest.raises(InvalidTransition):
        bookings.complete_booking(booking.id)
    assert booking.status.value == target


def test_complete_requires_paid_booking(bookings, student, trainer, monday_slot):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    # confirmed without a payment should never happen, but completion must still refuse it
    booking.status = BookingStatus.CONFIRMED

    with pytest.raises(InvalidTransition):
        bookings.complete_booking(booking.id)
    assert booking.status == BookingStatus.CONFIRMED


@pytest.mark.parametrize("finish", ["cancel", "complete"])
def test_cancel_terminal_booking_is_rejected(finish, bookings, store, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    if finish == "cancel":
        bookings.cancel_booking(booking.id)
    else:
        bookings.process_payment(booking.id, card)
        bookings.complete_booking(booking.id)
    before = booking.status

    with pytest.raises(InvalidTransition):
        bookings.cancel_booking(booking.id)
    assert booking.status == before
    assert_slot_flags_match_bookings(store)


def test_declined_payment_leaves_booking_pending(bookings, gateway, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    gateway.outcome = False

    assert bookings.process_payment(booking.id, card) is False
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.FAILED

    gateway.outcome = True
    assert bookings.process_payment(booking.id, card) is True
    assert booking.status == BookingStatus.CONFIRMED
    assert len(gateway.charges) == 2


def test_payment_on_non_pending_booking_is_rejected(bookings, gateway, student, trainer, monday_slot, card):
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    bookings.process_payment(booking.id, card)

    with pytest.raises(InvalidTransition):
        bookings.process_payment(booking.id, card)
    assert len(gateway.charges) == 1


def test_unknown_booking(bookings, card):
    for call in (
        lambda: bookings.cancel_booking("booking-x"),
        lambda: bookings.complete_booking("booking-x"),
        lambda: bookings.process_payment("booking-x", card),
    ):
        with pytest.raises(BookingNotFound) as exc_info:
            call()
        assert isinstance(exc_info.value, NotFound)


def test_queries(bookings, accounts, student, trainer, monday_slot):
    other = accounts.register_account("Jamie Smith", "jamie@example.com")
    first = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)
    bookings.cancel_booking(first.id)
    second = bookings.create_booking(other.id, trainer.id, monday_slot.id, SESSION_DATE)

    assert bookings.bookings_for_student(student.id) == [first]
    assert bookings.bookings_for_trainer(trainer.id) == [first, second]
    assert bookings.booking_for_slot(monday_slot.id) is second

    bookings.cancel_booking(second.id)
    assert bookings.booking_for_slot(monday_slot.id) is second
    assert bookings.booking_for_slot("slot-unused") is None

    assert bookings.list_bookings(student_id=other.id) == [second]
    assert bookings.list_bookings(status=BookingStatus.CANCELLED) == [first, second]
    assert bookings.list_bookings(start_date=date(2024, 6, 1)) == []


def test_create_booking_emits_guarded_changes(bookings, sync, student, trainer, monday_slot):
    sync.history.clear()
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    slot_change, booking_change = sync.history
    assert (slot_change.table, slot_change.op) == ("time_slots", "update")
    assert slot_change.values == {"is_booked": True}
    assert slot_change.expect == {"is_booked": False}
    assert (booking_change.table, booking_change.op, booking_change.key) == ("bookings", "insert", booking.id)


def test_concurrent_bookings_of_one_slot_have_a_single_winner(bookings, accounts, store, trainer, monday_slot):
    students = [accounts.register_account(f"Student {i}", f"student{i}@example.com") for i in range(8)]
    start = threading.Barrier(len(students))

    def book(student):
        start.wait(timeout=5)
        return bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    with ThreadPoolExecutor(max_workers=len(students)) as pool:
        futures = [pool.submit(book, s) for s in students]
        wait(futures, timeout=10)

    won = [f.result() for f in futures if f.exception() is None]
    lost = [f.exception() for f in futures if f.exception() is not None]
    assert len(won) == 1
    assert len(lost) == len(students) - 1
    assert all(isinstance(exc, SlotUnavailable) for exc in lost)
    assert list(store.bookings) == [won[0].id]
    assert_slot_flags_match_bookings(store)


class HeldGateway(PaymentGateway):
    """Approves a charge once the test lets it through."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def charge(self, details):
        self.entered.set()
        self.release.wait(timeout=5)
        return True


def test_store_stays_usable_while_a_charge_is_out(store, sync, student, trainer, monday_slot, card):
    gateway = HeldGateway()
    bookings = BookingService(store, sync, gateway)
    availability = AvailabilityService(store)
    booking = bookings.create_booking(student.id, trainer.id, monday_slot.id, SESSION_DATE)

    with ThreadPoolExecutor(max_workers=1) as pool:
        payment = pool.submit(bookings.process_payment, booking.id, card)
        try:
            assert gateway.entered.wait(timeout=5)

            # reads and unrelated writes do not wait on the gateway
            assert availability.available_slots() == []
            assert bookings.get_booking(booking.id).status == BookingStatus.PENDING
            with pytest.raises(InvalidTransition):
                bookings.cancel_booking(booking.id)
            with pytest.raises(InvalidTransition):
                bookings.process_payment(booking.id, card)
        finally:
            gateway.release.set()

        assert payment.result(timeout=5) is True

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_status == PaymentStatus.PAID
    bookings.cancel_booking(booking.id)
    assert store.get_slot(monday_slot.id).is_booked is False
