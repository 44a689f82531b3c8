# gym_booking/seed.py
"""Demo data set loaded into an empty store when SEED_DEMO_DATA is enabled."""
from datetime import date, time
from typing import List

from gym_booking.auth import get_password_hash
from gym_booking.entities import (
    Admin,
    Booking,
    BookingStatus,
    PaymentStatus,
    Student,
    TimeSlot,
    Trainer,
    Weekday,
)
from gym_booking.store import Snapshot
from gym_booking.sync import Change, inserted

DEMO_PASSWORD = "gym-demo-123"

STUDENTS = [
    ("1", "Alex Johnson", "alex@example.com", "Premium"),
    ("2", "Jamie Smith", "jamie@example.com", "Standard"),
    ("3", "Morgan Williams", "morgan@example.com", "Premium"),
    ("4", "Taylor Lee", "taylor@example.com", "Standard"),
    ("5", "Jordan Chang", "jordan@example.com", "Basic"),
]

TRAINERS = [
    ("101", "Casey Martinez", "casey@example.com", ["Weightlifting", "Nutrition", "HIIT"],
     "Professional trainer with 8+ years of experience, specializing in strength training "
     "and nutritional guidance."),
    ("102", "Riley Thompson", "riley@example.com", ["Yoga", "Pilates", "Meditation"],
     "Certified yoga instructor and wellness coach dedicated to helping clients achieve "
     "mind-body balance."),
    ("103", "Avery Wilson", "avery@example.com", ["Cardio", "Boxing", "Circuit Training"],
     "Former professional athlete turned personal trainer, focused on developing peak "
     "performance and endurance."),
]

# Hourly sessions, lunch break at 12:00
HOURS = [8, 9, 10, 11, 13, 14, 15, 16]


def build_demo_snapshot() -> Snapshot:
    password_hash = get_password_hash(DEMO_PASSWORD)
    students = [
        Student(id=i, name=n, email=e, membership_type=m, password_hash=password_hash)
        for i, n, e, m in STUDENTS
    ]
    trainers = [
        Trainer(id=i, name=n, email=e, expertise=x, bio=b, password_hash=password_hash)
        for i, n, e, x, b in TRAINERS
    ]
    admin = Admin(id="201", name="Admin Account", email="admin@example.com", password_hash=password_hash)

    slots = []
    for t_idx, trainer in enumerate(trainers):
        for d_idx, day in enumerate(Weekday):
            for h_idx, hour in enumerate(HOURS):
                # leave roughly a quarter of the hours unpublished
                if (t_idx + d_idx + h_idx) % 4 == 3:
                    continue
                slots.append(
                    TimeSlot(
                        id=f"{trainer.id}-{day.value}-{h_idx}",
                        trainer_id=trainer.id,
                        day=day,
                        start_time=time(hour, 0),
                        end_time=time(hour + 1, 0),
                    )
                )

    # One finished session and one upcoming, already paid
    done = Booking(
        id="booking-1", student_id="1", trainer_id="101", time_slot_id="101-Monday-0",
        date=date(2024, 5, 6), status=BookingStatus.COMPLETED, payment_status=PaymentStatus.PAID,
    )
    upcoming = Booking(
        id="booking-2", student_id="2", trainer_id="102", time_slot_id="102-Tuesday-0",
        date=date(2024, 5, 14), status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID,
    )
    for slot in slots:
        if slot.id == upcoming.time_slot_id:
            slot.is_booked = True

    return Snapshot(accounts=[*students, *trainers, admin], time_slots=slots, bookings=[done, upcoming])


def seed_changes(snapshot: Snapshot) -> List[Change]:
    changes = [inserted("accounts", a) for a in snapshot.accounts]
    changes += [inserted("time_slots", s) for s in snapshot.time_slots]
    changes += [inserted("bookings", b) for b in snapshot.bookings]
    return changes
