# gym_booking/entities.py
"""Domain entities held by the in-memory store.

Accounts are a tagged union over Student, Trainer and Admin keyed on ``role``;
role-specific fields only exist on the matching class.
"""
import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Literal, Optional, Union


class Role(str, enum.Enum):
    STUDENT = "student"
    TRAINER = "trainer"
    ADMIN = "admin"


class Weekday(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"

    @property
    def index(self) -> int:
        return list(Weekday).index(self)


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

# Legal status moves; anything missing here is rejected
TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def email_key(email: str) -> str:
    return email.strip().lower()


def utcnow() -> datetime:
    return datetime.utcnow().replace(microsecond=0)


@dataclass
class Student:
    id: str
    name: str
    email: str
    role: Literal["student"] = "student"
    avatar_url: Optional[str] = None
    membership_type: Optional[str] = None
    bookings: List[str] = field(default_factory=list)
    password_hash: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Trainer:
    id: str
    name: str
    email: str
    role: Literal["trainer"] = "trainer"
    avatar_url: Optional[str] = None
    expertise: List[str] = field(default_factory=list)
    bio: str = ""
    availability: List[str] = field(default_factory=list)
    bookings: List[str] = field(default_factory=list)
    password_hash: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Admin:
    id: str
    name: str
    email: str
    role: Literal["admin"] = "admin"
    avatar_url: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


Account = Union[Student, Trainer, Admin]


@dataclass
class TimeSlot:
    id: str
    trainer_id: str
    day: Weekday
    start_time: time
    end_time: time
    is_booked: bool = False


@dataclass
class Booking:
    id: str
    student_id: str
    trainer_id: str
    time_slot_id: str
    date: date
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def can_move_to(self, status: BookingStatus) -> bool:
        return status in TRANSITIONS[self.status]
