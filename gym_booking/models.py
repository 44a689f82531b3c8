# gym_booking/models.py
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, String, Text, Time
from gym_booking.database import Base


class Account(Base):
    __tablename__ = "accounts"
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    email_key = Column(String, unique=True, index=True, nullable=False)  # lowercased email
    role = Column(String, nullable=False, index=True)
    avatar_url = Column(String, nullable=True)
    membership_type = Column(String, nullable=True)
    expertise = Column(JSON, nullable=True)
    bio = Column(Text, nullable=True)
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False)

class TimeSlot(Base):
    __tablename__ = "time_slots"
    id = Column(String, primary_key=True, index=True)
    trainer_id = Column(String, ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False)
    day = Column(String, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)

class Booking(Base):
    __tablename__ = "bookings"
    # No foreign keys: bookings outlive the accounts and slots they reference
    id = Column(String, primary_key=True, index=True)
    student_id = Column(String, index=True, nullable=False)
    trainer_id = Column(String, index=True, nullable=False)
    time_slot_id = Column(String, index=True, nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String, default="pending", nullable=False)
    payment_status = Column(String, default="pending", nullable=False)
    created_at = Column(DateTime, nullable=False)
