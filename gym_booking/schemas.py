# gym_booking/schemas.py
import re
from datetime import date, datetime, time
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from gym_booking.entities import BookingStatus, PaymentStatus, Weekday


class AccountRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    membership_type: Optional[str] = None
    avatar_url: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    account_id: str

class TrainerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    expertise: List[str] = []
    bio: str = ""
    avatar_url: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

class TimeSlotCreate(BaseModel):
    day: Weekday
    start_time: time
    end_time: time
    trainer_id: Optional[str] = None  # admins create slots on behalf of a trainer

class BookingCreate(BaseModel):
    trainer_id: str
    time_slot_id: str
    date: date


_CARD_DIGITS = re.compile(r"^\d{13,19}$")
_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")
_CVV = re.compile(r"^\d{3,4}$")

class PaymentDetails(BaseModel):
    card_number: str
    cardholder_name: str = Field(..., min_length=1)
    expiry_date: str
    cvv: str

    @field_validator("card_number")
    @classmethod
    def _card_number(cls, value: str) -> str:
        digits = value.replace(" ", "")
        if not _CARD_DIGITS.match(digits):
            raise ValueError("card number must be 13-19 digits")
        return digits

    @field_validator("expiry_date")
    @classmethod
    def _expiry(cls, value: str) -> str:
        if not _EXPIRY.match(value):
            raise ValueError("expiry date must be MM/YY")
        return value

    @field_validator("cvv")
    @classmethod
    def _cvv(cls, value: str) -> str:
        if not _CVV.match(value):
            raise ValueError("cvv must be 3 or 4 digits")
        return value

    @property
    def last4(self) -> str:
        return self.card_number[-4:]

class _AccountOutBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    created_at: datetime

class StudentOut(_AccountOutBase):
    role: Literal["student"]
    membership_type: Optional[str] = None
    bookings: List[str]

class TrainerOut(_AccountOutBase):
    role: Literal["trainer"]
    expertise: List[str]
    bio: str
    availability: List[str]
    bookings: List[str]

class AdminOut(_AccountOutBase):
    role: Literal["admin"]

AccountOut = Annotated[Union[StudentOut, TrainerOut, AdminOut], Field(discriminator="role")]


def account_out(account) -> Union[StudentOut, TrainerOut, AdminOut]:
    schema = {"student": StudentOut, "trainer": TrainerOut, "admin": AdminOut}[account.role]
    return schema.model_validate(account)


class TimeSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    trainer_id: str
    day: Weekday
    start_time: time
    end_time: time
    is_booked: bool

    @field_serializer("start_time", "end_time")
    def _hhmm(self, value: time) -> str:
        return value.strftime("%H:%M")

class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    trainer_id: str
    time_slot_id: str
    date: date
    status: BookingStatus
    payment_status: PaymentStatus
    created_at: datetime


class PaymentResult(BaseModel):
    success: bool
    booking: BookingOut
