# gym_booking/routes/time_slots.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from gym_booking import auth, schemas
from gym_booking.dependencies import get_availability_service, get_booking_service, get_schedule_service
from gym_booking.entities import Account
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService
from gym_booking.services.schedule_service import ScheduleService

router = APIRouter(
    prefix="/time-slots",
    tags=["Time Slots"]
)

# Public - Free Slots, Optionally for One Trainer
@router.get("/available", response_model=List[schemas.TimeSlotOut])
def available_slots(
    trainer_id: Optional[str] = None,
    availability: AvailabilityService = Depends(get_availability_service),
):
    return availability.available_slots(trainer_id)

# Trainer (own schedule) or Admin (any trainer) - Publish a Slot
@router.post("/", response_model=schemas.TimeSlotOut, status_code=status.HTTP_201_CREATED)
def add_time_slot(
    payload: schemas.TimeSlotCreate,
    schedule: ScheduleService = Depends(get_schedule_service),
    current_account: Account = Depends(auth.require_role("trainer", "admin")),
):
    if current_account.role == "trainer":
        if payload.trainer_id not in (None, current_account.id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Trainers manage only their own slots")
        trainer_id = current_account.id
    elif payload.trainer_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="trainer_id is required")
    else:
        trainer_id = payload.trainer_id

    return schedule.add_time_slot(trainer_id, payload.day, payload.start_time, payload.end_time)

# Owning Trainer or Admin - Remove a Slot
@router.delete("/{time_slot_id}")
def remove_time_slot(
    time_slot_id: str,
    schedule: ScheduleService = Depends(get_schedule_service),
    current_account: Account = Depends(auth.require_role("trainer", "admin")),
):
    slot = schedule.get_slot(time_slot_id)
    if current_account.role == "trainer" and slot is not None and slot.trainer_id != current_account.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Trainers manage only their own slots")

    schedule.remove_time_slot(time_slot_id)
    return {"message": "Time slot removed successfully"}

# Signed-in - Booking Holding a Slot
@router.get("/{time_slot_id}/booking", response_model=Optional[schemas.BookingOut])
def booking_for_slot(
    time_slot_id: str,
    bookings: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.get_current_account),
):
    return bookings.booking_for_slot(time_slot_id)
