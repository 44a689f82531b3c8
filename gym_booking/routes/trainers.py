# gym_booking/routes/trainers.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from gym_booking import auth, schemas
from gym_booking.dependencies import get_account_service, get_availability_service, get_booking_service
from gym_booking.entities import Account
from gym_booking.services.account_service import AccountService
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService

router = APIRouter(
    prefix="/trainers",
    tags=["Trainers"]
)

# Public - List All Trainers
@router.get("/", response_model=List[schemas.TrainerOut])
def list_trainers(service: AccountService = Depends(get_account_service)):
    return [schemas.account_out(t) for t in service.list_trainers()]

# Public - One Trainer
@router.get("/{trainer_id}", response_model=schemas.TrainerOut)
def get_trainer(trainer_id: str, service: AccountService = Depends(get_account_service)):
    return schemas.account_out(service.get_trainer(trainer_id))

# Public - A Trainer's Weekly Schedule
@router.get("/{trainer_id}/schedule", response_model=List[schemas.TimeSlotOut])
def trainer_schedule(trainer_id: str, availability: AvailabilityService = Depends(get_availability_service)):
    return availability.trainer_schedule(trainer_id)

# Admin Only - Add a Trainer
@router.post(
    "/",
    response_model=schemas.TrainerOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth.verify_admin_account)],
)
def add_trainer(payload: schemas.TrainerCreate, service: AccountService = Depends(get_account_service)):
    trainer = service.add_trainer(
        name=payload.name,
        email=payload.email,
        expertise=payload.expertise,
        bio=payload.bio,
        avatar_url=payload.avatar_url,
        password=payload.password,
    )
    return schemas.account_out(trainer)

# Admin Only - Remove a Trainer (and their time slots)
@router.delete("/{trainer_id}", dependencies=[Depends(auth.verify_admin_account)])
def remove_trainer(trainer_id: str, service: AccountService = Depends(get_account_service)):
    service.remove_trainer(trainer_id)
    return {"message": "Trainer removed successfully"}

# Trainer (self) or Admin - Bookings With a Trainer
@router.get("/{trainer_id}/bookings", response_model=List[schemas.BookingOut])
def trainer_bookings(
    trainer_id: str,
    bookings: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.require_role("trainer", "admin")),
):
    if current_account.role == "trainer" and current_account.id != trainer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Trainers can only view their own bookings")
    return bookings.bookings_for_trainer(trainer_id)
