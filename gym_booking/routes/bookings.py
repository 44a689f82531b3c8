# gym_booking/routes/bookings.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from gym_booking import auth, schemas
from gym_booking.dependencies import get_booking_service
from gym_booking.entities import Account, Booking, BookingStatus
from gym_booking.services.booking_service import BookingService

router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"]
)


def _ensure_party(booking: Booking, account: Account, *roles: str) -> None:
    """Admins pass; otherwise the caller must be the booking's student or trainer in ``roles``."""
    if account.role == "admin":
        return
    allowed = (
        ("student" in roles and account.id == booking.student_id)
        or ("trainer" in roles and account.id == booking.trainer_id)
    )
    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your booking")


# Student - Book a Free Slot
@router.post("/", response_model=schemas.BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.require_role("student")),
):
    return service.create_booking(current_account.id, payload.trainer_id, payload.time_slot_id, payload.date)

# List My Bookings (student or trainer side)
@router.get("/my-bookings", response_model=List[schemas.BookingOut])
def list_my_bookings(
    service: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.get_current_account),
):
    if current_account.role == "student":
        return service.bookings_for_student(current_account.id)
    if current_account.role == "trainer":
        return service.bookings_for_trainer(current_account.id)
    return []

# Cancel a Booking (its student, its trainer, or an admin)
@router.post("/{booking_id}/cancel", response_model=schemas.BookingOut)
def cancel_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.get_current_account),
):
    _ensure_party(service.get_booking(booking_id), current_account, "student", "trainer")
    return service.cancel_booking(booking_id)

# Mark a Session Completed (its trainer or an admin)
@router.post("/{booking_id}/complete", response_model=schemas.BookingOut)
def complete_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.get_current_account),
):
    _ensure_party(service.get_booking(booking_id), current_account, "trainer")
    return service.complete_booking(booking_id)

# Pay for a Booking (its student)
@router.post("/{booking_id}/pay", response_model=schemas.PaymentResult)
def pay_booking(
    booking_id: str,
    payment: schemas.PaymentDetails,
    service: BookingService = Depends(get_booking_service),
    current_account: Account = Depends(auth.require_role("student")),
):
    _ensure_party(service.get_booking(booking_id), current_account, "student")
    success = service.process_payment(booking_id, payment)
    booking = service.get_booking(booking_id)
    return schemas.PaymentResult(success=success, booking=schemas.BookingOut.model_validate(booking))

# Admin - List All Bookings
@router.get(
    "/admin/all-bookings",
    response_model=List[schemas.BookingOut],
    dependencies=[Depends(auth.verify_admin_account)],
)
def list_all_bookings(
    student_id: Optional[str] = None,
    trainer_id: Optional[str] = None,
    status: Optional[BookingStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: BookingService = Depends(get_booking_service),
):
    return service.list_bookings(student_id, trainer_id, status, start_date, end_date)
