# gym_booking/exceptions.py
"""
Domain errors for the booking core.

Every error is raised before the store is touched, except PersistenceFailed,
which reports a write that the persistence backend refused after the
in-memory state was already updated.
"""

from typing import Any, Dict, Optional

from fastapi import status


class GymError(Exception):
    """Base class for all booking-core errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected gym error"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


class NotFound(GymError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class BookingNotFound(NotFound):
    default_message = "Booking not found"


class TimeSlotNotFound(NotFound):
    default_message = "Time slot not found"


class UnknownStudent(NotFound):
    default_message = "Student not found"


class UnknownTrainer(NotFound):
    default_message = "Trainer not found"


class AccountNotFound(NotFound):
    default_message = "Account not found"


class Conflict(GymError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict with existing data"


class SlotUnavailable(Conflict):
    default_message = "This time slot is not available"


class TimeSlotConflict(Conflict):
    default_message = "This time slot conflicts with an existing one"


class EmailInUse(Conflict):
    default_message = "An account with this email already exists"


class InvalidTransition(GymError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Booking cannot move to the requested status"


class PreconditionFailed(GymError):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    default_message = "Precondition failed"


class SlotInUse(PreconditionFailed):
    default_message = "This time slot is booked and cannot be removed"


class HasActiveBookings(PreconditionFailed):
    default_message = "This account has active bookings and cannot be removed"


class ValidationFailed(GymError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class PersistenceFailed(GymError):
    """The change is applied in memory but the backend did not store it."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Failed to persist change"
