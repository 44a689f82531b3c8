# gym_booking/dependencies.py
from fastapi import Request

from gym_booking.services.account_service import AccountService
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService
from gym_booking.services.schedule_service import ScheduleService


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service

def get_schedule_service(request: Request) -> ScheduleService:
    return request.app.state.schedule_service

def get_availability_service(request: Request) -> AvailabilityService:
    return request.app.state.availability_service

def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service
