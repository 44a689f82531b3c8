import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SYNC_BACKEND", "memory")
os.environ.setdefault("SEED_DEMO_DATA", "false")

from datetime import time

import pytest
from fastapi.testclient import TestClient

from gym_booking import auth
from gym_booking.entities import Weekday
from gym_booking.main import create_app
from gym_booking.payments import FixedOutcomeGateway
from gym_booking.schemas import PaymentDetails
from gym_booking.services.account_service import AccountService
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService
from gym_booking.services.schedule_service import ScheduleService
from gym_booking.store import GymStore
from gym_booking.sync import MemorySynchronizer

# Cheap hashes keep the suite fast
auth.pwd_context.update(bcrypt__rounds=4)


@pytest.fixture
def store():
    return GymStore()


@pytest.fixture
def sync():
    return MemorySynchronizer()


@pytest.fixture
def gateway():
    return FixedOutcomeGateway(True)


@pytest.fixture
def accounts(store, sync):
    return AccountService(store, sync)


@pytest.fixture
def schedule(store, sync):
    return ScheduleService(store, sync)


@pytest.fixture
def bookings(store, sync, gateway):
    return BookingService(store, sync, gateway)


@pytest.fixture
def availability(store):
    return AvailabilityService(store)


@pytest.fixture
def student(accounts):
    return accounts.register_account("Alex Johnson", "alex@example.com", password="secret123")


@pytest.fixture
def trainer(accounts):
    return accounts.add_trainer("Casey Martinez", "casey@example.com", expertise=["HIIT"], bio="Strength coach")


@pytest.fixture
def monday_slot(schedule, trainer):
    return schedule.add_time_slot(trainer.id, Weekday.MONDAY, time(8, 0), time(9, 0))


@pytest.fixture
def card():
    return PaymentDetails(
        card_number="4242 4242 4242 4242",
        cardholder_name="Alex Johnson",
        expiry_date="12/30",
        cvv="123",
    )


@pytest.fixture
def api_gateway():
    return FixedOutcomeGateway(True)


@pytest.fixture
def client(api_gateway):
    app = create_app(MemorySynchronizer(), api_gateway, seed_demo_data=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def make(account) -> dict:
        token = auth.create_access_token(data={"sub": account.id, "role": account.role})
        return {"Authorization": f"Bearer {token}"}

    return make
