# gym_booking/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gym_booking.config import settings
from gym_booking.exceptions import GymError
from gym_booking.payments import PaymentGateway, SimulatedGateway
from gym_booking.routes import accounts, bookings, time_slots, trainers
from gym_booking.seed import build_demo_snapshot, seed_changes
from gym_booking.services.account_service import AccountService
from gym_booking.services.availability import AvailabilityService
from gym_booking.services.booking_service import BookingService
from gym_booking.services.schedule_service import ScheduleService
from gym_booking.store import GymStore
from gym_booking.sync import (
    ChangeFeed,
    DatabaseSynchronizer,
    MemorySynchronizer,
    SnapshotSynchronizer,
    Synchronizer,
    follow,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_synchronizer(feed: Optional[ChangeFeed] = None) -> Synchronizer:
    if settings.SYNC_BACKEND == "snapshot":
        return SnapshotSynchronizer(settings.SNAPSHOT_PATH)
    if settings.SYNC_BACKEND == "memory":
        return MemorySynchronizer()

    from gym_booking.database import Base, SessionLocal, engine

    # Create the database tables
    Base.metadata.create_all(bind=engine)
    return DatabaseSynchronizer(SessionLocal, feed=feed)


def open_store(synchronizer: Synchronizer, seed_demo_data: bool) -> GymStore:
    store = GymStore()
    snapshot = synchronizer.load()
    if snapshot.is_empty() and seed_demo_data:
        snapshot = build_demo_snapshot()
        store.load(snapshot)
        synchronizer.persist(store, seed_changes(snapshot))
        logger.info("Seeded demo data")
    else:
        store.load(snapshot)
    return store


def create_app(
    synchronizer: Optional[Synchronizer] = None,
    gateway: Optional[PaymentGateway] = None,
    seed_demo_data: Optional[bool] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        own_feed = None
        if synchronizer is None:
            own_feed = ChangeFeed()
            sync = build_synchronizer(own_feed)
        else:
            sync = synchronizer
        store = open_store(sync, settings.SEED_DEMO_DATA if seed_demo_data is None else seed_demo_data)

        # Writers sharing the feed push table changes into this store
        feed = getattr(sync, "feed", None)
        stop_following = follow(store, feed, sync) if feed is not None else None

        app.state.store = store
        app.state.synchronizer = sync
        app.state.feed = feed
        app.state.booking_service = BookingService(
            store, sync, gateway or SimulatedGateway(settings.PAYMENT_SUCCESS_RATE)
        )
        app.state.schedule_service = ScheduleService(store, sync)
        app.state.availability_service = AvailabilityService(store)
        app.state.account_service = AccountService(store, sync)
        logger.info("Gym booking service started with %s", type(sync).__name__)
        try:
            yield
        finally:
            if stop_following is not None:
                stop_following()
            if own_feed is not None:
                own_feed.close()
            sync.close()

    app = FastAPI(
        title="Gym Booking System",
        description="Trainer sessions for students: scheduling, booking and payment",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GymError)
    async def gym_error_handler(request: Request, exc: GymError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})

    # Registering Routers
    app.include_router(accounts.router)
    app.include_router(trainers.router)
    app.include_router(time_slots.router)
    app.include_router(bookings.router)

    @app.get("/", tags=["Root"])
    def read_root():
        return {"message": "Welcome to the Gym Booking System"}

    return app


app = create_app()
