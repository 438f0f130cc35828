import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from boxoffice.db.init_db import create_database
from boxoffice.db.base import Base
from boxoffice.db.session import engine, SessionLocal
from boxoffice.core.config import settings
from boxoffice.core.exceptions import BookingError
from boxoffice.api.v1.router import api_router

logger = logging.getLogger(__name__)


def _sweep_expired_holds() -> int:
    from boxoffice.services.reservations import expire_stale_holds

    db = SessionLocal()
    try:
        return expire_stale_holds(db)
    finally:
        db.close()


async def _hold_sweep_loop() -> None:
    """Background task: release expired seat holds every HOLD_SWEEP_INTERVAL_SECONDS."""
    while True:
        try:
            # Database work runs off the event loop
            count = await asyncio.to_thread(_sweep_expired_holds)
            if count:
                logger.info("Released %d expired seat hold(s).", count)
        except Exception:
            logger.exception("Error during seat hold sweep.")
        await asyncio.sleep(settings.HOLD_SWEEP_INTERVAL_SECONDS)


def _reconcile_on_startup() -> None:
    """Bring seat state in line with the booking ledger after a crash."""
    from boxoffice.services.recovery import find_orphaned_seats, reconcile_bookings

    db = SessionLocal()
    try:
        repaired = reconcile_bookings(db)
        if repaired:
            logger.warning("Reconciled %d seat(s) with the booking ledger.", repaired)
        find_orphaned_seats(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Ensure DB exists and create tables
    create_database()
    Base.metadata.create_all(bind=engine)
    if settings.RECONCILE_ON_STARTUP:
        _reconcile_on_startup()

    # Expire stale holds now, then keep running in the background
    sweep_task = asyncio.create_task(_hold_sweep_loop())
    yield

    # Shutdown: cancel background task
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass


from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"Hello": "Box Office"}
