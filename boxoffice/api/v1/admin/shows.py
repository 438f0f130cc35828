import logging
from uuid import UUID
from typing import List
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from boxoffice.db.session import get_db
from boxoffice.api.deps import get_current_admin_id
from boxoffice.api.v1.public.bookings import serialize_booking
from boxoffice.core.config import settings
from boxoffice.models.booking import Booking
from boxoffice.models.show import Show, ShowStatus
from boxoffice.schemas.booking import Booking as BookingSchema
from boxoffice.schemas.common import ErrorResponse
from boxoffice.schemas.show import (
    ShowCreate,
    Show as ShowSchema,
    ShowCancelResponse,
)
from boxoffice.services import ledger, reservations, seat_map

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/shows", tags=["Admin - Shows"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_screen_overlap(
    db: Session,
    theatre_id: UUID,
    screen_name: str,
    start_time: datetime,
    end_time: datetime,
):
    """Raise 409 if the screen already has an overlapping, non-cancelled show."""
    conflict = (
        db.query(Show)
        .filter(
            Show.theatre_id == theatre_id,
            Show.screen_name == screen_name,
            Show.status != ShowStatus.CANCELLED,
            Show.start_time < end_time,
            Show.end_time > start_time,
        )
        .first()
    )
    if conflict:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Screen '{screen_name}' is already occupied from {conflict.start_time} "
                f"to {conflict.end_time} (show {conflict.id})"
            ),
        )


def _get_show_or_404(db: Session, show_id: UUID, lock: bool = False) -> Show:
    query = db.query(Show).filter(Show.id == show_id)
    if lock:
        query = query.with_for_update()
    show = query.first()
    if not show:
        raise HTTPException(status_code=404, detail="Show not found")
    return show


# ---------------------------------------------------------------------------
# Schedule a show
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=ShowSchema,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
def create_show(
    data: ShowCreate,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """
    Schedule a show on a theatre screen and generate its seat map.

    - End time = start + movie duration + cleaning buffer.
    - The screen must be free for the whole window.
    - Seats are generated from the screen layout (rows × cols) at the show
      price, with optional per-row price overrides.
    """
    start = _as_utc(data.start_time)
    end = start + timedelta(
        minutes=data.movie_duration_minutes + settings.SHOW_CLEANUP_BUFFER_MINUTES
    )

    seats = seat_map.generate(
        data.layout.rows, data.layout.cols, data.price, data.layout.row_prices
    )
    _check_screen_overlap(db, data.theatre_id, data.screen_name, start, end)

    show = Show(
        movie_id=data.movie_id,
        theatre_id=data.theatre_id,
        screen_name=data.screen_name,
        start_time=start,
        end_time=end,
        price=data.price,
        rows=data.layout.rows,
        cols=data.layout.cols,
        status=ShowStatus.OPEN,
        seats=seats,
    )
    db.add(show)
    db.commit()
    db.refresh(show)

    logger.info(
        "Show %s scheduled on %s by admin %s with %d seats",
        show.id, data.screen_name, admin_id, len(seats),
    )
    return show


# ---------------------------------------------------------------------------
# Cancel / delete
# ---------------------------------------------------------------------------


@router.patch("/{show_id}/cancel", response_model=ShowCancelResponse)
def cancel_show(
    show_id: UUID,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """
    Cancel a show. The show stays in the database for its bookings;
    new holds are refused and any live holds are released.
    """
    show = _get_show_or_404(db, show_id, lock=True)
    if show.status == ShowStatus.CANCELLED:
        raise HTTPException(status_code=409, detail="Show is already cancelled")

    # Status change and hold release commit together
    show.status = ShowStatus.CANCELLED
    db.flush()
    released = reservations.release_show_holds(db, show_id)

    logger.info("Show %s cancelled by admin %s, %d held seat(s) released", show_id, admin_id, released)
    return ShowCancelResponse(id=show_id, status=ShowStatus.CANCELLED, released_holds=released)


@router.delete("/{show_id}", status_code=status.HTTP_200_OK)
def delete_show(
    show_id: UUID,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """Hard-delete a show that nobody has booked. Booked shows can only be cancelled."""
    show = _get_show_or_404(db, show_id, lock=True)

    has_bookings = db.query(Booking.id).filter(Booking.show_id == show_id).first()
    if has_bookings:
        raise HTTPException(
            status_code=409,
            detail="Show has bookings and cannot be deleted; cancel it instead",
        )

    # Seats cascade-delete via the ORM relationship
    db.delete(show)
    db.commit()
    return {"id": str(show_id), "deleted": True}


# ---------------------------------------------------------------------------
# Bookings for a show
# ---------------------------------------------------------------------------


@router.get("/{show_id}/bookings", response_model=List[BookingSchema])
def list_show_bookings(
    show_id: UUID,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    _get_show_or_404(db, show_id)
    return [serialize_booking(b) for b in ledger.list_for_show(db, show_id)]
