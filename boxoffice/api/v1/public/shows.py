from uuid import UUID
from typing import List, Optional
from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from boxoffice.db.session import get_db
from boxoffice.api.deps import get_current_user_id, get_optional_user_id
from boxoffice.core.config import settings
from boxoffice.models.show import Show
from boxoffice.schemas.common import ErrorResponse, SeatsErrorResponse
from boxoffice.schemas.show import Show as ShowSchema, ShowSummary
from boxoffice.schemas.seat import (
    SeatMapResponse,
    HoldRequest,
    HoldResponse,
    HoldReleaseResponse,
)
from boxoffice.services import reservations, seat_map

router = APIRouter(prefix="/shows", tags=["Shows"])


def _get_show_or_404(db: Session, show_id: UUID) -> Show:
    show = db.query(Show).filter(Show.id == show_id).first()
    if not show:
        raise HTTPException(status_code=404, detail="Show not found")
    return show


# ---------------------------------------------------------------------------
# Public: show listing (movie page / theatre page)
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ShowSummary])
def list_shows(
    movie_id: Optional[UUID] = Query(None),
    theatre_id: Optional[UUID] = Query(None),
    date: Optional[date] = Query(None, description="Filter by show date (YYYY-MM-DD, UTC)"),
    db: Session = Depends(get_db),
):
    """Return shows ordered by start time, with live available-seat counts."""
    query = db.query(Show)
    if movie_id:
        query = query.filter(Show.movie_id == movie_id)
    if theatre_id:
        query = query.filter(Show.theatre_id == theatre_id)
    if date:
        start_of_day = datetime.combine(date, time.min, tzinfo=timezone.utc)
        query = query.filter(
            Show.start_time >= start_of_day,
            Show.start_time < start_of_day + timedelta(days=1),
        )

    shows = query.order_by(Show.start_time).all()
    counts = seat_map.available_counts(db, [s.id for s in shows])
    return [
        ShowSummary.model_validate(s).model_copy(
            update={"available_seats": counts.get(s.id, 0)}
        )
        for s in shows
    ]


@router.get("/{show_id}", response_model=ShowSchema)
def get_show(show_id: UUID, db: Session = Depends(get_db)):
    return _get_show_or_404(db, show_id)


# ---------------------------------------------------------------------------
# Public: seat map (seat selection screen)
# ---------------------------------------------------------------------------


@router.get("/{show_id}/seat-map", response_model=SeatMapResponse)
def get_seat_map(
    show_id: UUID,
    db: Session = Depends(get_db),
    viewer_id: Optional[UUID] = Depends(get_optional_user_id),
):
    """
    Returns every seat of the show with its current state.
    Anyone can view availability; signed-in users also see which held or
    booked seats are their own (`mine`). Holder identities are never exposed.
    """
    show = _get_show_or_404(db, show_id)
    return SeatMapResponse(
        show_id=show.id,
        rows=show.rows,
        cols=show.cols,
        seats=seat_map.snapshot(db, show.id, viewer_id=viewer_id),
    )


# ---------------------------------------------------------------------------
# Seat holds (auth required)
# ---------------------------------------------------------------------------


@router.post(
    "/{show_id}/holds",
    response_model=HoldResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": SeatsErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": SeatsErrorResponse},
    },
)
def create_hold(
    show_id: UUID,
    body: HoldRequest,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Hold a set of seats for the authenticated user while they pay.
    Either every requested seat is held or none is. Holds expire after
    HOLD_MINUTES; commit them with POST /bookings and the returned hold_id.
    """
    handle = reservations.reserve(db, show_id, user_id, body.seat_labels)
    return HoldResponse(
        **handle.model_dump(),
        ttl_seconds=settings.HOLD_MINUTES * 60,
    )


@router.delete("/{show_id}/holds/{hold_id}", response_model=HoldReleaseResponse)
def release_hold(
    show_id: UUID,
    hold_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """Release the user's own hold (e.g. user goes back / cancels checkout)."""
    released = reservations.release_hold(db, show_id, user_id, hold_id)
    return HoldReleaseResponse(hold_id=hold_id, released_seats=released)
