from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from boxoffice.db.session import get_db
from boxoffice.api.deps import get_current_user_id
from boxoffice.models.booking import Booking
from boxoffice.schemas.booking import BookingCreate, Booking as BookingSchema
from boxoffice.schemas.common import (
    ErrorResponse,
    PaginatedResponse,
    PersistenceErrorResponse,
    SeatsErrorResponse,
)
from boxoffice.services import ledger, reservations

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def serialize_booking(booking: Booking) -> BookingSchema:
    """Convert a Booking ORM object to its schema representation."""
    return BookingSchema(
        id=booking.id,
        booking_number=booking.booking_number,
        user_id=booking.user_id,
        show_id=booking.show_id,
        movie_id=booking.movie_id,
        seats=booking.seat_labels,
        total_price=booking.total_price,
        payment_status=booking.payment_status,
        payment_method=booking.payment_method,
        transaction_id=booking.transaction_id,
        created_at=booking.created_at,
        show_start_time=booking.show.start_time if booking.show else None,
        screen_name=booking.show.screen_name if booking.show else None,
    )


# ---------------------------------------------------------------------------
# POST /bookings: create / confirm a booking
# ---------------------------------------------------------------------------


@router.post(
    "/",
    response_model=BookingSchema,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": SeatsErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": SeatsErrorResponse},
        500: {"model": PersistenceErrorResponse},
    },
)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """
    Confirm a booking. Two flows:

    **With a hold** (seat selection screen → payment screen):
    - Provide `hold_id` from POST /shows/{id}/holds plus the same `seat_labels`.
    - The hold must still be live and owned by the current user.

    **One step**:
    - Provide `show_id` + `seat_labels` only.
    - Seats are held and booked in one request; if anything fails the seats
      are released again.

    Payment is mocked: bookings are created CONFIRMED.
    """
    if data.hold_id:
        handle = reservations.get_handle(
            db, data.show_id, user_id, data.hold_id, labels=data.seat_labels
        )
        booking = reservations.commit(
            db,
            handle,
            payment_method=data.payment_method,
            transaction_id=data.transaction_id,
        )
    else:
        booking = reservations.book_seats(
            db,
            data.show_id,
            user_id,
            data.seat_labels,
            payment_method=data.payment_method,
            transaction_id=data.transaction_id,
        )
    return serialize_booking(booking)


# ---------------------------------------------------------------------------
# GET /bookings: list current user's bookings
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[BookingSchema])
def list_my_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """Return the authenticated user's bookings, newest first."""
    total = ledger.count_for_user(db, user_id)
    bookings = ledger.list_for_user(db, user_id, offset=(page - 1) * limit, limit=limit)

    return PaginatedResponse(
        data=[serialize_booking(b) for b in bookings],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# GET /bookings/{id}: single booking detail
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user_id),
):
    """Return a single booking. Only the owning user can access it."""
    booking = ledger.get_for_user(db, booking_id, user_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return serialize_booking(booking)
