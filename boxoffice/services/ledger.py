import logging
import random
import string
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from boxoffice.core.exceptions import PersistenceError
from boxoffice.models.booking import Booking, BookingSeat, PaymentStatus

logger = logging.getLogger(__name__)


def _generate_booking_number(db: Session) -> str:
    """Generate a unique 'BOX-XXXXXXXX' booking reference."""
    chars = string.ascii_uppercase + string.digits
    while True:
        number = "BOX-" + "".join(random.choices(chars, k=8))
        exists = db.execute(
            select(Booking.id).where(Booking.booking_number == number)
        ).first()
        if not exists:
            return number


def record(
    db: Session,
    *,
    user_id: UUID,
    show_id: UUID,
    movie_id: UUID,
    labels: Sequence[str],
    total_price: Decimal,
    payment_method: Optional[str] = None,
    transaction_id: Optional[str] = None,
) -> Booking:
    """
    Append a confirmed booking to the ledger.

    The row is flushed inside the caller's transaction and not committed, so
    the reservation engine can flip seat state in the same unit of work.
    Storage failures surface as PersistenceError.
    """
    try:
        booking = Booking(
            booking_number=_generate_booking_number(db),
            user_id=user_id,
            show_id=show_id,
            movie_id=movie_id,
            total_price=total_price,
            payment_status=PaymentStatus.CONFIRMED,  # payment is mocked
            payment_method=payment_method,
            transaction_id=transaction_id,
        )
        booking.seats = [
            BookingSeat(show_id=show_id, seat_label=label, position=position)
            for position, label in enumerate(labels)
        ]
        db.add(booking)
        db.flush()
    except SQLAlchemyError as exc:
        logger.warning("Ledger write failed for show %s: %s", show_id, exc)
        raise PersistenceError("Could not record the booking") from exc
    return booking


def _with_seats(query):
    return query.options(selectinload(Booking.seats), selectinload(Booking.show))


def list_for_user(
    db: Session,
    user_id: UUID,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Booking]:
    """Bookings of a user, newest first."""
    query = _with_seats(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    return list(db.execute(query).scalars().all())


def count_for_user(db: Session, user_id: UUID) -> int:
    return db.execute(
        select(func.count()).select_from(Booking).where(Booking.user_id == user_id)
    ).scalar_one()


def get_for_user(db: Session, booking_id: UUID, user_id: UUID) -> Optional[Booking]:
    """A single booking, only if it belongs to the user."""
    return db.execute(
        _with_seats(
            select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
        )
    ).scalar_one_or_none()


def list_for_show(db: Session, show_id: UUID) -> List[Booking]:
    return list(
        db.execute(
            _with_seats(
                select(Booking)
                .where(Booking.show_id == show_id)
                .order_by(Booking.created_at.desc())
            )
        ).scalars().all()
    )
