import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.orm import Session

from boxoffice.models.booking import Booking, BookingSeat, PaymentStatus
from boxoffice.models.show import ShowSeat, SeatStatus

logger = logging.getLogger(__name__)


def reconcile_bookings(db: Session) -> int:
    """
    Force seats referenced by a confirmed booking into the booked state.

    A booking row is authoritative: if a crash left one of its seats held,
    available, or attributed to another booking, the seat is repaired to match
    the booking. Returns the number of seats repaired.
    """
    rows = db.execute(
        select(ShowSeat, Booking.id, Booking.user_id)
        .join(
            BookingSeat,
            and_(
                BookingSeat.show_id == ShowSeat.show_id,
                BookingSeat.seat_label == ShowSeat.label,
            ),
        )
        .join(Booking, Booking.id == BookingSeat.booking_id)
        .where(
            Booking.payment_status == PaymentStatus.CONFIRMED,
            or_(
                ShowSeat.status != SeatStatus.BOOKED,
                ShowSeat.booking_id.is_(None),
                ShowSeat.booking_id != Booking.id,
            ),
        )
    ).all()

    for seat, booking_id, user_id in rows:
        logger.warning(
            "Repairing seat %s of show %s (was %s) to match booking %s",
            seat.label, seat.show_id, seat.status, booking_id,
        )
        seat.status = SeatStatus.BOOKED
        seat.holder_id = user_id
        seat.booking_id = booking_id
        seat.hold_id = None
        seat.held_until = None

    db.commit()
    return len(rows)


def find_orphaned_seats(db: Session) -> List[str]:
    """
    Booked seats that no booking references, as "<show_id>:<label>".

    These are reported for an operator; booked -> available is not a
    transition the engine performs.
    """
    has_booking = exists().where(
        BookingSeat.show_id == ShowSeat.show_id,
        BookingSeat.seat_label == ShowSeat.label,
    )
    rows = db.execute(
        select(ShowSeat.show_id, ShowSeat.label)
        .where(ShowSeat.status == SeatStatus.BOOKED, ~has_booking)
        .order_by(ShowSeat.show_id, ShowSeat.label)
    ).all()
    orphans = [f"{show_id}:{label}" for show_id, label in rows]
    if orphans:
        logger.error("Booked seats without a booking: %s", ", ".join(orphans))
    return orphans


def count_stale_holds(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return db.execute(
        select(func.count())
        .select_from(ShowSeat)
        .where(ShowSeat.status == SeatStatus.HELD, ShowSeat.held_until < now)
    ).scalar_one()
