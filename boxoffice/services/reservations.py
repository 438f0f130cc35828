"""
Seat reservation engine.

This module is the only place that changes seat state. Every transition is a
single conditional UPDATE keyed by show, labels and the expected prior state,
so two concurrent requests can never both move the same seat out of
``available``:

    available --reserve--> held --commit--> booked
                           held --release / expiry / failed commit--> available

A hold is identified by a ``hold_id`` stamped on its seat rows. Commit and
release act on exactly those rows rather than re-reading the show and guessing
which seats belong to the caller.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from boxoffice.core.config import settings
from boxoffice.core.exceptions import (
    BookingError,
    HoldExpired,
    InvalidSelection,
    PersistenceError,
    SeatUnavailable,
    ShowNotBookable,
    ShowNotFound,
)
from boxoffice.models.booking import Booking
from boxoffice.models.show import Show, ShowSeat, ShowStatus, SeatStatus
from boxoffice.schemas.seat import ReservationHandle
from boxoffice.services import ledger, seat_map

logger = logging.getLogger(__name__)

RELEASED_VALUES = {
    "status": SeatStatus.AVAILABLE,
    "holder_id": None,
    "hold_id": None,
    "held_until": None,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_labels(labels: Iterable[str]) -> List[str]:
    """Trim and upper-case labels, dropping blanks and repeats (first one wins)."""
    cleaned = (label.strip().upper() for label in labels)
    return list(dict.fromkeys(label for label in cleaned if label))


def _claimable(now: datetime):
    # Lapsed holds are claimable straight away; the sweep only tidies up
    return or_(
        ShowSeat.status == SeatStatus.AVAILABLE,
        and_(ShowSeat.status == SeatStatus.HELD, ShowSeat.held_until < now),
    )


def _held_by(handle: ReservationHandle, now: datetime):
    return and_(
        ShowSeat.show_id == handle.show_id,
        ShowSeat.hold_id == handle.hold_id,
        ShowSeat.holder_id == handle.user_id,
        ShowSeat.status == SeatStatus.HELD,
        ShowSeat.label.in_(handle.labels),
        ShowSeat.held_until >= now,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _lock_show(db: Session, show_id: UUID) -> Show:
    """Lock the show row so seat changes for one show are applied one at a time."""
    show = db.execute(
        select(Show)
        .where(Show.id == show_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if show is None:
        raise ShowNotFound(show_id)
    return show


def _lock_bookable_show(db: Session, show_id: UUID, now: datetime) -> Show:
    show = _lock_show(db, show_id)
    if show.status != ShowStatus.OPEN:
        raise ShowNotBookable(f"Show is {show.status.replace('_', ' ')}")

    started = db.execute(
        select(Show.id).where(Show.id == show_id, Show.start_time <= now)
    ).first()
    if started:
        raise ShowNotBookable("Show has already started")
    return show


def _unavailable_labels(db: Session, show_id: UUID, labels: List[str], now: datetime) -> List[str]:
    taken = set(
        db.execute(
            select(ShowSeat.label).where(
                ShowSeat.show_id == show_id,
                ShowSeat.label.in_(labels),
                ~_claimable(now),
            )
        ).scalars()
    )
    return [label for label in labels if label in taken]


def _mark_sold_out(db: Session, show_id: UUID) -> None:
    remaining = db.execute(
        select(func.count())
        .select_from(ShowSeat)
        .where(ShowSeat.show_id == show_id, ShowSeat.status != SeatStatus.BOOKED)
    ).scalar_one()
    if remaining == 0:
        db.execute(
            update(Show)
            .where(Show.id == show_id, Show.status == ShowStatus.OPEN)
            .values(status=ShowStatus.SOLD_OUT)
            .execution_options(synchronize_session=False)
        )


def _flip_to_booked(db: Session, handle: ReservationHandle, now: datetime) -> int:
    # hold_id stays on the rows until the booking is linked
    return db.execute(
        update(ShowSeat)
        .where(_held_by(handle, now))
        .values(status=SeatStatus.BOOKED)
        .execution_options(synchronize_session=False)
    ).rowcount


def _link_booking(db: Session, handle: ReservationHandle, booking_id: UUID) -> None:
    db.execute(
        update(ShowSeat)
        .where(
            ShowSeat.show_id == handle.show_id,
            ShowSeat.hold_id == handle.hold_id,
            ShowSeat.status == SeatStatus.BOOKED,
        )
        .values(booking_id=booking_id, hold_id=None, held_until=None)
        .execution_options(synchronize_session=False)
    )


def _compensate(db: Session, handle: ReservationHandle) -> None:
    """Undo a hold after a failed commit; escalate if even that fails."""
    try:
        release(db, handle)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Compensating release failed for hold %s (show %s, seats %s); manual repair needed",
            handle.hold_id, handle.show_id, ", ".join(handle.labels),
        )
        raise PersistenceError(
            "Booking failed and the seat hold could not be released",
            inconsistent=True,
        ) from exc


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def reserve(
    db: Session,
    show_id: UUID,
    user_id: UUID,
    labels: Iterable[str],
    now: Optional[datetime] = None,
) -> ReservationHandle:
    """
    Hold every requested seat for ``user_id``, or none of them.

    Raises InvalidSelection, ShowNotFound, ShowNotBookable or UnknownSeat
    before touching seat state, and SeatUnavailable if any seat is taken.
    """
    now = now or datetime.now(timezone.utc)
    labels = normalize_labels(labels)
    if not labels:
        raise InvalidSelection("Select at least one seat")
    if len(labels) > settings.MAX_SEATS_PER_BOOKING:
        raise InvalidSelection(
            f"At most {settings.MAX_SEATS_PER_BOOKING} seats can be booked at once"
        )

    hold_id = uuid.uuid4()
    held_until = now + timedelta(minutes=settings.HOLD_MINUTES)

    try:
        _lock_bookable_show(db, show_id, now)
        seat_map.labels_exist(db, show_id, labels)

        claimed = db.execute(
            update(ShowSeat)
            .where(
                ShowSeat.show_id == show_id,
                ShowSeat.label.in_(labels),
                _claimable(now),
            )
            .values(
                status=SeatStatus.HELD,
                holder_id=user_id,
                hold_id=hold_id,
                held_until=held_until,
            )
            .execution_options(synchronize_session=False)
        ).rowcount

        if claimed != len(labels):
            db.rollback()
            taken = _unavailable_labels(db, show_id, labels, now)
            logger.info(
                "Hold rejected for user %s on show %s, taken: %s",
                user_id, show_id, ", ".join(taken),
            )
            raise SeatUnavailable(taken or labels)

        prices = db.execute(
            select(ShowSeat.price).where(
                ShowSeat.show_id == show_id, ShowSeat.hold_id == hold_id
            )
        ).scalars().all()
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Seat hold failed for show %s", show_id)
        raise PersistenceError("Could not reserve seats") from exc

    logger.info("User %s holds %s on show %s (hold %s)", user_id, ", ".join(labels), show_id, hold_id)
    return ReservationHandle(
        hold_id=hold_id,
        show_id=show_id,
        user_id=user_id,
        labels=labels,
        total_price=sum(prices, Decimal("0")),
        expires_at=held_until,
    )


def commit(
    db: Session,
    handle: ReservationHandle,
    payment_method: Optional[str] = None,
    transaction_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Turn a live hold into a booking.

    Under the show lock the hold's seats are claimed with one conditional
    held -> booked UPDATE, then the ledger row is written and linked, all in
    one transaction. A lapsed, stolen or already committed hold raises
    HoldExpired with nothing written. A cancelled show raises ShowNotBookable
    and the hold is released. A storage failure releases the hold before
    PersistenceError is raised.
    """
    now = now or datetime.now(timezone.utc)

    try:
        show = _lock_show(db, handle.show_id)
        if show.status == ShowStatus.CANCELLED:
            raise ShowNotBookable("Show has been cancelled")
        movie_id = show.movie_id

        claimed = _flip_to_booked(db, handle, now)
        if claimed != len(handle.labels):
            raise HoldExpired()
    except ShowNotBookable:
        db.rollback()
        release(db, handle)
        raise
    except BookingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Seat claim failed for hold %s: %s", handle.hold_id, exc)
        _compensate(db, handle)
        raise PersistenceError("Booking failed. Please try again.") from exc

    try:
        booking = ledger.record(
            db,
            user_id=handle.user_id,
            show_id=handle.show_id,
            movie_id=movie_id,
            labels=handle.labels,
            total_price=handle.total_price,
            payment_method=payment_method,
            transaction_id=transaction_id,
        )
    except PersistenceError:
        db.rollback()
        _compensate(db, handle)
        raise

    try:
        _link_booking(db, handle, booking.id)
        _mark_sold_out(db, handle.show_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Booking commit failed for hold %s: %s", handle.hold_id, exc)
        _compensate(db, handle)
        raise PersistenceError("Booking failed. Please try again.") from exc

    logger.info(
        "Booking %s confirmed for user %s: show %s seats %s",
        booking.booking_number, handle.user_id, handle.show_id, ", ".join(handle.labels),
    )
    return booking


def release(db: Session, handle: ReservationHandle) -> int:
    """Return the handle's held seats to available. Safe to call repeatedly."""
    released = db.execute(
        update(ShowSeat)
        .where(
            ShowSeat.show_id == handle.show_id,
            ShowSeat.hold_id == handle.hold_id,
            ShowSeat.holder_id == handle.user_id,
            ShowSeat.status == SeatStatus.HELD,
            ShowSeat.label.in_(handle.labels),
        )
        .values(**RELEASED_VALUES)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    if released:
        logger.info("Released %d seat(s) of hold %s", released, handle.hold_id)
    return released


def expire_stale_holds(db: Session, now: Optional[datetime] = None) -> int:
    """Release every hold past its expiry. Returns the number of seats freed."""
    now = now or datetime.now(timezone.utc)
    expired = db.execute(
        update(ShowSeat)
        .where(ShowSeat.status == SeatStatus.HELD, ShowSeat.held_until < now)
        .values(**RELEASED_VALUES)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return expired


def release_show_holds(db: Session, show_id: UUID) -> int:
    """
    Release every hold on a show, e.g. when the show is cancelled. Pending
    changes in the session (the cancellation itself) commit with it.
    """
    released = db.execute(
        update(ShowSeat)
        .where(ShowSeat.show_id == show_id, ShowSeat.status == SeatStatus.HELD)
        .values(**RELEASED_VALUES)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return released


# ---------------------------------------------------------------------------
# Entry points for the HTTP layer
# ---------------------------------------------------------------------------


def get_handle(
    db: Session,
    show_id: UUID,
    user_id: UUID,
    hold_id: UUID,
    labels: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None,
) -> ReservationHandle:
    """Rebuild the handle of a live hold owned by ``user_id``."""
    now = now or datetime.now(timezone.utc)
    rows = db.execute(
        select(ShowSeat.label, ShowSeat.price, ShowSeat.held_until)
        .where(
            ShowSeat.show_id == show_id,
            ShowSeat.hold_id == hold_id,
            ShowSeat.holder_id == user_id,
            ShowSeat.status == SeatStatus.HELD,
            ShowSeat.held_until >= now,
        )
        .order_by(ShowSeat.row_label, ShowSeat.seat_number)
    ).all()
    if not rows:
        raise HoldExpired("Seat hold not found or expired")

    held = [r.label for r in rows]
    if labels is None:
        ordered = held
    else:
        ordered = normalize_labels(labels)
        if set(ordered) != set(held):
            raise InvalidSelection("Selected seats do not match the seat hold")

    return ReservationHandle(
        hold_id=hold_id,
        show_id=show_id,
        user_id=user_id,
        labels=ordered,
        total_price=sum((r.price for r in rows), Decimal("0")),
        expires_at=_as_utc(min(r.held_until for r in rows)),
    )


def book_seats(
    db: Session,
    show_id: UUID,
    user_id: UUID,
    labels: Iterable[str],
    payment_method: Optional[str] = None,
    transaction_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """Reserve and commit in one call. A failed commit never leaves seats held."""
    handle = reserve(db, show_id, user_id, labels, now=now)
    try:
        return commit(
            db,
            handle,
            payment_method=payment_method,
            transaction_id=transaction_id,
            now=now,
        )
    except HoldExpired:
        release(db, handle)
        raise


def release_hold(db: Session, show_id: UUID, user_id: UUID, hold_id: UUID) -> int:
    """Release a hold by id on behalf of its owner; lapsed holds are released too."""
    released = db.execute(
        update(ShowSeat)
        .where(
            ShowSeat.show_id == show_id,
            ShowSeat.hold_id == hold_id,
            ShowSeat.holder_id == user_id,
            ShowSeat.status == SeatStatus.HELD,
        )
        .values(**RELEASED_VALUES)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return released
