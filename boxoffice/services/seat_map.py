import string
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from boxoffice.core.exceptions import InvalidLayout, UnknownSeat
from boxoffice.models.show import ShowSeat, SeatStatus
from boxoffice.schemas.common import SeatCounts
from boxoffice.schemas.seat import SeatView

# Single-letter rows only; layouts past "Z" are rejected
ROW_LABELS = string.ascii_uppercase


def seat_label(row_label: str, seat_number: int) -> str:
    return f"{row_label}{seat_number}"


def generate(
    rows: int,
    cols: int,
    unit_price: Decimal,
    row_prices: Optional[Dict[str, Decimal]] = None,
) -> List[ShowSeat]:
    """
    Build the seat grid for a new show: rows A, B, C, ... by columns 1..cols.

    Every seat starts available. ``row_prices`` overrides the unit price for
    whole rows (premium rows, recliners, etc.).

    Raises InvalidLayout for non-positive dimensions, more than 26 rows, or a
    price override for a row outside the layout.
    """
    if rows < 1 or cols < 1:
        raise InvalidLayout(f"Seat layout must have at least one row and column (got {rows}x{cols})")
    if rows > len(ROW_LABELS):
        raise InvalidLayout(f"Seat layout supports at most {len(ROW_LABELS)} rows (got {rows})")

    overrides = {k.strip().upper(): Decimal(v) for k, v in (row_prices or {}).items()}
    used_rows = ROW_LABELS[:rows]
    stray = sorted(set(overrides) - set(used_rows))
    if stray:
        raise InvalidLayout(f"Price override for row(s) outside the layout: {', '.join(stray)}")

    seats = []
    for row_label in used_rows:
        price = overrides.get(row_label, Decimal(unit_price))
        for number in range(1, cols + 1):
            seats.append(ShowSeat(
                row_label=row_label,
                seat_number=number,
                label=seat_label(row_label, number),
                price=price,
                status=SeatStatus.AVAILABLE,
            ))
    return seats


def _effective_state(now: datetime):
    # A lapsed hold reads as available even before the sweep clears it
    return case(
        (
            and_(ShowSeat.status == SeatStatus.HELD, ShowSeat.held_until < now),
            SeatStatus.AVAILABLE,
        ),
        else_=ShowSeat.status,
    )


def snapshot(
    db: Session,
    show_id: UUID,
    viewer_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> List[SeatView]:
    """
    Read-only view of a show's seats, ordered for rendering.

    Holder identities are never returned; ``mine`` only tells the viewer which
    held/booked seats are their own.
    """
    now = now or datetime.now(timezone.utc)
    state = _effective_state(now).label("state")
    rows = db.execute(
        select(
            ShowSeat.label,
            ShowSeat.row_label,
            ShowSeat.seat_number,
            ShowSeat.price,
            ShowSeat.holder_id,
            state,
        )
        .where(ShowSeat.show_id == show_id)
        .order_by(ShowSeat.row_label, ShowSeat.seat_number)
    ).all()

    return [
        SeatView(
            label=r.label,
            row=r.row_label,
            number=r.seat_number,
            state=r.state,
            price=r.price,
            mine=(
                viewer_id is not None
                and r.state != SeatStatus.AVAILABLE
                and r.holder_id == viewer_id
            ),
        )
        for r in rows
    ]


def labels_exist(db: Session, show_id: UUID, labels: Iterable[str]) -> bool:
    """Return True if every label belongs to the show's map, else raise UnknownSeat."""
    labels = list(labels)
    found = set(
        db.execute(
            select(ShowSeat.label).where(
                ShowSeat.show_id == show_id,
                ShowSeat.label.in_(labels),
            )
        ).scalars()
    )
    missing = [label for label in labels if label not in found]
    if missing:
        raise UnknownSeat(missing)
    return True


def seat_counts(
    db: Session,
    show_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> SeatCounts:
    """Count seats by effective state, for one show or across all shows."""
    now = now or datetime.now(timezone.utc)
    state = _effective_state(now)
    query = select(state, func.count()).group_by(state)
    if show_id is not None:
        query = query.where(ShowSeat.show_id == show_id)
    counts = {row[0]: row[1] for row in db.execute(query).all()}
    return SeatCounts(
        available=counts.get(SeatStatus.AVAILABLE, 0),
        held=counts.get(SeatStatus.HELD, 0),
        booked=counts.get(SeatStatus.BOOKED, 0),
    )


def available_counts(db: Session, show_ids: List[UUID], now: Optional[datetime] = None) -> Dict[UUID, int]:
    """Available seats per show for listing screens."""
    if not show_ids:
        return {}
    now = now or datetime.now(timezone.utc)
    state = _effective_state(now)
    rows = db.execute(
        select(ShowSeat.show_id, func.count())
        .where(ShowSeat.show_id.in_(show_ids), state == SeatStatus.AVAILABLE)
        .group_by(ShowSeat.show_id)
    ).all()
    return {show_id: count for show_id, count in rows}
