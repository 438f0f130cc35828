from typing import Annotated, List
from uuid import UUID
from pydantic import BaseModel, Field, UUID4
from decimal import Decimal
from datetime import datetime


# --- Seat Map (user-facing seat selection screen) ---

class SeatView(BaseModel):
    label: str
    row: str
    number: int
    state: str  # available, held, booked
    price: Decimal
    mine: bool = False


class SeatMapResponse(BaseModel):
    show_id: UUID4
    rows: int
    cols: int
    seats: List[SeatView]


# --- Seat holds ---

class ReservationHandle(BaseModel):
    hold_id: UUID4
    show_id: UUID4
    user_id: UUID
    labels: List[str]
    total_price: Decimal
    expires_at: datetime


class HoldRequest(BaseModel):
    seat_labels: Annotated[List[str], Field(min_length=1)]


class HoldResponse(ReservationHandle):
    ttl_seconds: int


class HoldReleaseResponse(BaseModel):
    hold_id: UUID4
    released_seats: int
