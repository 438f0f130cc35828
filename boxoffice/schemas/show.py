from typing import Dict, Optional
from pydantic import BaseModel, Field, UUID4
from decimal import Decimal
from datetime import datetime


class SeatLayout(BaseModel):
    rows: int
    cols: int
    # Optional per-row price override, e.g. {"A": 250}
    row_prices: Optional[Dict[str, Decimal]] = None


# Show: Create (POST /admin/shows)
class ShowCreate(BaseModel):
    movie_id: UUID4
    theatre_id: UUID4
    screen_name: str
    start_time: datetime
    movie_duration_minutes: int = Field(gt=0)
    price: Decimal = Field(ge=0)
    layout: SeatLayout


class Show(BaseModel):
    id: UUID4
    movie_id: UUID4
    theatre_id: UUID4
    screen_name: str
    start_time: datetime
    end_time: datetime
    price: Decimal
    rows: int
    cols: int
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Listing card with live availability (GET /shows)
class ShowSummary(Show):
    available_seats: int = 0


class ShowCancelResponse(BaseModel):
    id: UUID4
    status: str
    released_holds: int
