from typing import Annotated, Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, UUID4, field_validator
from decimal import Decimal
from datetime import datetime


# Booking: Create (POST /bookings)
class BookingCreate(BaseModel):
    show_id: UUID4
    seat_labels: Annotated[List[str], Field(min_length=1)]
    hold_id: Optional[UUID4] = None
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None

    @field_validator("hold_id", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if v == "":
            return None
        return v


# Booking: Full response (POST /bookings, GET /bookings/{id})
class Booking(BaseModel):
    id: UUID4
    booking_number: str
    user_id: UUID
    show_id: UUID4
    movie_id: UUID4
    seats: List[str]
    total_price: Decimal
    payment_status: str
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    created_at: datetime
    # Show details for the "my bookings" list
    show_start_time: Optional[datetime] = None
    screen_name: Optional[str] = None

    class Config:
        from_attributes = True
