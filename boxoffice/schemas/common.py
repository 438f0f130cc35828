from typing import Optional, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper: used by all list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses: shape of every BookingError rendered by the API
class ErrorResponse(BaseModel):
    kind: str
    message: str


class SeatsErrorResponse(ErrorResponse):
    seats: List[str]


class PersistenceErrorResponse(ErrorResponse):
    inconsistent: bool = False


# Admin maintenance
class SeatCounts(BaseModel):
    available: int = 0
    held: int = 0
    booked: int = 0


class SweepResponse(BaseModel):
    released_seats: int


class ReconcileResponse(BaseModel):
    repaired_seats: int
    orphaned_seats: List[str]


class InventoryStats(BaseModel):
    by_status: SeatCounts
    stale_holds: int
    orphaned_booked_seats: int
    total_bookings: int
    open_shows: Optional[int] = None
