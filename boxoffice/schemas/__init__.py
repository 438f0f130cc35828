from boxoffice.schemas.common import (
    PaginatedResponse, ErrorResponse, SeatsErrorResponse, PersistenceErrorResponse,
    SeatCounts, SweepResponse, ReconcileResponse, InventoryStats,
)
from boxoffice.schemas.show import Show, ShowCreate, ShowSummary, ShowCancelResponse, SeatLayout
from boxoffice.schemas.seat import (
    SeatView, SeatMapResponse, ReservationHandle,
    HoldRequest, HoldResponse, HoldReleaseResponse,
)
from boxoffice.schemas.booking import Booking, BookingCreate
