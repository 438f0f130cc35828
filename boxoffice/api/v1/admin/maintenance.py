from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from boxoffice.db.session import get_db
from boxoffice.api.deps import get_current_admin_id
from boxoffice.models.booking import Booking
from boxoffice.models.show import Show, ShowStatus
from boxoffice.schemas.common import InventoryStats, ReconcileResponse, SweepResponse
from boxoffice.services import recovery, reservations, seat_map

router = APIRouter(prefix="/admin/maintenance", tags=["Admin - Maintenance"])


@router.post("/expire-holds", response_model=SweepResponse)
def expire_holds(
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """
    Release every seat hold past its expiry now, instead of waiting for the
    background sweep.
    """
    return SweepResponse(released_seats=reservations.expire_stale_holds(db))


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """
    Repair seat state from the booking ledger.

    1. **Repaired seats**: seats referenced by a confirmed booking that are not
       marked booked for it (e.g. after a crash mid-commit) are forced to booked.

    2. **Orphaned seats**: booked seats that no booking references. These are
       only reported; they need an operator to decide.
    """
    repaired = recovery.reconcile_bookings(db)
    return ReconcileResponse(
        repaired_seats=repaired,
        orphaned_seats=recovery.find_orphaned_seats(db),
    )


@router.get("/stats", response_model=InventoryStats)
def inventory_stats(
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_current_admin_id),
):
    """
    Seat counts by state across all shows, plus the numbers the sweeps act on.
    Useful for monitoring before/after a cleanup.
    """
    return InventoryStats(
        by_status=seat_map.seat_counts(db),
        stale_holds=recovery.count_stale_holds(db),
        orphaned_booked_seats=len(recovery.find_orphaned_seats(db)),
        total_bookings=db.query(func.count(Booking.id)).scalar(),
        open_shows=db.query(func.count(Show.id)).filter(Show.status == ShowStatus.OPEN).scalar(),
    )
