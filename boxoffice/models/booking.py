import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DECIMAL, DateTime, ForeignKey, UniqueConstraint, event, func, inspect
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from boxoffice.db.session import Base


class PaymentStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


def _utcnow():
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    show_id = Column(UUID(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    movie_id = Column(UUID(as_uuid=True), nullable=False, index=True) # denormalized for "my bookings"
    total_price = Column(DECIMAL(10, 2), nullable=False)
    payment_status = Column(String(20), default=PaymentStatus.CONFIRMED, nullable=False, index=True)
    payment_method = Column(String(30), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)

    # Relationships
    show = relationship("Show", back_populates="bookings")
    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingSeat.position",
    )

    @property
    def seat_labels(self):
        return [bs.seat_label for bs in self.seats]


class BookingSeat(Base):
    __tablename__ = "booking_seats"
    __table_args__ = (
        # A seat of a show can appear in at most one booking
        UniqueConstraint("show_id", "seat_label", name="uq_booking_seats_show_label"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=False, index=True)
    show_id = Column(UUID(as_uuid=True), ForeignKey("shows.id"), nullable=False) # Disambiguation
    seat_label = Column(String(8), nullable=False)
    position = Column(Integer, nullable=False)

    booking = relationship("Booking", back_populates="seats")


IMMUTABLE_BOOKING_FIELDS = ("user_id", "show_id", "movie_id", "total_price", "booking_number")


@event.listens_for(Booking, "before_update")
def _guard_booking_immutable(mapper, connection, target):
    state = inspect(target)
    changed = [f for f in IMMUTABLE_BOOKING_FIELDS if state.attrs[f].history.has_changes()]
    if changed:
        raise ValueError(f"Booking fields are immutable once recorded: {', '.join(changed)}")


@event.listens_for(BookingSeat, "before_update")
def _guard_booking_seat_immutable(mapper, connection, target):
    raise ValueError("Booking seats are immutable once recorded")
