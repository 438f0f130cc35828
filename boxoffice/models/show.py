import uuid
from sqlalchemy import Column, String, Integer, DECIMAL, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from boxoffice.db.session import Base


class ShowStatus:
    OPEN = "open"
    SOLD_OUT = "sold_out"
    CANCELLED = "cancelled"


class SeatStatus:
    AVAILABLE = "available"
    HELD = "held"
    BOOKED = "booked"


class Show(Base):
    __tablename__ = "shows"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Movies and theatres live in their own services; only the references are kept
    movie_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    theatre_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    screen_name = Column(String(100), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    rows = Column(Integer, nullable=False)
    cols = Column(Integer, nullable=False)
    status = Column(String(20), default=ShowStatus.OPEN, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    seats = relationship(
        "ShowSeat",
        back_populates="show",
        cascade="all, delete-orphan",
        order_by=lambda: (ShowSeat.row_label, ShowSeat.seat_number),
    )
    bookings = relationship("Booking", back_populates="show")


class ShowSeat(Base):
    __tablename__ = "show_seats"
    __table_args__ = (
        UniqueConstraint("show_id", "label", name="uq_show_seats_show_label"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    show_id = Column(UUID(as_uuid=True), ForeignKey("shows.id"), nullable=False, index=True)
    row_label = Column(String(2), nullable=False)
    seat_number = Column(Integer, nullable=False)
    label = Column(String(8), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    status = Column(String(20), default=SeatStatus.AVAILABLE, nullable=False, index=True) # available, held, booked
    holder_id = Column(UUID(as_uuid=True), nullable=True)
    hold_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    held_until = Column(DateTime(timezone=True), nullable=True, index=True)
    booking_id = Column(UUID(as_uuid=True), ForeignKey("bookings.id"), nullable=True)

    show = relationship("Show", back_populates="seats")
    booking = relationship("Booking")
