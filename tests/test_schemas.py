import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from boxoffice import schemas


def test_show_create_accepts_layout_with_row_prices():
    show = schemas.ShowCreate(
        movie_id=uuid.uuid4(),
        theatre_id=uuid.uuid4(),
        screen_name="Audi 1",
        start_time=datetime(2030, 1, 1, 18, 30, tzinfo=timezone.utc),
        movie_duration_minutes=150,
        price="180.50",
        layout={"rows": 10, "cols": 12, "row_prices": {"J": "350"}},
    )
    assert show.price == Decimal("180.50")
    assert show.layout.row_prices == {"J": Decimal("350")}


@pytest.mark.parametrize("field, value", [("movie_duration_minutes", 0), ("price", "-1")])
def test_show_create_rejects_bad_values(field, value):
    data = {
        "movie_id": uuid.uuid4(),
        "theatre_id": uuid.uuid4(),
        "screen_name": "Audi 1",
        "start_time": datetime(2030, 1, 1, 18, 30, tzinfo=timezone.utc),
        "movie_duration_minutes": 120,
        "price": "100",
        "layout": {"rows": 1, "cols": 1},
        field: value,
    }
    with pytest.raises(ValidationError):
        schemas.ShowCreate(**data)


def test_booking_create_treats_empty_hold_id_as_missing():
    booking = schemas.BookingCreate(show_id=uuid.uuid4(), seat_labels=["A1"], hold_id="")
    assert booking.hold_id is None


def test_booking_create_requires_seats():
    with pytest.raises(ValidationError):
        schemas.BookingCreate(show_id=uuid.uuid4(), seat_labels=[])
    with pytest.raises(ValidationError):
        schemas.HoldRequest(seat_labels=[])


def test_seat_view_has_no_holder_field():
    seat = schemas.SeatView(label="A1", row="A", number=1, state="held", price=Decimal("100"))
    assert set(seat.model_dump()) == {"label", "row", "number", "state", "price", "mine"}
