from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from boxoffice.core.exceptions import InvalidLayout, UnknownSeat
from boxoffice.models.show import SeatStatus
from boxoffice.services import reservations, seat_map


def test_generate_labels_rows_by_columns():
    seats = seat_map.generate(2, 3, Decimal("100"))

    assert [s.label for s in seats] == ["A1", "A2", "A3", "B1", "B2", "B3"]
    assert all(s.status == SeatStatus.AVAILABLE for s in seats)
    assert all(s.holder_id is None for s in seats)
    assert {s.price for s in seats} == {Decimal("100")}


def test_generate_applies_row_price_overrides():
    seats = seat_map.generate(3, 2, Decimal("100"), {"c": Decimal("250")})

    prices = {s.label: s.price for s in seats}
    assert prices["A1"] == Decimal("100")
    assert prices["C1"] == prices["C2"] == Decimal("250")


@pytest.mark.parametrize("rows, cols", [(0, 3), (2, 0), (-1, 4), (27, 1)])
def test_generate_rejects_bad_layouts(rows, cols):
    with pytest.raises(InvalidLayout):
        seat_map.generate(rows, cols, Decimal("100"))


def test_generate_rejects_override_outside_layout():
    with pytest.raises(InvalidLayout, match="D"):
        seat_map.generate(2, 2, Decimal("100"), {"D": Decimal("5")})


def test_generate_full_alphabet():
    seats = seat_map.generate(26, 1, Decimal("1"))
    assert seats[-1].label == "Z1"


def test_labels_exist(db, show):
    assert seat_map.labels_exist(db, show.id, ["A1", "B3"]) is True

    with pytest.raises(UnknownSeat) as excinfo:
        seat_map.labels_exist(db, show.id, ["A1", "C1", "A9"])
    assert excinfo.value.labels == ["C1", "A9"]


def test_snapshot_reports_states_without_holder(db, show, user_id, other_user_id):
    reservations.reserve(db, show.id, user_id, ["A1"])

    snapshot = seat_map.snapshot(db, show.id, viewer_id=other_user_id)

    assert [s.label for s in snapshot] == ["A1", "A2", "A3", "B1", "B2", "B3"]
    states = {s.label: s.state for s in snapshot}
    assert states["A1"] == SeatStatus.HELD
    assert states["A2"] == SeatStatus.AVAILABLE
    assert not any(s.mine for s in snapshot)
    assert "holder_id" not in snapshot[0].model_dump()


def test_snapshot_marks_viewers_own_seats(db, show, user_id):
    reservations.reserve(db, show.id, user_id, ["B2"])

    mine = [s.label for s in seat_map.snapshot(db, show.id, viewer_id=user_id) if s.mine]
    assert mine == ["B2"]


def test_snapshot_shows_lapsed_hold_as_available(db, show, user_id):
    reservations.reserve(db, show.id, user_id, ["A1"])
    later = datetime.now(timezone.utc) + timedelta(hours=1)

    states = {s.label: s.state for s in seat_map.snapshot(db, show.id, now=later)}
    assert states["A1"] == SeatStatus.AVAILABLE


def test_seat_counts(db, show, user_id, other_user_id):
    reservations.book_seats(db, show.id, user_id, ["A1", "A2"])
    reservations.reserve(db, show.id, other_user_id, ["B1"])

    counts = seat_map.seat_counts(db, show.id)
    assert (counts.available, counts.held, counts.booked) == (3, 1, 2)

    assert seat_map.available_counts(db, [show.id]) == {show.id: 3}
