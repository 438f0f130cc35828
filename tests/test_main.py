import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from boxoffice import main
from boxoffice.models.show import SeatStatus
from boxoffice.services import reservations


def test_read_root(client):
    assert client.get("/").json() == {"Hello": "Box Office"}


def test_hold_sweep_loop_releases_expired_holds(db, session_factory, show, user_id, seat_states, monkeypatch):
    past = datetime.now(timezone.utc) - timedelta(minutes=30)
    reservations.reserve(db, show.id, user_id, ["A1"], now=past)
    assert seat_states(show.id)["A1"][0] == SeatStatus.HELD

    async def stop_after_first_pass(seconds):
        raise asyncio.CancelledError

    monkeypatch.setattr(main, "SessionLocal", session_factory)
    monkeypatch.setattr(main.asyncio, "sleep", stop_after_first_pass)

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(main._hold_sweep_loop())

    assert seat_states(show.id)["A1"] == (SeatStatus.AVAILABLE, None)
