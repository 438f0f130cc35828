import os
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Settings are read at import time; keep the app off PostgreSQL in tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RECONCILE_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from boxoffice.core.security import create_access_token
from boxoffice.db.base import Base
from boxoffice.db.session import get_db
from boxoffice.main import app
from boxoffice.models.show import Show, ShowStatus
from boxoffice.services import seat_map


@pytest.fixture
def engine(tmp_path):
    # File-backed so that several sessions (and threads) see the same data
    engine = create_engine(
        f"sqlite:///{tmp_path / 'boxoffice.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_show(db):
    """Create an open show starting tomorrow with a generated seat map."""

    def _make_show(rows=2, cols=3, price=100, row_prices=None, starts_in=timedelta(days=1)):
        start = datetime.now(timezone.utc) + starts_in
        show = Show(
            movie_id=uuid.uuid4(),
            theatre_id=uuid.uuid4(),
            screen_name="Screen 1",
            start_time=start,
            end_time=start + timedelta(minutes=135),
            price=Decimal(price),
            rows=rows,
            cols=cols,
            status=ShowStatus.OPEN,
            seats=seat_map.generate(rows, cols, Decimal(price), row_prices),
        )
        db.add(show)
        db.commit()
        db.refresh(show)
        return show

    return _make_show


@pytest.fixture
def show(make_show):
    """2 rows x 3 cols (A1-A3, B1-B3) at price 100."""
    return make_show()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def other_user_id():
    return uuid.uuid4()


def auth_headers(user_id, role="user"):
    return {"Authorization": f"Bearer {create_access_token(str(user_id), role=role)}"}


@pytest.fixture
def user_headers(user_id):
    return auth_headers(user_id)


@pytest.fixture
def admin_headers():
    return auth_headers(uuid.uuid4(), role="admin")


@pytest.fixture
def auth():
    return auth_headers


@pytest.fixture
def seat_states(db):
    """Current {label: (status, holder_id)} for a show, read straight from the table."""
    from sqlalchemy import select
    from boxoffice.models.show import ShowSeat

    def _seat_states(show_id):
        db.expire_all()
        rows = db.execute(
            select(ShowSeat.label, ShowSeat.status, ShowSeat.holder_id).where(
                ShowSeat.show_id == show_id
            )
        ).all()
        return {label: (status, holder) for label, status, holder in rows}

    return _seat_states
