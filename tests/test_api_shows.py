import uuid
from datetime import datetime, timedelta, timezone

import pytest

API = "/api/v1"


@pytest.fixture
def show_payload():
    start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=2)
    return {
        "movie_id": str(uuid.uuid4()),
        "theatre_id": str(uuid.uuid4()),
        "screen_name": "Audi 1",
        "start_time": start.isoformat(),
        "movie_duration_minutes": 120,
        "price": "150.00",
        "layout": {"rows": 2, "cols": 3, "row_prices": {"B": "200"}},
    }


def _shift(payload, minutes, **changes):
    start = datetime.fromisoformat(payload["start_time"]) + timedelta(minutes=minutes)
    return {**payload, "start_time": start.isoformat(), **changes}


def test_admin_creates_show_with_seat_map(client, admin_headers, show_payload):
    resp = client.post(f"{API}/admin/shows/", json=show_payload, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    show = resp.json()
    assert show["status"] == "open"
    assert (show["rows"], show["cols"]) == (2, 3)

    start = datetime.fromisoformat(show["start_time"])
    end = datetime.fromisoformat(show["end_time"])
    assert end - start == timedelta(minutes=135)

    seat_map = client.get(f"{API}/shows/{show['id']}/seat-map").json()
    prices = {s["label"]: float(s["price"]) for s in seat_map["seats"]}
    assert list(prices) == ["A1", "A2", "A3", "B1", "B2", "B3"]
    assert prices["A1"] == 150.0
    assert prices["B3"] == 200.0
    assert all(s["state"] == "available" for s in seat_map["seats"])


def test_create_show_requires_admin(client, user_headers, show_payload):
    assert client.post(f"{API}/admin/shows/", json=show_payload).status_code == 401
    assert client.post(f"{API}/admin/shows/", json=show_payload, headers=user_headers).status_code == 403


def test_create_show_rejects_invalid_layout(client, admin_headers, show_payload):
    show_payload["layout"] = {"rows": 0, "cols": 3}
    resp = client.post(f"{API}/admin/shows/", json=show_payload, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "InvalidLayout"


def test_create_show_rejects_screen_overlap(client, admin_headers, show_payload):
    assert client.post(f"{API}/admin/shows/", json=show_payload, headers=admin_headers).status_code == 201

    overlapping = _shift(show_payload, 60)
    assert client.post(f"{API}/admin/shows/", json=overlapping, headers=admin_headers).status_code == 409

    other_screen = _shift(show_payload, 60, screen_name="Audi 2")
    assert client.post(f"{API}/admin/shows/", json=other_screen, headers=admin_headers).status_code == 201

    after_cleanup = _shift(show_payload, 135)
    assert client.post(f"{API}/admin/shows/", json=after_cleanup, headers=admin_headers).status_code == 201


def test_list_shows_filters_and_counts(client, admin_headers, show_payload, auth, user_id):
    created = client.post(f"{API}/admin/shows/", json=show_payload, headers=admin_headers).json()
    client.post(
        f"{API}/shows/{created['id']}/holds",
        json={"seat_labels": ["A1", "A2"]},
        headers=auth(user_id),
    )

    shows = client.get(f"{API}/shows/", params={"movie_id": show_payload["movie_id"]}).json()
    assert [s["id"] for s in shows] == [created["id"]]
    assert shows[0]["available_seats"] == 4

    assert client.get(f"{API}/shows/", params={"movie_id": str(uuid.uuid4())}).json() == []

    day = datetime.fromisoformat(show_payload["start_time"]).date()
    assert len(client.get(f"{API}/shows/", params={"date": day.isoformat()}).json()) == 1
    next_day = (day + timedelta(days=1)).isoformat()
    assert client.get(f"{API}/shows/", params={"date": next_day}).json() == []


def test_get_show(client, show):
    resp = client.get(f"{API}/shows/{show.id}")
    assert resp.status_code == 200
    assert resp.json()["screen_name"] == "Screen 1"

    assert client.get(f"{API}/shows/{uuid.uuid4()}").status_code == 404
    assert client.get(f"{API}/shows/{uuid.uuid4()}/seat-map").status_code == 404


def test_cancel_show_releases_holds(client, show, admin_headers, user_headers):
    client.post(f"{API}/shows/{show.id}/holds", json={"seat_labels": ["A1"]}, headers=user_headers)

    resp = client.patch(f"{API}/admin/shows/{show.id}/cancel", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"id": str(show.id), "status": "cancelled", "released_holds": 1}

    resp = client.post(f"{API}/shows/{show.id}/holds", json={"seat_labels": ["A2"]}, headers=user_headers)
    assert resp.status_code == 409
    assert resp.json()["kind"] == "ShowNotBookable"

    assert client.patch(f"{API}/admin/shows/{show.id}/cancel", headers=admin_headers).status_code == 409


def test_delete_show_only_without_bookings(client, make_show, admin_headers, user_headers):
    booked, empty = make_show(), make_show()
    client.post(f"{API}/bookings/", json={"show_id": str(booked.id), "seat_labels": ["A1"]}, headers=user_headers)

    assert client.delete(f"{API}/admin/shows/{booked.id}", headers=admin_headers).status_code == 409

    resp = client.delete(f"{API}/admin/shows/{empty.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert client.get(f"{API}/shows/{empty.id}").status_code == 404


def test_admin_lists_show_bookings(client, show, admin_headers, auth, user_id, other_user_id):
    client.post(f"{API}/bookings/", json={"show_id": str(show.id), "seat_labels": ["A1"]}, headers=auth(user_id))
    client.post(f"{API}/bookings/", json={"show_id": str(show.id), "seat_labels": ["B1"]}, headers=auth(other_user_id))

    resp = client.get(f"{API}/admin/shows/{show.id}/bookings", headers=admin_headers)
    assert resp.status_code == 200
    assert sorted(b["seats"][0] for b in resp.json()) == ["A1", "B1"]


def test_maintenance_endpoints(client, show, admin_headers, user_headers):
    client.post(f"{API}/bookings/", json={"show_id": str(show.id), "seat_labels": ["A1"]}, headers=user_headers)
    client.post(f"{API}/shows/{show.id}/holds", json={"seat_labels": ["B1"]}, headers=user_headers)

    stats = client.get(f"{API}/admin/maintenance/stats", headers=admin_headers).json()
    assert stats["by_status"] == {"available": 4, "held": 1, "booked": 1}
    assert stats["stale_holds"] == 0
    assert stats["orphaned_booked_seats"] == 0
    assert stats["total_bookings"] == 1
    assert stats["open_shows"] == 1

    assert client.post(f"{API}/admin/maintenance/expire-holds", headers=admin_headers).json() == {
        "released_seats": 0
    }
    assert client.post(f"{API}/admin/maintenance/reconcile", headers=admin_headers).json() == {
        "repaired_seats": 0,
        "orphaned_seats": [],
    }
    assert client.get(f"{API}/admin/maintenance/stats", headers=user_headers).status_code == 403
