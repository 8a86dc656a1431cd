"""
HTTP-level tests against the FastAPI app with a SQLite store.
"""
import inspect
import threading
import time as time_module
from datetime import datetime, time, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.routing import APIRoute

from booking_engine.config.database import get_session_factory
from booking_engine.config.settings import get_settings
from booking_engine.core import monitoring
from booking_engine.models import Host, RuleType
from booking_engine.services.availability.availability_service import AvailabilityService

# Far enough ahead that notice and horizon never interfere
TARGET_DAY = datetime.now(timezone.utc).date() + timedelta(days=7)


def at(hour, minute=0):
    return datetime.combine(TARGET_DAY, time(hour, minute), tzinfo=timezone.utc)


def booking_payload(event_type, start, minutes=30, **kwargs):
    payload = {
        "event_type_id": str(event_type.id),
        "invitee_name": "Ada Invitee",
        "invitee_email": "ada@example.com",
        "invitee_timezone": "Europe/London",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=minutes)).isoformat(),
    }
    payload.update(kwargs)
    return payload


@pytest.fixture
def host(make_host, make_schedule):
    host = make_host()
    make_schedule(host, rules=[
        {"rule_type": RuleType.WEEKLY.value, "day_of_week": dow, "start_time": time(9), "end_time": time(17)}
        for dow in range(7)
    ])
    return host


@pytest.fixture
def event_type(host, make_event_type):
    return make_event_type(host, title="Intro call")


def test_health(client):
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_correlation_id_is_echoed(client):
    response = client.get("/health/", headers={"X-Correlation-ID": "trace-123"})

    assert response.headers["X-Correlation-ID"] == "trace-123"


def test_slots_endpoint(client, event_type):
    response = client.get(
        f"/api/v1/public/event-types/{event_type.id}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "Asia/Tokyo"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["timezone"] == "Asia/Tokyo"
    assert len(data["slots"]) == 16
    assert datetime.fromisoformat(data["slots"][0]["start"]) == at(9)
    assert data["slots"][0]["start"].endswith("+09:00")


def test_slots_range_endpoint(client, event_type):
    response = client.get(
        f"/api/v1/public/event-types/{event_type.id}/slots/range",
        params={
            "start_date": TARGET_DAY.isoformat(),
            "end_date": (TARGET_DAY + timedelta(days=2)).isoformat(),
            "timezone": "UTC",
        },
    )

    assert response.status_code == 200
    assert [d["date"] for d in response.json()["days"]] == [
        (TARGET_DAY + timedelta(days=n)).isoformat() for n in range(3)
    ]


def test_slot_errors_map_to_status_codes(client, event_type):
    bad_zone = client.get(
        f"/api/v1/public/event-types/{event_type.id}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "Moon/Base"},
    )
    unknown = client.get(
        f"/api/v1/public/event-types/{uuid4()}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "UTC"},
    )

    assert bad_zone.status_code == 422
    assert bad_zone.json()["error"] == "invalid_timezone"
    assert unknown.status_code == 404
    assert unknown.json() == {"error": "event_type_not_found", "detail": "Event type not found", "retryable": False}


def test_book_then_conflict(client, event_type, notifications):
    created = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10)))

    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "confirmed"
    assert body["event_type"]["title"] == "Intro call"
    assert body["host_name"] == "Host 1"
    assert len(body["uid"]) >= 32
    assert len(notifications.sent) == 1

    duplicate = client.post(
        "/api/v1/public/bookings",
        json=booking_payload(event_type, at(10), invitee_email="bo@example.com", invitee_name="Bo"),
    )

    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "slot_unavailable"
    assert duplicate.json()["retryable"] is True

    slots = client.get(
        f"/api/v1/public/event-types/{event_type.id}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "UTC"},
    ).json()["slots"]
    assert len(slots) == 15


def test_booking_validation_errors(client, event_type):
    wrong_length = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10), minutes=45))
    off_grid = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10, 10)))
    bad_email = client.post(
        "/api/v1/public/bookings", json=booking_payload(event_type, at(10), invitee_email="nope")
    )

    assert wrong_length.status_code == 422
    assert wrong_length.json()["error"] == "invalid_duration"
    assert off_grid.status_code == 422
    assert off_grid.json()["error"] == "slot_not_offered"
    assert bad_email.status_code == 422


def test_invitee_lookup_cancel_and_reschedule(client, event_type, notifications):
    uid = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10))).json()["uid"]

    looked_up = client.get(f"/api/v1/public/bookings/{uid}")
    assert looked_up.status_code == 200
    assert looked_up.json()["uid"] == uid

    moved = client.post(
        f"/api/v1/public/bookings/{uid}/reschedule",
        json={"start_time": at(11).isoformat(), "end_time": at(11, 30).isoformat()},
    )
    assert moved.status_code == 201
    new_uid = moved.json()["uid"]
    assert new_uid != uid
    assert client.get(f"/api/v1/public/bookings/{uid}").json()["status"] == "rescheduled"

    first = client.post(f"/api/v1/public/bookings/{new_uid}/cancel", json={"reason": "Changed plans"})
    second = client.post(f"/api/v1/public/bookings/{new_uid}/cancel")

    assert first.json()["changed"] is True
    assert first.json()["booking"]["cancellation_reason"] == "Changed plans"
    assert second.status_code == 200
    assert second.json()["changed"] is False


def test_unknown_token_is_not_found(client):
    assert client.get("/api/v1/public/bookings/definitely-not-a-real-booking-token-123").status_code == 404
    assert client.post("/api/v1/public/bookings/short/cancel").status_code == 404


def test_dashboard_requires_a_valid_access_token(client, host, auth_headers):
    missing = client.get("/api/v1/dashboard/bookings")
    refresh = client.get("/api/v1/dashboard/bookings", headers=auth_headers(host, token_type="refresh"))
    garbage = client.get("/api/v1/dashboard/bookings", headers={"Authorization": "Bearer not-a-jwt"})
    valid = client.get("/api/v1/dashboard/bookings", headers=auth_headers(host))

    assert missing.status_code in (401, 403)
    assert refresh.status_code == 401
    assert garbage.status_code == 401
    assert valid.status_code == 200
    assert valid.json()["total"] == 0


def test_host_confirms_from_the_dashboard(client, host, make_host, make_event_type, auth_headers):
    event_type = make_event_type(host, requires_confirmation=True)
    stranger = make_host()
    created = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10)))
    assert created.json()["status"] == "pending"

    listing = client.get(
        "/api/v1/dashboard/bookings", params={"status": "pending", "when": "upcoming"}, headers=auth_headers(host)
    ).json()
    assert listing["total"] == 1
    booking_id = listing["bookings"][0]["id"]

    forbidden = client.post(f"/api/v1/dashboard/bookings/{booking_id}/confirm", headers=auth_headers(stranger))
    assert forbidden.status_code == 403

    confirmed = client.post(f"/api/v1/dashboard/bookings/{booking_id}/confirm", headers=auth_headers(host))
    assert confirmed.status_code == 200
    assert confirmed.json()["changed"] is True
    assert confirmed.json()["booking"]["status"] == "confirmed"
    assert {a["role"] for a in confirmed.json()["booking"]["attendees"]} == {"host", "attendee"}

    completed_too_early = client.post(
        f"/api/v1/dashboard/bookings/{booking_id}/no-show", headers=auth_headers(host)
    )
    assert completed_too_early.status_code == 409
    assert completed_too_early.json()["error"] == "booking_in_future"


def test_schedule_management(client, make_host, auth_headers):
    host = make_host()
    headers = auth_headers(host)

    created = client.post(
        "/api/v1/dashboard/schedules",
        json={
            "name": "Work",
            "timezone": "Europe/Berlin",
            "rules": [{"rule_type": "weekly", "day_of_week": 1, "start_time": "09:00", "end_time": "17:00"}],
        },
        headers=headers,
    )
    assert created.status_code == 201
    schedule = created.json()
    assert schedule["is_default"] is True
    assert schedule["rules"][0]["day_of_week"] == 1

    replaced = client.put(
        f"/api/v1/dashboard/schedules/{schedule['id']}/rules",
        json={"rules": [{"rule_type": "date_override", "specific_date": "2030-01-07", "is_available": False}]},
        headers=headers,
    )
    assert replaced.status_code == 200
    assert replaced.json()["rules"][0]["rule_type"] == "date_override"

    last = client.delete(f"/api/v1/dashboard/schedules/{schedule['id']}", headers=headers)
    assert last.status_code == 409
    assert last.json()["error"] == "last_schedule"

    invalid = client.post(
        "/api/v1/dashboard/schedules",
        json={"name": "Bad", "timezone": "UTC", "rules": [{"rule_type": "weekly", "start_time": "09:00", "end_time": "10:00"}]},
        headers=headers,
    )
    assert invalid.status_code == 422
    assert invalid.json()["error"] == "invalid_rule"


def test_event_type_management(client, host, auth_headers):
    headers = auth_headers(host)

    created = client.post(
        "/api/v1/dashboard/event-types",
        json={"title": "Strategy Session", "duration": 45, "buffer_after": 15, "location_type": "zoom"},
        headers=headers,
    )
    assert created.status_code == 201
    event_type = created.json()
    assert event_type["slug"] == "strategy-session"
    assert event_type["location_type"] == "zoom"

    patched = client.patch(
        f"/api/v1/dashboard/event-types/{event_type['id']}", json={"duration": 60}, headers=headers
    )
    assert patched.json()["duration"] == 60
    assert patched.json()["buffer_after"] == 15

    deactivated = client.delete(f"/api/v1/dashboard/event-types/{event_type['id']}", headers=headers)
    assert deactivated.json()["is_active"] is False

    slots = client.get(
        f"/api/v1/public/event-types/{event_type['id']}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "UTC"},
    )
    assert slots.status_code == 422
    assert slots.json()["error"] == "event_type_inactive"


def test_detailed_health_reports_the_overlap_guard(client, monkeypatch):
    async def fast_ping():
        return 1.5

    monkeypatch.setattr(monitoring, "ping_redis", fast_ping)

    data = client.get("/health/detailed").json()

    assert data["database"] == "healthy"
    assert data["overlap_guard"] == "serialized_writes"
    assert data["broker"] == "healthy"
    assert data["notifications"] == "disabled"
    assert data["overall"] == "healthy"


def test_detailed_health_degrades_without_the_broker(client, monkeypatch):
    async def broker_down():
        raise ConnectionError("connection refused")

    monkeypatch.setattr(monitoring, "ping_redis", broker_down)

    data = client.get("/health/detailed").json()

    assert data["broker"].startswith("unhealthy")
    assert data["overall"] == "degraded"


def test_slot_timeout_leaves_the_store_usable(client, event_type, session_factory, monkeypatch):
    opened = []
    closed = threading.Event()
    seen = []

    def tracking_factory():
        session = session_factory()
        real_close = session.close

        def _close():
            real_close()
            closed.set()

        session.close = _close
        opened.append(session)
        return session

    def slow_slots(db, *args, **kwargs):
        time_module.sleep(0.3)
        seen.append(db.query(Host).count())
        return []

    client.app.dependency_overrides[get_session_factory] = lambda: tracking_factory
    monkeypatch.setattr(AvailabilityService, "get_available_slots", staticmethod(slow_slots))
    monkeypatch.setattr(get_settings(), "SLOT_QUERY_TIMEOUT_SECONDS", 0.05)

    response = client.get(
        f"/api/v1/public/event-types/{event_type.id}/slots",
        params={"date": TARGET_DAY.isoformat(), "timezone": "UTC"},
    )

    assert response.status_code == 503
    assert response.json()["error"] == "slot_query_timeout"
    assert response.json()["retryable"] is True

    # The late query finishes on its own session, then releases it
    assert closed.wait(5)
    assert seen == [1]
    assert len(opened) == 1

    created = client.post("/api/v1/public/bookings", json=booking_payload(event_type, at(10)))
    assert created.status_code == 201


def test_blocking_routes_run_in_the_threadpool(client):
    blocking = {
        "create_booking", "lookup_booking", "cancel_booking", "reschedule_booking",
        "confirm_booking", "mark_no_show", "create_schedule", "create_event_type",
    }
    endpoints = [
        route.endpoint for route in client.app.routes
        if isinstance(route, APIRoute) and route.name in blocking
    ]
    slot_routes = [
        route.endpoint for route in client.app.routes
        if isinstance(route, APIRoute) and route.path.endswith(("/slots", "/slots/range"))
    ]

    assert {e.__name__ for e in endpoints} == blocking
    assert not any(inspect.iscoroutinefunction(e) for e in endpoints)
    assert slot_routes and all(inspect.iscoroutinefunction(e) for e in slot_routes)
