import asyncio
import threading
import time as time_module
from datetime import date, datetime, time, timezone
from uuid import uuid4

import pytest

from booking_engine.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from booking_engine.models import Host, RuleType, SchedulingType
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.booking.conflict_guard import ConflictGuard, InviteeDetails
from booking_engine.services.booking.lifecycle_service import LifecycleService

# Tuesday
NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2030, 1, 7)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def invitee():
    return InviteeDetails(name="Ada Invitee", email="ada@example.com", timezone="Europe/London")


@pytest.fixture
def host(make_host):
    return make_host()


@pytest.fixture
def event_type(host, make_schedule, make_event_type):
    make_schedule(host)
    return make_event_type(host)


def test_slots_from_the_default_schedule(db, event_type):
    slots = AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)

    assert len(slots) == 16
    assert slots[0].start == utc(2030, 1, 7, 9)


def test_explicit_schedule_wins_over_the_default(db, host, make_schedule, make_event_type):
    make_schedule(host)
    mornings = make_schedule(
        host,
        is_default=False,
        name="Mornings",
        rules=[{"rule_type": RuleType.WEEKLY.value, "day_of_week": 1, "start_time": time(8), "end_time": time(10)}],
    )
    event_type = make_event_type(host, availability_schedule_id=mornings.id)

    slots = AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)

    assert [s.start for s in slots] == [utc(2030, 1, 7, 8, h) for h in (0, 30)] + [utc(2030, 1, 7, 9, h) for h in (0, 30)]


def test_booked_slot_disappears_and_comes_back_after_cancellation(db, event_type):
    booking = ConflictGuard.create(
        db, event_type.id, invitee(), utc(2030, 1, 7, 10), utc(2030, 1, 7, 10, 30), now=NOW
    )

    slots = AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)
    assert utc(2030, 1, 7, 10) not in [s.start for s in slots]
    assert len(slots) == 15

    LifecycleService.cancel_by_token(db, booking.uid)

    slots = AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)
    assert len(slots) == 16


def test_bookings_of_other_event_types_block_the_host(db, host, event_type, make_event_type):
    other = make_event_type(host, duration=60, buffer_after=15)
    ConflictGuard.create(db, other.id, invitee(), utc(2030, 1, 7, 10), utc(2030, 1, 7, 11), now=NOW)

    slot_starts = [s.start for s in AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)]

    assert utc(2030, 1, 7, 10, 30) not in slot_starts
    # The other event type's buffer runs until 11:15
    assert utc(2030, 1, 7, 11) not in slot_starts
    assert utc(2030, 1, 7, 11, 30) in slot_starts


def test_missing_schedule_is_a_configuration_error(db, host, make_event_type):
    event_type = make_event_type(host)

    with pytest.raises(ConfigurationError) as exc_info:
        AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)
    assert exc_info.value.code == "schedule_missing"


def test_unknown_event_type(db):
    with pytest.raises(NotFoundError):
        AvailabilityService.get_available_slots(db, uuid4(), MONDAY, "UTC", now=NOW)


def test_inactive_and_non_individual_event_types_are_not_bookable(db, host, make_schedule, make_event_type):
    make_schedule(host)
    inactive = make_event_type(host, is_active=False)
    collective = make_event_type(host, scheduling_type=SchedulingType.COLLECTIVE.value)

    with pytest.raises(ValidationError) as exc_info:
        AvailabilityService.get_available_slots(db, inactive.id, MONDAY, "UTC", now=NOW)
    assert exc_info.value.code == "event_type_inactive"

    with pytest.raises(ValidationError) as exc_info:
        AvailabilityService.get_available_slots(db, collective.id, MONDAY, "UTC", now=NOW)
    assert exc_info.value.code == "unsupported_scheduling_type"


def test_invalid_viewer_timezone(db, event_type):
    with pytest.raises(ValidationError):
        AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "Nowhere/Special", now=NOW)


def test_invalid_schedule_timezone_fails_the_query(db, host, make_schedule, make_event_type):
    make_schedule(host, timezone="Nowhere/Special")
    event_type = make_event_type(host)

    with pytest.raises(ConfigurationError):
        AvailabilityService.get_available_slots(db, event_type.id, MONDAY, "UTC", now=NOW)


def test_range_groups_by_date_and_skips_empty_days(db, event_type):
    days = AvailabilityService.get_available_slots_range(
        db, event_type.id, date(2030, 1, 4), date(2030, 1, 7), "UTC", now=NOW
    )

    # Friday and Monday; the weekend has no rules
    assert [d["date"] for d in days] == ["2030-01-04", "2030-01-07"]
    assert len(days[1]["slots"]) == 16
    assert days[1]["slots"][0]["start"] == "2030-01-07T09:00:00+00:00"


def test_range_validation(db, event_type):
    with pytest.raises(ValidationError) as exc_info:
        AvailabilityService.get_available_slots_range(
            db, event_type.id, date(2030, 1, 7), date(2030, 1, 6), "UTC", now=NOW
        )
    assert exc_info.value.code == "invalid_range"

    with pytest.raises(ValidationError) as exc_info:
        AvailabilityService.get_available_slots_range(
            db, event_type.id, date(2030, 1, 1), date(2030, 6, 1), "UTC", now=NOW
        )
    assert exc_info.value.code == "range_too_large"


def test_slow_query_times_out_as_transient():
    with pytest.raises(TransientStoreError) as exc_info:
        asyncio.run(AvailabilityService.run_with_timeout(time_module.sleep, 0.5, timeout=0.01))

    assert exc_info.value.retryable
    assert exc_info.value.code == "slot_query_timeout"


def test_run_with_timeout_returns_the_result():
    assert asyncio.run(AvailabilityService.run_with_timeout(sum, [1, 2, 3], timeout=1)) == 6


@pytest.fixture
def tracked_sessions(session_factory):
    """Session factory that remembers its sessions and signals each close"""
    opened = []
    closed = threading.Event()

    def _factory():
        session = session_factory()
        real_close = session.close

        def _close():
            real_close()
            closed.set()

        session.close = _close
        opened.append(session)
        return session

    _factory.opened = opened
    _factory.closed = closed
    return _factory


def test_query_runs_on_a_session_of_its_own(db, host, tracked_sessions):
    count = asyncio.run(AvailabilityService.run_with_timeout(
        lambda session: session.query(Host).count(),
        session_factory=tracked_sessions,
        timeout=5,
    ))

    assert count == 1
    assert len(tracked_sessions.opened) == 1
    assert tracked_sessions.opened[0] is not db
    assert tracked_sessions.closed.is_set()


def test_abandoned_query_closes_its_own_session(host, tracked_sessions):
    seen = []

    def slow_query(session):
        time_module.sleep(0.3)
        seen.append(session.query(Host).count())

    with pytest.raises(TransientStoreError):
        asyncio.run(AvailabilityService.run_with_timeout(
            slow_query, session_factory=tracked_sessions, timeout=0.05
        ))

    assert tracked_sessions.closed.wait(5)
    assert seen == [1]
