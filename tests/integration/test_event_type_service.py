from datetime import date, datetime, timezone

import pytest

from booking_engine.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.event_type.event_type_service import EventTypeService, generate_slug

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def host(make_host, make_schedule):
    host = make_host()
    make_schedule(host)
    return host


def test_generate_slug():
    assert generate_slug("Intro Call!") == "intro-call"
    assert generate_slug("  30 min   chat_with me ") == "30-min-chat-with-me"
    assert generate_slug("???") == "event"


def test_create_assigns_unique_slugs(db, host):
    first = EventTypeService.create_event_type(db, host.id, {"title": "Intro Call", "duration": 30})
    second = EventTypeService.create_event_type(db, host.id, {"title": "Intro call", "duration": 45})

    assert first.slug == "intro-call"
    assert second.slug == "intro-call-1"
    assert first.effective_slot_interval == 30
    assert first.is_active


def test_slugs_are_unique_per_host_only(db, host, make_host, make_schedule):
    other = make_host()
    make_schedule(other)

    mine = EventTypeService.create_event_type(db, host.id, {"title": "Consult", "duration": 30})
    theirs = EventTypeService.create_event_type(db, other.id, {"title": "Consult", "duration": 30})

    assert mine.slug == theirs.slug == "consult"


@pytest.mark.parametrize("field, value", [
    ("duration", 0),
    ("buffer_before", -5),
    ("min_notice", -1),
    ("slot_interval", 0),
])
def test_create_rejects_invalid_numbers(db, host, field, value):
    data = {"title": "Bad", "duration": 30, field: value}

    with pytest.raises(ValidationError):
        EventTypeService.create_event_type(db, host.id, data)


def test_schedule_must_belong_to_the_host(db, host, make_host, make_schedule):
    other = make_host()
    foreign = make_schedule(other)

    with pytest.raises(UnauthorizedError):
        EventTypeService.create_event_type(
            db, host.id, {"title": "Consult", "duration": 30, "availability_schedule_id": foreign.id}
        )


def test_partial_update(db, host):
    event_type = EventTypeService.create_event_type(
        db, host.id, {"title": "Consult", "duration": 30, "slot_interval": 15, "buffer_after": 10}
    )

    updated = EventTypeService.update_event_type(
        db, host.id, event_type.id, {"duration": 60, "slot_interval": None, "title": None}
    )

    assert updated.duration == 60
    assert updated.slot_interval is None
    assert updated.effective_slot_interval == 60
    assert updated.title == "Consult"
    assert updated.buffer_after == 10


def test_other_hosts_cannot_read_or_update(db, host, make_host):
    event_type = EventTypeService.create_event_type(db, host.id, {"title": "Consult", "duration": 30})
    stranger = make_host()

    with pytest.raises(UnauthorizedError):
        EventTypeService.get_event_type(db, stranger.id, event_type.id)
    with pytest.raises(UnauthorizedError):
        EventTypeService.update_event_type(db, stranger.id, event_type.id, {"duration": 15})
    with pytest.raises(NotFoundError):
        EventTypeService.get_event_type(db, host.id, stranger.id)


def test_deactivated_event_type_offers_no_slots(db, host):
    event_type = EventTypeService.create_event_type(db, host.id, {"title": "Consult", "duration": 30})

    EventTypeService.deactivate_event_type(db, host.id, event_type.id)

    assert [e.id for e in EventTypeService.list_event_types(db, host.id, include_inactive=False)] == []
    with pytest.raises(ValidationError) as exc_info:
        AvailabilityService.get_available_slots(db, event_type.id, date(2030, 1, 7), "UTC", now=NOW)
    assert exc_info.value.code == "event_type_inactive"
