import os

# Settings and the module-level engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["NOTIFICATION_DISPATCHER_URL"] = ""

from datetime import time  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from booking_engine.config.database import build_engine, get_db, get_session_factory  # noqa: E402
from booking_engine.config.settings import get_settings  # noqa: E402
from booking_engine.models import (  # noqa: E402
    AvailabilityRule,
    AvailabilitySchedule,
    Base,
    EventType,
    Host,
    RuleType,
)
from booking_engine.services.notification.notification_service import NotificationService  # noqa: E402


WEEKDAYS = (1, 2, 3, 4, 5)


class NotificationRecorder:
    """Stands in for the Celery hand-off"""

    def __init__(self):
        self.sent = []

    def __call__(self, notification_type, booking_id, correlation_id=None):
        self.sent.append((notification_type, booking_id))
        return True

    def types_for(self, booking_id):
        return [kind for kind, sent_id in self.sent if sent_id == booking_id]


@pytest.fixture(autouse=True)
def notifications(monkeypatch):
    recorder = NotificationRecorder()
    monkeypatch.setattr(NotificationService, "dispatch", staticmethod(recorder))
    return recorder


@pytest.fixture
def engine(tmp_path):
    # A file database so several connections (threads, the test client) share it
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_host(db):
    numbers = count(1)

    def _make(**kwargs):
        n = next(numbers)
        kwargs.setdefault("email", f"host{n}@example.com")
        kwargs.setdefault("full_name", f"Host {n}")
        host = Host(**kwargs)
        db.add(host)
        db.commit()
        return host

    return _make


@pytest.fixture
def make_schedule(db):
    """
    Schedule with weekly rules, Monday-Friday 09:00-17:00 unless ``rules`` is
    given as a list of AvailabilityRule keyword dicts.
    """

    def _make(host, timezone="UTC", rules=None, is_default=True, name="Working hours"):
        if rules is None:
            rules = [
                {
                    "rule_type": RuleType.WEEKLY.value,
                    "day_of_week": dow,
                    "start_time": time(9, 0),
                    "end_time": time(17, 0),
                }
                for dow in WEEKDAYS
            ]
        schedule = AvailabilitySchedule(
            host_id=host.id,
            name=name,
            timezone=timezone,
            is_default=is_default,
            rules=[AvailabilityRule(**rule) for rule in rules],
        )
        db.add(schedule)
        db.commit()
        return schedule

    return _make


@pytest.fixture
def make_event_type(db):
    numbers = count(1)

    def _make(host, **kwargs):
        n = next(numbers)
        kwargs.setdefault("title", f"Meeting {n}")
        kwargs.setdefault("slug", f"meeting-{n}")
        kwargs.setdefault("duration", 30)
        kwargs.setdefault("min_notice", 0)
        kwargs.setdefault("max_future_days", 60)
        event_type = EventType(host_id=host.id, **kwargs)
        db.add(event_type)
        db.commit()
        return event_type

    return _make


@pytest.fixture
def client(session_factory):
    from booking_engine.main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(host, token_type="access"):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(host.id), "type": token_type},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
