# ===== booking_engine/services/availability/availability_service.py =====
from typing import Callable, List, Dict, Optional
from datetime import date, datetime, timedelta, timezone
from uuid import UUID
import asyncio

from sqlalchemy.orm import Session

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import (
    ConfigurationError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from booking_engine.models.availability import AvailabilitySchedule
from booking_engine.models.booking import ACTIVE_STATUSES, Booking
from booking_engine.models.event_type import EventType, SchedulingType
from booking_engine.services.availability.availability_resolver import resolve, snapshot_schedule
from booking_engine.services.availability.slot_generator import (
    SlotSettings,
    TimeSlot,
    busy_from_bookings,
    generate,
)
from booking_engine.utils.time_intervals import day_bounds, load_timezone, minutes
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Computes bookable slots from schedules, event types and bookings"""

    @staticmethod
    def load_bookable_event_type(db: Session, event_type_id: UUID) -> EventType:
        event_type = db.query(EventType).filter(EventType.id == event_type_id).first()

        if not event_type:
            raise NotFoundError("Event type not found", code="event_type_not_found")
        if not event_type.is_active:
            raise ValidationError("Event type is not active", code="event_type_inactive")
        if event_type.scheduling_type != SchedulingType.INDIVIDUAL.value:
            raise ValidationError(
                f"Scheduling type '{event_type.scheduling_type}' cannot be booked here",
                code="unsupported_scheduling_type"
            )

        return event_type

    @staticmethod
    def load_schedule(db: Session, event_type: EventType) -> AvailabilitySchedule:
        """Explicit schedule of the event type, else the host's default."""
        if event_type.availability_schedule_id:
            schedule = db.query(AvailabilitySchedule).filter(
                AvailabilitySchedule.id == event_type.availability_schedule_id,
                AvailabilitySchedule.host_id == event_type.host_id
            ).first()
        else:
            schedule = db.query(AvailabilitySchedule).filter(
                AvailabilitySchedule.host_id == event_type.host_id,
                AvailabilitySchedule.is_default.is_(True)
            ).first()

        if not schedule:
            raise ConfigurationError(
                f"No availability schedule for event type {event_type.id}",
                code="schedule_missing"
            )

        return schedule

    @staticmethod
    def load_busy_bookings(
            db: Session,
            host_id: UUID,
            window_start: datetime,
            window_end: datetime
    ) -> List[Booking]:
        """Active bookings of the host whose blocked range touches the window."""
        return db.query(Booking).filter(
            Booking.host_id == host_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.blocked_start < window_end,
            Booking.blocked_end > window_start
        ).order_by(Booking.blocked_start.asc()).all()

    @staticmethod
    def compute_slots(
            db: Session,
            event_type: EventType,
            schedule: AvailabilitySchedule,
            day: date,
            viewer_tz,
            now: datetime,
            include_bookings: bool = True
    ) -> List[TimeSlot]:
        """
        Resolver + generator for one schedule-local date.

        With include_bookings=False the result is the offered grid alone,
        which the booking guard uses to tell a stale or invented start from
        a taken one.
        """
        snapshot = snapshot_schedule(schedule)
        schedule_tz = snapshot.tz
        settings = SlotSettings.from_event_type(event_type)

        resolved = resolve(snapshot, day)
        if not resolved:
            return []

        busy = []
        if include_bookings:
            bounds = day_bounds(day, schedule_tz)
            bookings = AvailabilityService.load_busy_bookings(
                db,
                event_type.host_id,
                bounds.start - minutes(settings.buffer_before),
                bounds.end + minutes(settings.buffer_after)
            )
            busy = busy_from_bookings(bookings)

        return generate(resolved, day, schedule_tz, settings, busy, now, viewer_tz)

    @staticmethod
    def get_available_slots(
            db: Session,
            event_type_id: UUID,
            day: date,
            viewer_timezone: str,
            now: Optional[datetime] = None
    ) -> List[TimeSlot]:
        """Bookable slots for one date (interpreted in the schedule's timezone)."""
        viewer_tz = load_timezone(viewer_timezone, error_cls=ValidationError)
        now = now or datetime.now(timezone.utc)

        event_type = AvailabilityService.load_bookable_event_type(db, event_type_id)
        schedule = AvailabilityService.load_schedule(db, event_type)

        slots = AvailabilityService.compute_slots(db, event_type, schedule, day, viewer_tz, now)
        logger.debug(f"{len(slots)} slots for event type {event_type_id} on {day.isoformat()}")
        return slots

    @staticmethod
    def get_available_slots_range(
            db: Session,
            event_type_id: UUID,
            start_date: date,
            end_date: date,
            viewer_timezone: str,
            now: Optional[datetime] = None
    ) -> List[Dict]:
        """Per-date slot groups between two dates (inclusive); empty dates omitted."""
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", code="invalid_range")

        max_days = get_settings().SLOT_RANGE_MAX_DAYS
        if (end_date - start_date).days + 1 > max_days:
            raise ValidationError(f"Range is limited to {max_days} days", code="range_too_large")

        viewer_tz = load_timezone(viewer_timezone, error_cls=ValidationError)
        now = now or datetime.now(timezone.utc)

        event_type = AvailabilityService.load_bookable_event_type(db, event_type_id)
        schedule = AvailabilityService.load_schedule(db, event_type)

        groups = []
        current = start_date
        while current <= end_date:
            slots = AvailabilityService.compute_slots(db, event_type, schedule, current, viewer_tz, now)
            if slots:
                groups.append({
                    "date": current.isoformat(),
                    "slots": [slot.to_dict() for slot in slots]
                })
            current += timedelta(days=1)

        return groups

    @staticmethod
    async def run_with_timeout(
            func,
            *args,
            session_factory: Optional[Callable[[], Session]] = None,
            timeout: Optional[float] = None,
            **kwargs
    ):
        """
        Run a blocking slot query in the default executor with a deadline.

        With ``session_factory`` the worker thread opens its own session,
        passes it as ``func``'s first argument and closes it when ``func``
        returns. A query abandoned after the deadline then only ever touches
        that session, never the request's.
        """
        timeout = timeout if timeout is not None else get_settings().SLOT_QUERY_TIMEOUT_SECONDS
        loop = asyncio.get_running_loop()

        def _sync_call():
            if session_factory is None:
                return func(*args, **kwargs)
            db = session_factory()
            try:
                return func(db, *args, **kwargs)
            finally:
                db.close()

        try:
            return await asyncio.wait_for(loop.run_in_executor(None, _sync_call), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Slot query exceeded {timeout}s, giving up")
            raise TransientStoreError("Availability lookup timed out, please retry", code="slot_query_timeout")
