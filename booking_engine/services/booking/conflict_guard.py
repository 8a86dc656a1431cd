# ============================================================================
# booking_engine/services/booking/conflict_guard.py
# The only code path that inserts bookings
# ============================================================================
"""
Transactional booking creation.

Creation runs as one unit per host: the host row is locked (SELECT ... FOR
UPDATE; SQLite serializes through BEGIN IMMEDIATE), the requested start is
checked against the slot grid recomputed at commit time, overlapping active
bookings are re-read with a range query, and only then is the booking
inserted. In PostgreSQL an exclusion constraint on the blocked range backs
this up; its violation surfaces as ConflictError like any other overlap.

A conflicting request is never moved to another slot.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from booking_engine.core.tokens import fingerprint, generate_booking_uid, is_well_formed
from booking_engine.models.base import utcnow
from booking_engine.models.booking import (
    ACTIVE_STATUSES,
    AttendeeRole,
    Booking,
    BookingAttendee,
    BookingStatus,
    CancelledBy,
)
from booking_engine.models.event_type import EventType, LocationType
from booking_engine.models.host import Host
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.slot_generator import contains_slot
from booking_engine.services.booking.transactions import booking_transaction
from booking_engine.services.notification.notification_service import (
    BOOKING_CANCELLATION,
    BOOKING_CONFIRMATION,
    NotificationService,
)
from booking_engine.utils.time_intervals import expand, load_timezone, local_date, minutes, to_utc

logger = logging.getLogger(__name__)


@dataclass
class InviteeDetails:
    name: str
    email: str
    timezone: str
    notes: Optional[str] = None
    responses: Dict[str, Any] = field(default_factory=dict)


class ConflictGuard:
    """Creates and reschedules bookings without ever letting two overlap"""

    @staticmethod
    def _validate_invitee(invitee: InviteeDetails) -> None:
        if not invitee.name or not invitee.name.strip():
            raise ValidationError("Invitee name is required", code="invalid_invitee")
        if not invitee.email or "@" not in invitee.email:
            raise ValidationError("A valid invitee email is required", code="invalid_invitee")
        load_timezone(invitee.timezone, error_cls=ValidationError)

    @staticmethod
    def _validate_interval(event_type: EventType, start: datetime, end: datetime, now: datetime) -> None:
        if end - start != minutes(event_type.duration):
            raise ValidationError(
                f"Booking must last exactly {event_type.duration} minutes",
                code="invalid_duration"
            )
        if start <= now:
            raise ValidationError("Booking must start in the future", code="start_in_past")

    @staticmethod
    def _lock_host(db: Session, host_id: UUID) -> Host:
        host = db.query(Host).filter(Host.id == host_id).with_for_update().first()
        if not host:
            raise NotFoundError("Host not found", code="host_not_found")
        return host

    @staticmethod
    def _assert_offered(db: Session, event_type: EventType, start: datetime, end: datetime, now: datetime) -> None:
        """The start must sit on the slot grid recomputed right now."""
        schedule = AvailabilityService.load_schedule(db, event_type)
        schedule_tz = load_timezone(schedule.timezone)
        grid = AvailabilityService.compute_slots(
            db, event_type, schedule, local_date(start, schedule_tz), timezone.utc, now,
            include_bookings=False
        )
        if not contains_slot(grid, start, end):
            raise ValidationError("Requested time is not an offered slot", code="slot_not_offered")

    @staticmethod
    def _assert_no_overlap(
            db: Session,
            event_type: EventType,
            start: datetime,
            end: datetime,
            ignore_booking_id: Optional[UUID] = None
    ) -> None:
        blocked = expand(start, end, event_type.buffer_before, event_type.buffer_after)
        query = db.query(Booking.id).filter(
            Booking.host_id == event_type.host_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.blocked_start < blocked.end,
            Booking.blocked_end > blocked.start
        )
        if ignore_booking_id is not None:
            query = query.filter(Booking.id != ignore_booking_id)

        if query.first() is not None:
            raise ConflictError("This time slot is no longer available")

    @staticmethod
    def _new_booking(
            event_type: EventType,
            host: Host,
            invitee: InviteeDetails,
            start: datetime,
            end: datetime,
            source: str,
            rescheduled_from: Optional[UUID] = None
    ) -> Booking:
        blocked = expand(start, end, event_type.buffer_before, event_type.buffer_after)
        status = BookingStatus.PENDING if event_type.requires_confirmation else BookingStatus.CONFIRMED

        booking = Booking(
            uid=generate_booking_uid(),
            event_type_id=event_type.id,
            host_id=event_type.host_id,
            rescheduled_from=rescheduled_from,
            invitee_name=invitee.name.strip(),
            invitee_email=invitee.email,
            invitee_timezone=invitee.timezone,
            invitee_notes=invitee.notes,
            responses=invitee.responses or {},
            start_time=start,
            end_time=end,
            blocked_start=blocked.start,
            blocked_end=blocked.end,
            location=ConflictGuard._location_for(event_type),
            status=status.value,
            source=source,
        )
        booking.attendees = [
            BookingAttendee(
                host_id=host.id,
                email=host.email,
                name=host.display_name,
                role=AttendeeRole.HOST.value,
            ),
            BookingAttendee(
                email=invitee.email,
                name=invitee.name.strip(),
                role=AttendeeRole.ATTENDEE.value,
            ),
        ]
        return booking

    @staticmethod
    def _location_for(event_type: EventType) -> Optional[str]:
        if event_type.location_value:
            return event_type.location_value
        if event_type.location_type and event_type.location_type != LocationType.NONE.value:
            return event_type.location_type
        return None

    @staticmethod
    def create(
            db: Session,
            event_type_id: UUID,
            invitee: InviteeDetails,
            start: datetime,
            end: datetime,
            now: Optional[datetime] = None,
            source: str = "booking_page",
            correlation_id: Optional[str] = None
    ) -> Booking:
        """
        Commit a booking for exactly [start, end) or fail.

        Raises:
            ValidationError: malformed input, wrong duration, past or unoffered start
            NotFoundError: unknown event type
            ConflictError: an active booking overlaps; re-query slots and choose again
            TransientStoreError: store timeout or lost connection; safe to retry
        """
        start, end = to_utc(start), to_utc(end)
        now = to_utc(now) if now else datetime.now(timezone.utc)
        ConflictGuard._validate_invitee(invitee)

        with booking_transaction(db, "creating booking"):
            event_type = AvailabilityService.load_bookable_event_type(db, event_type_id)
            ConflictGuard._validate_interval(event_type, start, end, now)

            host = ConflictGuard._lock_host(db, event_type.host_id)
            ConflictGuard._assert_offered(db, event_type, start, end, now)
            ConflictGuard._assert_no_overlap(db, event_type, start, end)

            booking = ConflictGuard._new_booking(event_type, host, invitee, start, end, source)
            db.add(booking)
            db.commit()

        logger.info(
            f"Booking {booking.id} created for host {booking.host_id} "
            f"({booking.status}, uid {fingerprint(booking.uid)})"
        )
        NotificationService.dispatch(BOOKING_CONFIRMATION, booking.id, correlation_id)
        return booking

    @staticmethod
    def reschedule_by_token(
            db: Session,
            uid: str,
            new_start: datetime,
            new_end: datetime,
            reason: Optional[str] = None,
            now: Optional[datetime] = None,
            correlation_id: Optional[str] = None
    ) -> Tuple[Booking, Booking]:
        """
        Move a booking to a new slot. Returns (new_booking, old_booking).

        The old booking becomes ``rescheduled`` and the new one points back at
        it through ``rescheduled_from``. The old interval does not count as a
        conflict for the new one, so shifting by less than the duration works.
        """
        if not is_well_formed(uid):
            raise NotFoundError("Booking not found")

        new_start, new_end = to_utc(new_start), to_utc(new_end)
        now = to_utc(now) if now else datetime.now(timezone.utc)

        with booking_transaction(db, "rescheduling"):
            old = db.query(Booking).filter(Booking.uid == uid).first()
            if not old:
                raise NotFoundError("Booking not found")
            if old.status not in ACTIVE_STATUSES:
                raise InvalidStateError(f"Booking is already {old.status}", code="not_active")

            event_type = AvailabilityService.load_bookable_event_type(db, old.event_type_id)
            ConflictGuard._validate_interval(event_type, new_start, new_end, now)

            host = ConflictGuard._lock_host(db, event_type.host_id)
            ConflictGuard._assert_offered(db, event_type, new_start, new_end, now)
            ConflictGuard._assert_no_overlap(db, event_type, new_start, new_end, ignore_booking_id=old.id)

            # Release the old interval before inserting the new one
            released = db.execute(
                update(Booking)
                .where(Booking.id == old.id, Booking.status.in_(ACTIVE_STATUSES))
                .values(
                    status=BookingStatus.RESCHEDULED.value,
                    cancelled_by=CancelledBy.INVITEE.value,
                    cancellation_reason=reason,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if released.rowcount != 1:
                raise InvalidStateError("Booking changed while rescheduling", code="not_active")

            invitee = InviteeDetails(
                name=old.invitee_name,
                email=old.invitee_email,
                timezone=old.invitee_timezone,
                notes=old.invitee_notes,
                responses=dict(old.responses or {}),
            )
            new = ConflictGuard._new_booking(
                event_type, host, invitee, new_start, new_end, old.source, rescheduled_from=old.id
            )
            db.add(new)
            db.commit()

        db.refresh(old)

        logger.info(f"Booking {old.id} rescheduled to {new.id} (uid {fingerprint(uid)})")
        NotificationService.dispatch(BOOKING_CANCELLATION, old.id, correlation_id)
        NotificationService.dispatch(BOOKING_CONFIRMATION, new.id, correlation_id)
        return new, old
