from sqlalchemy import (
    Column, String, Text, JSON, ForeignKey, Uuid, DDL, Index, CheckConstraint, event,
)
from sqlalchemy.orm import relationship
import enum
import uuid

from booking_engine.models.base import Base, UTCDateTime, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Bookings in these states hold their interval on the host's calendar
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

TERMINAL_STATUSES = (
    BookingStatus.CANCELLED.value,
    BookingStatus.RESCHEDULED.value,
    BookingStatus.COMPLETED.value,
    BookingStatus.NO_SHOW.value,
)


class CancelledBy(str, enum.Enum):
    HOST = "host"
    INVITEE = "invitee"


class AttendeeRole(str, enum.Enum):
    HOST = "host"
    ATTENDEE = "attendee"
    OPTIONAL = "optional"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Invitee capability token, see booking_engine.core.tokens
    uid = Column(String(64), unique=True, nullable=False)

    # References
    event_type_id = Column(Uuid(as_uuid=True), ForeignKey("event_types.id"), nullable=False, index=True)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id"), nullable=False)
    rescheduled_from = Column(Uuid(as_uuid=True), ForeignKey("bookings.id"), nullable=True)

    # Invitee info
    invitee_name = Column(String(255), nullable=False)
    invitee_email = Column(String(255), nullable=False)
    invitee_timezone = Column(String(64), nullable=False)
    invitee_notes = Column(Text, nullable=True)
    responses = Column(JSON, default=dict)

    # Meeting interval (UTC instants)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)

    # Interval widened by the event type's buffers at commit time
    blocked_start = Column(UTCDateTime, nullable=False)
    blocked_end = Column(UTCDateTime, nullable=False)

    location = Column(String(500), nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(10), nullable=True)
    source = Column(String(20), nullable=False, default="booking_page")

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    event_type = relationship("EventType", lazy="joined")
    host = relationship("Host", lazy="joined")
    attendees = relationship("BookingAttendee", back_populates="booking", cascade="all, delete-orphan", lazy="selectin")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_interval"),
        CheckConstraint("blocked_start <= start_time AND blocked_end >= end_time", name="ck_bookings_blocked"),
        Index("ix_bookings_host_blocked", "host_id", "blocked_start", "blocked_end"),
        Index("ix_bookings_host_status_start", "host_id", "status", "start_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self):
        return f"<Booking {self.id} {self.status} {self.start_time.isoformat() if self.start_time else None}>"


class BookingAttendee(Base):
    """Participant record per booking (host + invitee)"""
    __tablename__ = "booking_attendees"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid(as_uuid=True), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id"), nullable=True)

    email = Column(String(255), nullable=False, default="")
    name = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default=AttendeeRole.ATTENDEE.value)
    response_status = Column(String(20), nullable=False, default="accepted")

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    booking = relationship("Booking", back_populates="attendees")


# ============================================================================
# Storage-level overlap guard (PostgreSQL only)
# Two active bookings of one host may never hold overlapping blocked ranges.
# ============================================================================

event.listen(
    Booking.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_host_no_overlap "
        "EXCLUDE USING gist (host_id WITH =, tstzrange(blocked_start, blocked_end, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'confirmed'))"
    ).execute_if(dialect="postgresql"),
)

EXCLUSION_CONSTRAINT_NAME = "ex_bookings_host_no_overlap"
