from sqlalchemy import (
    Column, String, Integer, Boolean, Text, JSON, ForeignKey, Uuid,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import enum
import uuid

from booking_engine.models.base import Base, UTCDateTime, utcnow


class SchedulingType(str, enum.Enum):
    INDIVIDUAL = "individual"
    ROUND_ROBIN = "round_robin"
    COLLECTIVE = "collective"


class LocationType(str, enum.Enum):
    GOOGLE_MEET = "google_meet"
    ZOOM = "zoom"
    PHONE = "phone"
    IN_PERSON = "in_person"
    CUSTOM = "custom"
    NONE = "none"


class EventType(Base):
    """A bookable offering owned by a host"""
    __tablename__ = "event_types"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    duration = Column(Integer, nullable=False)  # minutes
    scheduling_type = Column(String(20), nullable=False, default=SchedulingType.INDIVIDUAL.value)
    location_type = Column(String(20), nullable=False, default=LocationType.NONE.value)
    location_value = Column(String(500), nullable=True)

    # Null falls back to the host's default schedule
    availability_schedule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("availability_schedules.id", ondelete="SET NULL"),
        nullable=True,
    )

    min_notice = Column(Integer, nullable=False, default=0)  # minutes
    max_future_days = Column(Integer, nullable=False, default=60)
    slot_interval = Column(Integer, nullable=True)  # minutes, null = duration
    buffer_before = Column(Integer, nullable=False, default=0)
    buffer_after = Column(Integer, nullable=False, default=0)

    requires_confirmation = Column(Boolean, nullable=False, default=False)
    custom_questions = Column(JSON, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    is_hidden = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    host = relationship("Host", back_populates="event_types")
    availability_schedule = relationship("AvailabilitySchedule")

    __table_args__ = (
        UniqueConstraint("host_id", "slug", name="uq_event_types_host_slug"),
        CheckConstraint("duration > 0", name="ck_event_types_duration"),
        CheckConstraint("min_notice >= 0", name="ck_event_types_min_notice"),
        CheckConstraint("max_future_days >= 0", name="ck_event_types_max_future_days"),
        CheckConstraint("slot_interval IS NULL OR slot_interval > 0", name="ck_event_types_slot_interval"),
        CheckConstraint("buffer_before >= 0 AND buffer_after >= 0", name="ck_event_types_buffers"),
    )

    @property
    def effective_slot_interval(self) -> int:
        return self.slot_interval or self.duration

    def __repr__(self):
        return f"<EventType {self.slug} ({self.duration}m)>"
