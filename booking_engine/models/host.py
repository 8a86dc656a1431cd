# ============================================================================
# FILE: booking_engine/models/host.py
# Host mirror of the identity service's user profile
# ============================================================================
from sqlalchemy import Column, String, Boolean, Uuid
from sqlalchemy.orm import relationship
import uuid

from booking_engine.models.base import Base, UTCDateTime, utcnow


class Host(Base):
    """
    A user whose calendar can be booked.

    Profiles are owned by the identity service; the engine keeps the fields it
    needs for scheduling and locks this row to serialize booking creation.
    """
    __tablename__ = "hosts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    business_name = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    schedules = relationship(
        "AvailabilitySchedule",
        back_populates="host",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    event_types = relationship("EventType", back_populates="host", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.full_name or self.business_name or self.email

    def __repr__(self):
        return f"<Host {self.email}>"
