from sqlalchemy import (
    Column, String, Integer, Boolean, Time, Date, ForeignKey, Uuid,
    CheckConstraint, Index, text,
)
from sqlalchemy.orm import relationship
import enum
import uuid

from booking_engine.models.base import Base, UTCDateTime, utcnow


class RuleType(str, enum.Enum):
    """Discriminant for the two availability rule variants."""
    WEEKLY = "weekly"
    DATE_OVERRIDE = "date_override"


class AvailabilitySchedule(Base):
    """Named set of availability rules owned by one host"""
    __tablename__ = "availability_schedules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(Uuid(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    timezone = Column(String(64), nullable=False)  # IANA identifier
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    host = relationship("Host", back_populates="schedules")
    rules = relationship(
        "AvailabilityRule",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="AvailabilityRule.start_time",
        lazy="selectin",
    )

    __table_args__ = (
        # At most one default schedule per host
        Index(
            "uq_availability_schedules_host_default",
            "host_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    def __repr__(self):
        return f"<AvailabilitySchedule {self.name} ({self.timezone})>"


class AvailabilityRule(Base):
    """
    Weekly recurring range or date-specific override.

    Weekly rules carry day_of_week (0=Sunday, 6=Saturday). Overrides carry
    specific_date and replace every weekly rule for that date. An override
    with is_available=False closes the date and may omit its times.
    """
    __tablename__ = "availability_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("availability_schedules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rule_type = Column(String(20), nullable=False)
    day_of_week = Column(Integer, nullable=True)
    specific_date = Column(Date, nullable=True)

    start_time = Column(Time, nullable=True)  # local wall-clock, schedule timezone
    end_time = Column(Time, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    schedule = relationship("AvailabilitySchedule", back_populates="rules")

    __table_args__ = (
        CheckConstraint(
            "(rule_type = 'weekly' AND day_of_week BETWEEN 0 AND 6 AND specific_date IS NULL)"
            " OR (rule_type = 'date_override' AND specific_date IS NOT NULL AND day_of_week IS NULL)",
            name="ck_availability_rules_variant",
        ),
        CheckConstraint(
            "start_time IS NULL OR end_time IS NULL OR start_time < end_time"
            " OR end_time < '00:00:01'",  # 00:00 ends at midnight
            name="ck_availability_rules_range",
        ),
        Index("ix_availability_rules_schedule_date", "schedule_id", "specific_date"),
    )

    def __repr__(self):
        when = self.specific_date if self.rule_type == RuleType.DATE_OVERRIDE.value else f"dow={self.day_of_week}"
        return f"<AvailabilityRule {self.rule_type} {when} {self.start_time}-{self.end_time}>"
