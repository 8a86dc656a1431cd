# booking_engine/models/__init__.py
from .base import Base
from .host import Host
from .availability import AvailabilitySchedule, AvailabilityRule, RuleType
from .event_type import EventType, SchedulingType, LocationType
from .booking import (
    Booking,
    BookingAttendee,
    BookingStatus,
    CancelledBy,
    AttendeeRole,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)

__all__ = [
    "Base",
    "Host",
    "AvailabilitySchedule",
    "AvailabilityRule",
    "RuleType",
    "EventType",
    "SchedulingType",
    "LocationType",
    "Booking",
    "BookingAttendee",
    "BookingStatus",
    "CancelledBy",
    "AttendeeRole",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
]
