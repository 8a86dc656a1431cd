# ============================================================================
# booking_engine/services/event_type/event_type_service.py
# ============================================================================
"""Service for managing a host's event types"""
import enum
import re
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from booking_engine.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from booking_engine.models.availability import AvailabilitySchedule
from booking_engine.models.event_type import EventType

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 100

# Fields an update may explicitly clear
NULLABLE_FIELDS = {"description", "location_value", "availability_schedule_id", "slot_interval"}


def generate_slug(title: str) -> str:
    """URL-safe slug from a title."""
    slug = title.lower().strip()
    slug = re.sub(r'[\s_]+', '-', slug)
    slug = re.sub(r'[^a-z0-9-]', '', slug)
    slug = re.sub(r'-+', '-', slug).strip('-')
    return slug[:SLUG_MAX_LENGTH] or "event"


class EventTypeService:
    """Handles event type operations"""

    @staticmethod
    def _unique_slug(db: Session, host_id: UUID, base: str, exclude_id: Optional[UUID] = None) -> str:
        slug = base
        counter = 1
        while True:
            query = db.query(EventType.id).filter(EventType.host_id == host_id, EventType.slug == slug)
            if exclude_id is not None:
                query = query.filter(EventType.id != exclude_id)
            if not query.first():
                return slug
            suffix = f"-{counter}"
            slug = f"{base[:SLUG_MAX_LENGTH - len(suffix)]}{suffix}"
            counter += 1

    @staticmethod
    def _check_schedule(db: Session, host_id: UUID, schedule_id: Optional[UUID]) -> None:
        if schedule_id is None:
            return
        owner = db.query(AvailabilitySchedule.host_id).filter(AvailabilitySchedule.id == schedule_id).scalar()
        if owner is None:
            raise NotFoundError("Schedule not found", code="schedule_not_found")
        if owner != host_id:
            raise UnauthorizedError("Schedule belongs to another host")

    @staticmethod
    def _plain(data: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v.value if isinstance(v, enum.Enum) else v for k, v in data.items()}

    @staticmethod
    def _validate_numbers(values: Dict[str, Any]) -> None:
        duration = values.get("duration")
        if duration is not None and duration <= 0:
            raise ValidationError("duration must be positive", code="invalid_duration")
        for field in ("min_notice", "max_future_days", "buffer_before", "buffer_after"):
            value = values.get(field)
            if value is not None and value < 0:
                raise ValidationError(f"{field} must not be negative", code=f"invalid_{field}")
        slot_interval = values.get("slot_interval")
        if slot_interval is not None and slot_interval <= 0:
            raise ValidationError("slot_interval must be positive", code="invalid_slot_interval")

    @staticmethod
    def create_event_type(db: Session, host_id: UUID, data: Dict[str, Any]) -> EventType:
        """Create an event type; the slug comes from the title unless given."""
        EventTypeService._validate_numbers(data)
        EventTypeService._check_schedule(db, host_id, data.get("availability_schedule_id"))

        values = EventTypeService._plain(data)
        base_slug = generate_slug(values.pop("slug", None) or values["title"])
        values["slug"] = EventTypeService._unique_slug(db, host_id, base_slug)

        event_type = EventType(host_id=host_id, **values)
        db.add(event_type)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(event_type)

        logger.info(f"Created event type {event_type.id} ({event_type.slug}) for host {host_id}")
        return event_type

    @staticmethod
    def list_event_types(db: Session, host_id: UUID, include_inactive: bool = True) -> List[EventType]:
        query = db.query(EventType).filter(EventType.host_id == host_id)
        if not include_inactive:
            query = query.filter(EventType.is_active.is_(True))
        return query.order_by(EventType.created_at.asc()).all()

    @staticmethod
    def get_event_type(db: Session, host_id: UUID, event_type_id: UUID) -> EventType:
        event_type = db.query(EventType).filter(EventType.id == event_type_id).first()
        if not event_type:
            raise NotFoundError("Event type not found", code="event_type_not_found")
        if event_type.host_id != host_id:
            raise UnauthorizedError("Event type belongs to another host")
        return event_type

    @staticmethod
    def update_event_type(db: Session, host_id: UUID, event_type_id: UUID, data: Dict[str, Any]) -> EventType:
        """Partial update; only keys present in ``data`` are touched."""
        EventTypeService._validate_numbers(data)
        if "availability_schedule_id" in data:
            EventTypeService._check_schedule(db, host_id, data["availability_schedule_id"])

        event_type = EventTypeService.get_event_type(db, host_id, event_type_id)

        values = {
            k: v for k, v in EventTypeService._plain(data).items()
            if v is not None or k in NULLABLE_FIELDS
        }
        if values.get("slug"):
            values["slug"] = EventTypeService._unique_slug(
                db, host_id, generate_slug(values["slug"]), exclude_id=event_type.id
            )
        else:
            values.pop("slug", None)

        for field, value in values.items():
            setattr(event_type, field, value)

        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(event_type)
        return event_type

    @staticmethod
    def deactivate_event_type(db: Session, host_id: UUID, event_type_id: UUID) -> EventType:
        """Hide from booking; existing bookings keep their reference."""
        return EventTypeService.update_event_type(db, host_id, event_type_id, {"is_active": False})
