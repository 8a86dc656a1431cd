# ============================================================================
# booking_engine/services/booking/booking_query_service.py
# Read-only booking queries - no FastAPI dependencies, fully testable
# ============================================================================
from sqlalchemy.orm import Session, selectinload
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from uuid import UUID

from booking_engine.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from booking_engine.models.booking import Booking, BookingStatus


class BookingQueryService:
    """Host-side listing and detail, plus the invitee's token view."""

    @staticmethod
    def list_bookings(
            db: Session,
            host_id: UUID,
            statuses: Optional[List[str]] = None,
            when: Optional[str] = None,
            skip: int = 0,
            limit: int = 50,
            now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Paginated bookings of a host ordered by start time.

        ``when`` is "upcoming" (ends after now, soonest first) or "past"
        (ended, most recent first).
        """
        valid = {s.value for s in BookingStatus}
        unknown = [s for s in statuses or [] if s not in valid]
        if unknown:
            raise ValidationError(f"Unknown status filter: {', '.join(unknown)}", code="invalid_status")

        now = now or datetime.now(timezone.utc)
        query = db.query(Booking).options(selectinload(Booking.attendees)).filter(Booking.host_id == host_id)

        if statuses:
            query = query.filter(Booking.status.in_(statuses))

        if when == "upcoming":
            query = query.filter(Booking.end_time > now).order_by(Booking.start_time.asc())
        elif when == "past":
            query = query.filter(Booking.end_time <= now).order_by(Booking.start_time.desc())
        elif when is None:
            query = query.order_by(Booking.start_time.asc())
        else:
            raise ValidationError("when must be 'upcoming' or 'past'", code="invalid_filter")

        total = query.count()
        bookings = query.offset(skip).limit(limit).all()

        return {
            "total": total,
            "skip": skip,
            "limit": limit,
            "bookings": bookings,
        }

    @staticmethod
    def get_booking(db: Session, host_id: UUID, booking_id: UUID) -> Booking:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()

        if not booking:
            raise NotFoundError("Booking not found")
        if booking.host_id != host_id:
            raise UnauthorizedError("Booking belongs to another host")

        return booking

    @staticmethod
    def public_view(booking: Booking) -> Dict[str, Any]:
        """What the holder of a uid may see: no host ids, no other bookings."""
        event_type = booking.event_type
        return {
            "uid": booking.uid,
            "status": booking.status,
            "start_time": booking.start_time,
            "end_time": booking.end_time,
            "invitee_name": booking.invitee_name,
            "invitee_email": booking.invitee_email,
            "invitee_timezone": booking.invitee_timezone,
            "invitee_notes": booking.invitee_notes,
            "location": booking.location,
            "cancellation_reason": booking.cancellation_reason,
            "event_type": {
                "id": event_type.id,
                "title": event_type.title,
                "duration": event_type.duration,
                "location_type": event_type.location_type,
            },
            "host_name": booking.host.display_name,
        }
