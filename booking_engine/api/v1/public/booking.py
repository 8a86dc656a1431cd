"""
Public booking API - slot lookup and invitee self-service
File: booking_engine/api/v1/public/booking.py

No authentication. Booking management routes take the booking uid, which is
the invitee's only credential.
"""
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session, sessionmaker
from datetime import date
from typing import Optional
from uuid import UUID

from booking_engine.api.dependencies import get_correlation_id
from booking_engine.config.database import get_db, get_session_factory
from booking_engine.schemas.availability import SlotRangeResponse, SlotsResponse
from booking_engine.schemas.booking import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingRescheduleRequest,
    PublicBookingResponse,
    PublicTransitionResponse,
)
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.booking.booking_query_service import BookingQueryService
from booking_engine.services.booking.conflict_guard import ConflictGuard, InviteeDetails
from booking_engine.services.booking.lifecycle_service import LifecycleService

router = APIRouter()


# ============================================================================
# SLOTS
# ============================================================================

@router.get("/event-types/{event_type_id}/slots", response_model=SlotsResponse)
async def get_available_slots(
        event_type_id: UUID = Path(..., description="The event type ID"),
        day: date = Query(..., alias="date", description="Date in the host schedule's timezone"),
        timezone: str = Query(..., description="Viewer's IANA timezone for presentation"),
        session_factory: sessionmaker = Depends(get_session_factory)
):
    """Bookable slots for one date. Times are returned in the viewer's timezone."""
    slots = await AvailabilityService.run_with_timeout(
        AvailabilityService.get_available_slots,
        event_type_id, day, timezone,
        session_factory=session_factory
    )

    return {
        "event_type_id": event_type_id,
        "date": day,
        "timezone": timezone,
        "slots": [{"start": s.start, "end": s.end} for s in slots],
    }


@router.get("/event-types/{event_type_id}/slots/range", response_model=SlotRangeResponse)
async def get_available_slots_range(
        event_type_id: UUID = Path(..., description="The event type ID"),
        start_date: date = Query(..., description="First date (inclusive)"),
        end_date: date = Query(..., description="Last date (inclusive)"),
        timezone: str = Query(..., description="Viewer's IANA timezone for presentation"),
        session_factory: sessionmaker = Depends(get_session_factory)
):
    """Slots grouped per date; dates without slots are left out."""
    days = await AvailabilityService.run_with_timeout(
        AvailabilityService.get_available_slots_range,
        event_type_id, start_date, end_date, timezone,
        session_factory=session_factory
    )

    return {
        "event_type_id": event_type_id,
        "start_date": start_date,
        "end_date": end_date,
        "timezone": timezone,
        "days": days,
    }


# ============================================================================
# BOOKINGS
# ============================================================================

@router.post("/bookings", response_model=PublicBookingResponse, status_code=201)
def create_booking(
        request: BookingCreateRequest,
        db: Session = Depends(get_db),
        correlation_id: Optional[str] = Depends(get_correlation_id)
):
    """
    Book a slot. 409 slot_unavailable means someone else got there first:
    fetch slots again and pick another one.
    """
    booking = ConflictGuard.create(
        db=db,
        event_type_id=request.event_type_id,
        invitee=InviteeDetails(
            name=request.invitee_name,
            email=request.invitee_email,
            timezone=request.invitee_timezone,
            notes=request.invitee_notes,
            responses=request.responses,
        ),
        start=request.start_time,
        end=request.end_time,
        correlation_id=correlation_id,
    )
    return BookingQueryService.public_view(booking)


@router.get("/bookings/{uid}", response_model=PublicBookingResponse)
def lookup_booking(
        uid: str = Path(..., description="Booking token"),
        db: Session = Depends(get_db)
):
    booking = LifecycleService.lookup_by_token(db, uid)
    return BookingQueryService.public_view(booking)


@router.post("/bookings/{uid}/cancel", response_model=PublicTransitionResponse)
def cancel_booking(
        uid: str = Path(..., description="Booking token"),
        request: Optional[BookingCancelRequest] = None,
        db: Session = Depends(get_db),
        correlation_id: Optional[str] = Depends(get_correlation_id)
):
    """Cancel as the invitee. Cancelling twice reports changed=false."""
    result = LifecycleService.cancel_by_token(
        db, uid,
        reason=request.reason if request else None,
        correlation_id=correlation_id
    )
    return {"changed": result.changed, "booking": BookingQueryService.public_view(result.booking)}


@router.post("/bookings/{uid}/reschedule", response_model=PublicBookingResponse, status_code=201)
def reschedule_booking(
        request: BookingRescheduleRequest,
        uid: str = Path(..., description="Booking token"),
        db: Session = Depends(get_db),
        correlation_id: Optional[str] = Depends(get_correlation_id)
):
    """Move to a new slot. The response is the new booking with its own uid."""
    new_booking, _ = ConflictGuard.reschedule_by_token(
        db, uid,
        new_start=request.start_time,
        new_end=request.end_time,
        reason=request.reason,
        correlation_id=correlation_id
    )
    return BookingQueryService.public_view(new_booking)
