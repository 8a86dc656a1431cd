"""
Pydantic schemas for bookings (public token flows and host dashboard)
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from uuid import UUID


# ============================================================================
# Request Schemas
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Public booking form submission. Times must carry a UTC offset."""
    event_type_id: UUID
    invitee_name: str = Field(..., min_length=1, max_length=255)
    invitee_email: EmailStr
    invitee_timezone: str = Field(..., min_length=1, max_length=64)
    invitee_notes: Optional[str] = Field(None, max_length=5000)
    start_time: datetime
    end_time: datetime
    responses: Dict[str, Any] = Field(default_factory=dict)


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingRescheduleRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = Field(None, max_length=1000)


# ============================================================================
# Response Schemas
# ============================================================================

class AttendeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    email: str
    name: str
    role: str
    response_status: str


class BookingResponse(BaseModel):
    """Host view of a booking"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type_id: UUID
    host_id: UUID
    rescheduled_from: Optional[UUID] = None
    invitee_name: str
    invitee_email: str
    invitee_timezone: str
    invitee_notes: Optional[str] = None
    responses: Optional[Dict[str, Any]] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    status: str
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    source: str
    attendees: List[AttendeeResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class EventTypeSummary(BaseModel):
    id: UUID
    title: str
    duration: int
    location_type: str


class PublicBookingResponse(BaseModel):
    """
    Invitee view, returned to whoever holds the uid.
    Carries no host identifiers beyond a display name.
    """
    uid: str
    status: str
    start_time: datetime
    end_time: datetime
    invitee_name: str
    invitee_email: str
    invitee_timezone: str
    invitee_notes: Optional[str] = None
    location: Optional[str] = None
    cancellation_reason: Optional[str] = None
    event_type: EventTypeSummary
    host_name: str


class BookingTransitionResponse(BaseModel):
    """changed=False means the booking was already in the target state"""
    changed: bool
    booking: BookingResponse


class PublicTransitionResponse(BaseModel):
    changed: bool
    booking: PublicBookingResponse


class BookingListResponse(BaseModel):
    total: int
    skip: int
    limit: int
    bookings: List[BookingResponse]
