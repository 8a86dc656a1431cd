"""
Pydantic schemas for event types
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID

from booking_engine.models.event_type import LocationType, SchedulingType


class CustomQuestion(BaseModel):
    """Extra question shown on the booking form"""
    id: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=200)
    type: str = Field("text", description="text, textarea, select, checkbox or phone")
    required: bool = False
    options: Optional[List[str]] = None


class EventTypeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=100, description="Generated from the title when omitted")
    description: Optional[str] = None
    duration: int = Field(..., gt=0, le=24 * 60, description="Duration in minutes")
    scheduling_type: SchedulingType = SchedulingType.INDIVIDUAL
    location_type: LocationType = LocationType.NONE
    location_value: Optional[str] = Field(None, max_length=500)
    availability_schedule_id: Optional[UUID] = None
    min_notice: int = Field(0, ge=0)
    max_future_days: int = Field(60, ge=0)
    slot_interval: Optional[int] = Field(None, gt=0)
    buffer_before: int = Field(0, ge=0)
    buffer_after: int = Field(0, ge=0)
    requires_confirmation: bool = False
    custom_questions: List[CustomQuestion] = Field(default_factory=list)
    is_hidden: bool = False


class EventTypeUpdateRequest(BaseModel):
    """All fields optional - only send what you want to update"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0, le=24 * 60)
    location_type: Optional[LocationType] = None
    location_value: Optional[str] = Field(None, max_length=500)
    availability_schedule_id: Optional[UUID] = None
    min_notice: Optional[int] = Field(None, ge=0)
    max_future_days: Optional[int] = Field(None, ge=0)
    slot_interval: Optional[int] = Field(None, gt=0)
    buffer_before: Optional[int] = Field(None, ge=0)
    buffer_after: Optional[int] = Field(None, ge=0)
    requires_confirmation: Optional[bool] = None
    custom_questions: Optional[List[CustomQuestion]] = None
    is_active: Optional[bool] = None
    is_hidden: Optional[bool] = None


class EventTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    host_id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    duration: int
    scheduling_type: str
    location_type: str
    location_value: Optional[str] = None
    availability_schedule_id: Optional[UUID] = None
    min_notice: int
    max_future_days: int
    slot_interval: Optional[int] = None
    buffer_before: int
    buffer_after: int
    requires_confirmation: bool
    custom_questions: Optional[List[Dict[str, Any]]] = None
    is_active: bool
    is_hidden: bool
    created_at: datetime
    updated_at: datetime
