"""
Pydantic schemas for availability schedules, rules and slots
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date, datetime, time
from uuid import UUID

from booking_engine.models.availability import RuleType


# ============================================================================
# Request Schemas
# ============================================================================

class AvailabilityRuleIn(BaseModel):
    """
    One weekly range or date override.
    Weekly rules use day_of_week (0=Sunday); overrides use specific_date.
    """
    rule_type: RuleType
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    specific_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = Field(None, description="00:00 means the end of the day")
    is_available: bool = True


class ScheduleCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    timezone: str = Field(..., min_length=1, max_length=64, description="IANA timezone, e.g. Europe/Berlin")
    is_default: bool = False
    rules: List[AvailabilityRuleIn] = Field(default_factory=list)


class ScheduleUpdateRequest(BaseModel):
    """Only send what you want to change"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    timezone: Optional[str] = Field(None, min_length=1, max_length=64)
    is_default: Optional[bool] = None


class ScheduleRulesReplaceRequest(BaseModel):
    rules: List[AvailabilityRuleIn]


# ============================================================================
# Response Schemas
# ============================================================================

class AvailabilityRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rule_type: RuleType
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: bool


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    timezone: str
    is_default: bool
    rules: List[AvailabilityRuleResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SlotResponse(BaseModel):
    start: datetime
    end: datetime


class SlotsResponse(BaseModel):
    event_type_id: UUID
    date: date
    timezone: str
    slots: List[SlotResponse]


class SlotDayGroup(BaseModel):
    date: date
    slots: List[SlotResponse]


class SlotRangeResponse(BaseModel):
    event_type_id: UUID
    start_date: date
    end_date: date
    timezone: str
    days: List[SlotDayGroup]
