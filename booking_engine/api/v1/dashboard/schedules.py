# ============================================================================
# FILE: booking_engine/api/v1/dashboard/schedules.py
# Availability schedules of the authenticated host
# ============================================================================
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from booking_engine.api.dependencies import get_current_host
from booking_engine.config.database import get_db
from booking_engine.models.host import Host
from booking_engine.schemas.availability import (
    ScheduleCreateRequest,
    ScheduleResponse,
    ScheduleRulesReplaceRequest,
    ScheduleUpdateRequest,
)
from booking_engine.services.availability.schedule_service import ScheduleService

router = APIRouter(prefix="/schedules", tags=["dashboard-schedules"])


@router.get("", response_model=List[ScheduleResponse])
def list_schedules(
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """All schedules, default first."""
    return ScheduleService.list_schedules(db, current_host.id)


@router.post("", response_model=ScheduleResponse, status_code=201)
def create_schedule(
        request: ScheduleCreateRequest,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return ScheduleService.create_schedule(
        db,
        host_id=current_host.id,
        name=request.name,
        timezone=request.timezone,
        is_default=request.is_default,
        rules=request.rules
    )


@router.get("/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
        schedule_id: UUID = Path(..., description="The schedule ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return ScheduleService.get_schedule(db, current_host.id, schedule_id)


@router.patch("/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
        request: ScheduleUpdateRequest,
        schedule_id: UUID = Path(..., description="The schedule ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Setting is_default=true moves the default here from the previous schedule."""
    return ScheduleService.update_schedule(
        db,
        host_id=current_host.id,
        schedule_id=schedule_id,
        name=request.name,
        timezone=request.timezone,
        is_default=request.is_default
    )


@router.put("/{schedule_id}/rules", response_model=ScheduleResponse)
def replace_rules(
        request: ScheduleRulesReplaceRequest,
        schedule_id: UUID = Path(..., description="The schedule ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Replace the whole rule set of a schedule."""
    return ScheduleService.replace_rules(db, current_host.id, schedule_id, request.rules)


@router.delete("/{schedule_id}", status_code=204)
def delete_schedule(
        schedule_id: UUID = Path(..., description="The schedule ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    ScheduleService.delete_schedule(db, current_host.id, schedule_id)
