# ============================================================================
# FILE: booking_engine/api/v1/dashboard/event_types.py
# Event types of the authenticated host
# ============================================================================
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from booking_engine.api.dependencies import get_current_host
from booking_engine.config.database import get_db
from booking_engine.models.host import Host
from booking_engine.schemas.event_type import (
    EventTypeCreateRequest,
    EventTypeResponse,
    EventTypeUpdateRequest,
)
from booking_engine.services.event_type.event_type_service import EventTypeService

router = APIRouter(prefix="/event-types", tags=["dashboard-event-types"])


@router.get("", response_model=List[EventTypeResponse])
def list_event_types(
        include_inactive: bool = Query(True, description="Include deactivated event types"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.list_event_types(db, current_host.id, include_inactive=include_inactive)


@router.post("", response_model=EventTypeResponse, status_code=201)
def create_event_type(
        request: EventTypeCreateRequest,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.create_event_type(db, current_host.id, request.model_dump())


@router.get("/{event_type_id}", response_model=EventTypeResponse)
def get_event_type(
        event_type_id: UUID = Path(..., description="The event type ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return EventTypeService.get_event_type(db, current_host.id, event_type_id)


@router.patch("/{event_type_id}", response_model=EventTypeResponse)
def update_event_type(
        request: EventTypeUpdateRequest,
        event_type_id: UUID = Path(..., description="The event type ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Only the fields sent are changed."""
    return EventTypeService.update_event_type(
        db, current_host.id, event_type_id, request.model_dump(exclude_unset=True)
    )


@router.delete("/{event_type_id}", response_model=EventTypeResponse)
def deactivate_event_type(
        event_type_id: UUID = Path(..., description="The event type ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Deactivates; existing bookings keep pointing at it."""
    return EventTypeService.deactivate_event_type(db, current_host.id, event_type_id)
