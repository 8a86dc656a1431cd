# ============================================================================
# FILE: booking_engine/api/v1/dashboard/bookings.py
# Host authenticated endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from booking_engine.api.dependencies import get_correlation_id, get_current_host
from booking_engine.config.database import get_db
from booking_engine.models.host import Host
from booking_engine.schemas.booking import (
    BookingCancelRequest,
    BookingListResponse,
    BookingResponse,
    BookingTransitionResponse,
)
from booking_engine.services.booking.booking_query_service import BookingQueryService
from booking_engine.services.booking.lifecycle_service import LifecycleService

router = APIRouter(prefix="/bookings", tags=["dashboard-bookings"])


@router.get("", response_model=BookingListResponse)
def list_bookings(
        status: Optional[List[str]] = Query(None, description="pending, confirmed, cancelled, rescheduled, completed, no_show"),
        when: Optional[str] = Query(None, pattern="^(upcoming|past)$", description="upcoming or past"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    """Bookings of the authenticated host, ordered by start time."""
    return BookingQueryService.list_bookings(
        db=db,
        host_id=current_host.id,
        statuses=status,
        when=when,
        skip=skip,
        limit=limit
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
        booking_id: UUID = Path(..., description="The booking ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    return BookingQueryService.get_booking(db, current_host.id, booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingTransitionResponse)
def confirm_booking(
        booking_id: UUID = Path(..., description="The booking ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db),
        correlation_id: Optional[str] = Depends(get_correlation_id)
):
    """pending -> confirmed"""
    result = LifecycleService.confirm(db, booking_id, current_host.id, correlation_id=correlation_id)
    return {"changed": result.changed, "booking": result.booking}


@router.post("/{booking_id}/cancel", response_model=BookingTransitionResponse)
def cancel_booking(
        booking_id: UUID = Path(..., description="The booking ID"),
        request: Optional[BookingCancelRequest] = None,
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db),
        correlation_id: Optional[str] = Depends(get_correlation_id)
):
    result = LifecycleService.cancel_by_host(
        db, booking_id, current_host.id,
        reason=request.reason if request else None,
        correlation_id=correlation_id
    )
    return {"changed": result.changed, "booking": result.booking}


@router.post("/{booking_id}/complete", response_model=BookingTransitionResponse)
def mark_completed(
        booking_id: UUID = Path(..., description="The booking ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    result = LifecycleService.mark_completed(db, booking_id, current_host.id)
    return {"changed": result.changed, "booking": result.booking}


@router.post("/{booking_id}/no-show", response_model=BookingTransitionResponse)
def mark_no_show(
        booking_id: UUID = Path(..., description="The booking ID"),
        current_host: Host = Depends(get_current_host),
        db: Session = Depends(get_db)
):
    result = LifecycleService.mark_no_show(db, booking_id, current_host.id)
    return {"changed": result.changed, "booking": result.booking}
