from __future__ import annotations
# booking_engine/schemas/task_payloads.py
from pydantic import BaseModel, Field
from typing import Literal
from datetime import datetime, timezone


NotificationType = Literal["booking_confirmation", "booking_cancellation"]


class BookingNotificationPayload(BaseModel):
    """Body POSTed to the notification dispatcher"""
    type: NotificationType = Field(..., description="Notification kind")
    booking_id: str = Field(..., description="Booking primary key")
    correlation_id: str | None = Field(None, description="Request correlation ID")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
