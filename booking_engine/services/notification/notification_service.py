# ============================================================================
# booking_engine/services/notification/notification_service.py
# Fire-and-forget hand-off to the notification worker
# ============================================================================
import logging
from typing import Optional
from uuid import UUID

from booking_engine.schemas.task_payloads import BookingNotificationPayload, NotificationType
from booking_engine.tasks.notification_tasks import send_booking_notification

logger = logging.getLogger(__name__)

BOOKING_CONFIRMATION = "booking_confirmation"
BOOKING_CANCELLATION = "booking_cancellation"


class NotificationService:
    """
    Enqueues booking notifications on the Celery "notifications" queue.

    Called only after the booking transaction has committed. Publishing is
    bounded by the broker timeouts in celery_config and any failure is
    logged and dropped: a notification never changes a booking result.
    """

    @staticmethod
    def dispatch(
            notification_type: NotificationType,
            booking_id: UUID,
            correlation_id: Optional[str] = None
    ) -> bool:
        """Returns True when the message reached the broker."""
        payload = BookingNotificationPayload(
            type=notification_type,
            booking_id=str(booking_id),
            correlation_id=correlation_id,
        )

        try:
            send_booking_notification.apply_async(
                kwargs={"payload": payload.model_dump(mode="json")},
                retry=False,
            )
        except Exception as e:
            logger.warning(f"Could not enqueue {notification_type} for booking {booking_id}: {e}")
            return False

        logger.debug(f"Enqueued {notification_type} for booking {booking_id}")
        return True
