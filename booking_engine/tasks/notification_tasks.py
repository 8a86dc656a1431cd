# ===== booking_engine/tasks/notification_tasks.py =====
import logging

import httpx

from booking_engine.config.celery_config import celery_app
from booking_engine.config.settings import get_settings
from booking_engine.schemas.task_payloads import BookingNotificationPayload

logger = logging.getLogger(__name__)

settings = get_settings()


@celery_app.task(bind=True, max_retries=settings.NOTIFICATION_MAX_RETRIES)
def send_booking_notification(self, payload: dict):
    """
    Hand a booking notification to the dispatcher.

    The dispatcher renders and delivers; this task only POSTs
    ``{type, booking_id}``. Failures are retried with backoff and then
    dropped, never reported back to the booking flow.

    Args:
        payload: BookingNotificationPayload as a JSON-safe dict
    """
    notification = BookingNotificationPayload(**payload)

    if not settings.NOTIFICATION_DISPATCHER_URL:
        logger.info(
            f"No dispatcher configured, skipping {notification.type} for booking {notification.booking_id}"
        )
        return {"status": "skipped", "booking_id": notification.booking_id}

    headers = {}
    if notification.correlation_id:
        headers["X-Correlation-ID"] = notification.correlation_id

    try:
        response = httpx.post(
            settings.NOTIFICATION_DISPATCHER_URL,
            json={"type": notification.type, "booking_id": notification.booking_id},
            headers=headers,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()

        logger.info(f"Dispatched {notification.type} for booking {notification.booking_id}")
        return {"status": "success", "booking_id": notification.booking_id}

    except httpx.HTTPError as exc:
        logger.error(f"Failed to dispatch {notification.type} for booking {notification.booking_id}: {exc}")

        if self.request.retries >= self.max_retries:
            logger.error(f"Giving up on {notification.type} for booking {notification.booking_id}")
            return {"status": "failed", "booking_id": notification.booking_id}

        # Exponential backoff: 30s, 60s, 120s
        raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))
