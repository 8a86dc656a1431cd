"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from booking_engine.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "booking_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "booking_engine.tasks.notification_tasks.*": {"queue": "notifications"},
        },

        task_queues=(
            Queue("notifications", routing_key="notifications"),
        ),

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        task_ignore_result=True,

        # Publishing must never hold up a booking request
        task_publish_retry=False,
        broker_connection_timeout=settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
        broker_transport_options={
            "max_retries": 0,
            "socket_connect_timeout": settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
            "socket_timeout": settings.NOTIFICATION_PUBLISH_TIMEOUT_SECONDS,
        },

        broker_connection_retry_on_startup=True,
    )

    # Task modules loaded by the worker
    celery_app.conf.imports = (
        "booking_engine.tasks.notification_tasks",
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
