# app/config/celery_config.py
"""Celery configuration and task routing"""
from celery import Celery
from kombu import Queue

from app.config.settings import get_settings

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
        timezone=settings.DEFAULT_TIMEZONE,
        enable_utc=True,

        # Task routing
        task_routes={
            "app.tasks.notification_tasks.*": {"queue": "notifications"},
        },

        # Queue definitions
        task_queues=(
            Queue("notifications", routing_key="notifications"),
        ),

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,  # 1 minute

        broker_connection_retry_on_startup=True,
    )

    celery_app.autodiscover_tasks([
        "app.tasks.notification_tasks",
    ])

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
