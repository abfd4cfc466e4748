"""
Celery worker entry point
Delivers booking notifications queued by the API
"""
import logging
from celery.signals import task_failure, worker_ready, worker_shutdown

from app.config.celery_config import celery_app
from app.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("Notification worker ready")
    logger.info(f"Registered tasks: {[name for name in celery_app.tasks.keys() if name.startswith('app.')]}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, kwargs=None, **extra):
    """Retries are exhausted by the time this fires; the notification is lost"""
    kwargs = kwargs or {}
    logger.error(
        f"Notification task {task_id} gave up: {kwargs.get('kind')} for user {kwargs.get('user_id')}: {exception}"
    )


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Notification worker shutting down")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--loglevel=info',
        '--queues=notifications',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
