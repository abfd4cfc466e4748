"""Redis access for the Celery broker (notification queue)"""
import time
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from app.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

_broker_pool: Optional[redis.ConnectionPool] = None


def get_broker_pool() -> redis.ConnectionPool:
    """Shared pool on CELERY_BROKER_URL, created on first use"""
    global _broker_pool
    if _broker_pool is None:
        _broker_pool = redis.ConnectionPool.from_url(
            settings.CELERY_BROKER_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
        )
    return _broker_pool


async def get_broker_client() -> redis.Redis:
    return redis.Redis(connection_pool=get_broker_pool())


async def check_broker(queue: str = "notifications") -> Dict[str, Any]:
    """Ping the broker and report how many notifications are waiting"""
    client = await get_broker_client()
    try:
        started = time.perf_counter()
        await client.ping()
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        pending = await client.llen(queue)
        return {"status": "healthy", "latency_ms": latency_ms, "pending_notifications": pending}
    finally:
        await client.close()
