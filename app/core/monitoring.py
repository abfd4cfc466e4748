"""Health checks and monitoring endpoints"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.redis import check_broker
from app.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-engine"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Booking store and notification broker"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "broker": "unknown",
        "notifications_enabled": get_settings().NOTIFICATIONS_ENABLED,
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    try:
        checks["broker"] = await check_broker()
    except Exception as e:
        logger.warning(f"Broker health check failed: {e}")
        checks["broker"] = f"unhealthy: {str(e)}"

    broker_ok = isinstance(checks["broker"], dict)
    checks["overall"] = "healthy" if checks["database"] == "healthy" and broker_ok else "degraded"
    return checks
