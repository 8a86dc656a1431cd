"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from booking_engine.config.database import get_db
from booking_engine.config.redis import ping_redis
from booking_engine.config.settings import get_settings
from booking_engine.models.booking import EXCLUSION_CONSTRAINT_NAME

logger = logging.getLogger(__name__)

health_router = APIRouter()


def overlap_guard_status(db: Session) -> str:
    """Report which store-level mechanism backs the no-double-booking rule."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        present = db.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": EXCLUSION_CONSTRAINT_NAME},
        ).first()
        return "exclusion_constraint" if present else "missing"
    if dialect == "sqlite":
        return "serialized_writes"
    return "row_lock_only"


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-engine"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Database, overlap guard and notification broker status"""
    settings = get_settings()
    checks = {
        "api": "healthy",
        "database": "unknown",
        "overlap_guard": "unknown",
        "broker": "unknown",
        "notifications": "enabled" if settings.NOTIFICATION_DISPATCHER_URL else "disabled",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
        checks["overlap_guard"] = overlap_guard_status(db)
    except Exception as e:
        logger.warning(f"Database health probe failed: {e}")
        checks["database"] = f"unhealthy: {e}"

    try:
        checks["broker"] = "healthy"
        checks["broker_latency_ms"] = await ping_redis()
    except Exception as e:
        # Bookings still succeed without the broker; only notifications stop
        logger.warning(f"Broker health probe failed: {e}")
        checks["broker"] = f"unhealthy: {e}"

    if checks["database"] != "healthy" or checks["overlap_guard"] == "missing":
        checks["overall"] = "unhealthy"
    elif checks["broker"] != "healthy":
        checks["overall"] = "degraded"
    else:
        checks["overall"] = "healthy"

    return checks
