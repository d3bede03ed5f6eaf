from fastapi import APIRouter
from sqlalchemy import text
import logging

from stockroom.database import engine
from stockroom.utils.cache import redis_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic liveness check."
)
def health_check():
    return {"status": "healthy"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check that the database and the Redis cache are reachable."
)
def readiness_check():
    """
    Readiness check for all dependencies.

    The database is required; Redis only backs the product cache, so the
    service is ready without it but reports it as degraded.
    """
    checks = {
        "database": False,
        "redis": False
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        logger.error(f"Database readiness check failed: {e}")
        checks["database_error"] = str(e)

    try:
        redis_client.ping()
        checks["redis"] = True
    except Exception as e:
        logger.warning(f"Redis readiness check failed: {e}")
        checks["redis_error"] = str(e)

    if not checks["database"]:
        overall = "not_ready"
    elif not checks["redis"]:
        overall = "degraded"
    else:
        overall = "ready"

    return {"status": overall, "checks": checks}
