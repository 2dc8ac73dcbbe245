"""
Health check and monitoring endpoints.

Provides health status for the document database and the session store.
"""

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, status
from datetime import datetime, timezone

from app.core.database import Database, get_database
from app.core.exceptions import StoreUnavailable
from app.core.session_store import RedisSessionStore, get_session_store

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns 200 OK if the service is running.
    Use this for simple uptime monitoring and load balancer health checks.
    """
    return {
        "status": "healthy",
        "timestamp": _timestamp()
    }


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(
    database: Database = Depends(get_database),
    session_store: RedisSessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Database readiness and connectivity
    - Session store (Redis) connectivity
    """
    health_status = {
        "status": "healthy",
        "timestamp": _timestamp(),
        "checks": {}
    }

    try:
        database.ping()
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except StoreUnavailable as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": "Database not ready" if not database.is_ready else "Database unreachable"
        }

    try:
        session_store.ping()
        health_status["checks"]["session_store"] = {
            "status": "healthy",
            "message": "Session store reachable"
        }
    except StoreUnavailable as e:
        logger.error(f"Session store health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["session_store"] = {
            "status": "unhealthy",
            "message": "Session store unreachable"
        }

    return health_status
