"""Health check endpoints."""

from fastapi import APIRouter, Request
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from connector_proxy.core.config import get_settings
from connector_proxy.core.database import database

router = APIRouter()
settings = get_settings()


async def _check(ping: Optional[Callable[[], Awaitable[Any]]]) -> Dict[str, Any]:
    if ping is None:
        return {"status": "disconnected"}
    try:
        return {"status": "healthy" if await ping() else "disconnected"}
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health")
async def health_check():
    """Liveness check, same shape the dashboard has always polled."""
    return {
        "status": "OK",
        "service": settings.service_name,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request):
    """MongoDB and Redis connectivity."""
    redis_client = getattr(request.app.state, "redis", None)
    checks = {
        "database": await _check(database.ping),
        "redis": await _check(redis_client.ping if redis_client is not None else None),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "disconnected" in statuses:
        overall = "degraded"
    else:
        overall = "OK"

    return {
        "status": overall,
        "service": settings.service_name,
        "environment": settings.environment,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }
