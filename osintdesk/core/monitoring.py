"""
Health checks for the admin monitoring view.

Each check reports ``healthy``, ``degraded`` or ``down`` with its response
time. The overall status is the worst of the individual ones.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from osintdesk.celery_app import ping_workers
from osintdesk.config import settings

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
DOWN = "down"

_SEVERITY = {HEALTHY: 0, DEGRADED: 1, DOWN: 2}


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def check_database(db: AsyncSession) -> dict[str, Any]:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        await db.rollback()
        return {
            "status": DOWN,
            "response_time_ms": _elapsed_ms(start),
            "message": "Database query failed",
            "details": {"error": str(e)},
        }

    elapsed = _elapsed_ms(start)
    if elapsed < 100:
        status = HEALTHY
    elif elapsed < 500:
        status = DEGRADED
    else:
        status = DOWN
    return {
        "status": status,
        "response_time_ms": elapsed,
        "message": "Database connection successful",
        "details": {},
    }


async def check_task_queue() -> dict[str, Any]:
    """Ping the tool workers through the Celery broker."""
    start = time.perf_counter()
    try:
        replies = await asyncio.to_thread(ping_workers)
    except Exception as e:
        logger.warning(f"Task queue health check failed: {e}")
        return {
            "status": DOWN,
            "response_time_ms": _elapsed_ms(start),
            "message": "Task queue unreachable",
            "details": {"error": str(e), "queue": settings.tool_queue_name},
        }

    workers = sorted(replies)
    return {
        "status": HEALTHY if workers else DEGRADED,
        "response_time_ms": _elapsed_ms(start),
        "message": f"{len(workers)} worker(s) responding"
        if workers
        else "No workers responding",
        "details": {"workers": workers, "queue": settings.tool_queue_name},
    }


async def system_health(db: AsyncSession) -> dict[str, Any]:
    checks = {
        "database": await check_database(db),
        "task_queue": await check_task_queue(),
    }
    overall = max((c["status"] for c in checks.values()), key=_SEVERITY.__getitem__)
    return {
        "status": overall,
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
