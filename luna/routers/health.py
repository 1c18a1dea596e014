"""Health check endpoint, public, no identity required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from luna.config import get_settings
from luna.cycle.config_loader import get_insight_config
from luna.services.database import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("luna.health")


@router.get("/health")
async def health_check() -> dict:
    """Liveness probe.

    Reports database reachability and the loaded insight-config version.  The
    endpoint itself always answers 200; ``status`` is "degraded" when the
    database cannot be reached.
    """
    settings = get_settings()
    db_ok = False
    try:
        async with get_pool().acquire() as conn:
            await conn.fetchval("SELECT 1")
        db_ok = True
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "insight_config": get_insight_config().version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
