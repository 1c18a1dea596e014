"""Luna API, FastAPI application entry point.

Run locally:
    uvicorn luna.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from luna.config import get_settings
from luna.cycle.config_loader import get_insight_config
from luna.middleware.gateway_auth import GatewayAuthMiddleware
from luna.routers import admin, cycle_insights, health, period_entries
from luna.services.database import close_pool, ensure_schema, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("luna")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Luna API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    get_insight_config()  # fail fast on a broken insight_config.yaml
    await init_pool(settings)
    await ensure_schema()
    yield
    await close_pool()
    logger.info("Luna API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Luna API",
        description="Period tracking with explainable cycle insights.",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ---------- Middleware (last added runs first) ----------

    app.add_middleware(GatewayAuthMiddleware, settings=settings)

    # CORS is added last so it wraps auth and answers preflight itself
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(period_entries.router, prefix=v1_prefix)
    app.include_router(cycle_insights.router, prefix=v1_prefix)
    app.include_router(admin.router, prefix=v1_prefix)

    return app


app = create_app()
