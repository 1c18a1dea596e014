"""Postgres access through an asyncpg connection pool.

Every request acquires a connection inside a transaction.  When a user id is
given it is exposed to row-level security policies as
``app.current_user_id`` via ``set_config(..., true)``, scoped to that
transaction.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from luna.config import Settings, get_settings

logger = logging.getLogger("luna.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS period_entries (
    entry_id    UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id     UUID NOT NULL,
    start_date  DATE NOT NULL,
    end_date    DATE,
    flow        TEXT NOT NULL DEFAULT 'medium'
                CHECK (flow IN ('light', 'medium', 'heavy')),
    symptoms    TEXT[] NOT NULL DEFAULT '{}',
    notes       VARCHAR(500),
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT period_entries_end_after_start
        CHECK (end_date IS NULL OR end_date >= start_date),
    CONSTRAINT period_entries_user_start_key UNIQUE (user_id, start_date)
);
CREATE INDEX IF NOT EXISTS period_entries_user_start_idx
    ON period_entries (user_id, start_date DESC);
"""


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def ensure_schema() -> None:
    """Create the period_entries table and index if they do not exist."""
    async with get_pool().acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("Database schema ensured")


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(
    user_id: uuid.UUID | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection, in a transaction, with the RLS user id set.

    Usage::

        async with get_connection(user_id=ctx.user_id) as conn:
            rows = await conn.fetch("SELECT * FROM period_entries WHERE user_id = $1", ctx.user_id)
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute(
                    "SELECT set_config('app.current_user_id', $1, true)", str(user_id)
                )
            yield conn


async def fetch(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> list[asyncpg.Record]:
    """Fetch rows."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetch(query, *args)


async def fetchrow(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> asyncpg.Record | None:
    """Fetch a single row."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetchrow(query, *args)


async def fetchval(query: str, *args: Any, user_id: uuid.UUID | None = None) -> Any:
    """Fetch a single value."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetchval(query, *args)
