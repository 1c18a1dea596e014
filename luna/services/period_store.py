"""Period-entry persistence.

Thin query layer over the ``period_entries`` table.  Functions return plain
dicts so callers can hand them straight to pydantic models or to the insight
engine.  Passing ``owner_id=None`` to the mutating helpers skips the
ownership filter; only admin routes do that.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any

import asyncpg

from luna.models.periods import PeriodEntryCreate
from luna.services.database import fetch, fetchrow, fetchval, get_connection

logger = logging.getLogger("luna.db.period_entries")

_COLUMNS = "entry_id, user_id, start_date, end_date, flow, symptoms, notes, created_at, updated_at"


class EntryConflictError(Exception):
    """The entry overlaps, or shares a start date with, another entry of the same user."""


def _row(record: asyncpg.Record | None) -> dict[str, Any] | None:
    return dict(record) if record is not None else None


async def all_entries_for_user(user_id: uuid.UUID) -> list[dict[str, Any]]:
    """Every entry of one user, oldest first.  This is the insight engine's input."""
    rows = await fetch(
        f"SELECT {_COLUMNS} FROM period_entries WHERE user_id = $1 ORDER BY start_date ASC",
        user_id,
        user_id=user_id,
    )
    return [dict(r) for r in rows]


async def list_entries_for_user(
    user_id: uuid.UUID, offset: int = 0, limit: int = 10
) -> tuple[list[dict[str, Any]], int]:
    """One page of a user's entries, newest first, with the total count."""
    rows = await fetch(
        f"""
        SELECT {_COLUMNS} FROM period_entries
        WHERE user_id = $1
        ORDER BY start_date DESC
        OFFSET $2 LIMIT $3
        """,
        user_id, offset, limit,
        user_id=user_id,
    )
    total = await fetchval(
        "SELECT COUNT(*) FROM period_entries WHERE user_id = $1",
        user_id,
        user_id=user_id,
    )
    return [dict(r) for r in rows], int(total or 0)


async def list_all_entries(offset: int = 0, limit: int = 20) -> tuple[list[dict[str, Any]], int]:
    """One page of every user's entries, newest first.  Admin only."""
    rows = await fetch(
        f"SELECT {_COLUMNS} FROM period_entries ORDER BY start_date DESC OFFSET $1 LIMIT $2",
        offset, limit,
    )
    total = await fetchval("SELECT COUNT(*) FROM period_entries")
    return [dict(r) for r in rows], int(total or 0)


async def get_entry(
    entry_id: uuid.UUID, owner_id: uuid.UUID | None = None
) -> dict[str, Any] | None:
    if owner_id is None:
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM period_entries WHERE entry_id = $1", entry_id
        )
    else:
        row = await fetchrow(
            f"SELECT {_COLUMNS} FROM period_entries WHERE entry_id = $1 AND user_id = $2",
            entry_id, owner_id,
            user_id=owner_id,
        )
    return _row(row)


async def lock_user_entries(conn: asyncpg.Connection, user_id: uuid.UUID) -> None:
    """Serialise writes to one user's entries until the transaction ends."""
    await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", str(user_id))


async def find_overlap(
    conn: asyncpg.Connection,
    user_id: uuid.UUID,
    start_date: date,
    end_date: date | None,
    exclude_entry_id: uuid.UUID | None = None,
) -> dict[str, Any] | None:
    """Return an entry of ``user_id`` whose days intersect [start_date, end_date].

    An ongoing entry (no end date) occupies only its start day.  Run it on the
    same connection as the write it guards, after ``lock_user_entries``.
    """
    row = await conn.fetchrow(
        f"""
        SELECT {_COLUMNS} FROM period_entries
        WHERE user_id = $1
          AND start_date <= $3
          AND COALESCE(end_date, start_date) >= $2
          AND ($4::uuid IS NULL OR entry_id <> $4)
        LIMIT 1
        """,
        user_id, start_date, end_date or start_date, exclude_entry_id,
    )
    return _row(row)


async def create_entry(user_id: uuid.UUID, body: PeriodEntryCreate) -> dict[str, Any]:
    """Insert an entry.

    The overlap check and the insert share one transaction, holding the
    user's entry lock.

    Raises:
        EntryConflictError: If it overlaps an existing entry of the user.
    """
    async with get_connection(user_id=user_id) as conn:
        await lock_user_entries(conn, user_id)
        if await find_overlap(conn, user_id, body.start_date, body.end_date):
            raise EntryConflictError("Period entry overlaps with an existing entry")
        try:
            row = await conn.fetchrow(
                f"""
                INSERT INTO period_entries (user_id, start_date, end_date, flow, symptoms, notes)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {_COLUMNS}
                """,
                user_id,
                body.start_date, body.end_date, body.flow.value,
                [s.value for s in body.symptoms], body.notes,
            )
        except asyncpg.UniqueViolationError as exc:
            raise EntryConflictError("A period entry already starts on this date") from exc
    logger.debug("Created period entry %s", row["entry_id"])
    return dict(row)


async def update_entry(
    entry_id: uuid.UUID,
    updates: dict[str, Any],
    owner_id: uuid.UUID | None = None,
) -> dict[str, Any] | None:
    """Apply a partial update and return the new row, or None if not found.

    The merged entry is re-checked for overlap and date order inside the same
    transaction as the update.

    Raises:
        EntryConflictError: If the updated entry overlaps another one.
        ValueError:         If the merged end date precedes the start date.
    """
    async with get_connection(user_id=owner_id) as conn:
        if owner_id is None:
            owner = await conn.fetchval(
                "SELECT user_id FROM period_entries WHERE entry_id = $1", entry_id
            )
            if owner is None:
                return None
        else:
            owner = owner_id
        await lock_user_entries(conn, owner)

        current = _row(
            await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM period_entries "
                "WHERE entry_id = $1 AND user_id = $2 FOR UPDATE",
                entry_id, owner,
            )
        )
        if current is None:
            return None

        merged = {**current, **updates}
        if merged["end_date"] is not None and merged["end_date"] < merged["start_date"]:
            raise ValueError("endDate must be on or after startDate")

        if await find_overlap(
            conn, owner, merged["start_date"], merged["end_date"], exclude_entry_id=entry_id
        ):
            raise EntryConflictError("Period entry overlaps with an existing entry")

        set_clauses = []
        params: list[Any] = [entry_id, owner]
        for i, (key, value) in enumerate(updates.items(), start=3):
            set_clauses.append(f"{key} = ${i}")
            if key == "flow" and value is not None:
                value = getattr(value, "value", value)
            elif key == "symptoms" and value is not None:
                value = [getattr(s, "value", s) for s in value]
            params.append(value)
        set_clauses.append("updated_at = NOW()")

        try:
            row = await conn.fetchrow(
                f"""
                UPDATE period_entries SET {', '.join(set_clauses)}
                WHERE entry_id = $1 AND user_id = $2
                RETURNING {_COLUMNS}
                """,
                *params,
            )
        except asyncpg.UniqueViolationError as exc:
            raise EntryConflictError("A period entry already starts on this date") from exc
    return _row(row)


async def delete_entry(entry_id: uuid.UUID, owner_id: uuid.UUID | None = None) -> bool:
    async with get_connection(user_id=owner_id) as conn:
        if owner_id is None:
            result = await conn.execute(
                "DELETE FROM period_entries WHERE entry_id = $1", entry_id
            )
        else:
            result = await conn.execute(
                "DELETE FROM period_entries WHERE entry_id = $1 AND user_id = $2",
                entry_id, owner_id,
            )
    return result != "DELETE 0"
