"""Shared fixtures for API tests.

The period store is replaced by an in-memory fake so the routes can be
exercised without Postgres.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from luna.main import create_app
from luna.models.periods import PeriodEntryCreate
from luna.services import period_store

ALICE = uuid.UUID("12345678-1234-5678-1234-567812345678")
BOB = uuid.UUID("87654321-4321-8765-4321-876543218765")
ADMIN = uuid.UUID("00000000-0000-4000-8000-000000000001")


def headers_for(user_id: uuid.UUID, role: str = "user") -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": role}


class FakePeriodStore:
    """In-memory stand-in for luna.services.period_store."""

    def __init__(self) -> None:
        self.rows: dict[uuid.UUID, dict[str, Any]] = {}

    def _overlaps(
        self,
        user_id: uuid.UUID,
        start: date,
        end: date | None,
        exclude: uuid.UUID | None = None,
    ) -> bool:
        last = end or start
        return any(
            r["user_id"] == user_id
            and r["entry_id"] != exclude
            and r["start_date"] <= last
            and (r["end_date"] or r["start_date"]) >= start
            for r in self.rows.values()
        )

    def _visible(self, owner_id: uuid.UUID | None) -> list[dict[str, Any]]:
        return [r for r in self.rows.values() if owner_id is None or r["user_id"] == owner_id]

    async def all_entries_for_user(self, user_id: uuid.UUID) -> list[dict[str, Any]]:
        return sorted(self._visible(user_id), key=lambda r: r["start_date"])

    async def list_entries_for_user(
        self, user_id: uuid.UUID, offset: int = 0, limit: int = 10
    ) -> tuple[list[dict[str, Any]], int]:
        rows = sorted(self._visible(user_id), key=lambda r: r["start_date"], reverse=True)
        return rows[offset:offset + limit], len(rows)

    async def list_all_entries(self, offset: int = 0, limit: int = 20):
        rows = sorted(self.rows.values(), key=lambda r: r["start_date"], reverse=True)
        return rows[offset:offset + limit], len(rows)

    async def get_entry(self, entry_id: uuid.UUID, owner_id: uuid.UUID | None = None):
        row = self.rows.get(entry_id)
        if row is None or (owner_id is not None and row["user_id"] != owner_id):
            return None
        return dict(row)

    async def create_entry(self, user_id: uuid.UUID, body: PeriodEntryCreate) -> dict[str, Any]:
        if self._overlaps(user_id, body.start_date, body.end_date):
            raise period_store.EntryConflictError("Period entry overlaps with an existing entry")
        now = datetime.now(timezone.utc)
        row = {
            "entry_id": uuid.uuid4(),
            "user_id": user_id,
            "start_date": body.start_date,
            "end_date": body.end_date,
            "flow": body.flow.value,
            "symptoms": [s.value for s in body.symptoms],
            "notes": body.notes,
            "created_at": now,
            "updated_at": now,
        }
        self.rows[row["entry_id"]] = row
        return dict(row)

    async def update_entry(
        self, entry_id: uuid.UUID, updates: dict[str, Any], owner_id: uuid.UUID | None = None
    ):
        current = await self.get_entry(entry_id, owner_id)
        if current is None:
            return None
        merged = {**current, **updates}
        if merged["end_date"] is not None and merged["end_date"] < merged["start_date"]:
            raise ValueError("endDate must be on or after startDate")
        if self._overlaps(current["user_id"], merged["start_date"], merged["end_date"], entry_id):
            raise period_store.EntryConflictError("Period entry overlaps with an existing entry")
        merged["flow"] = getattr(merged["flow"], "value", merged["flow"])
        merged["symptoms"] = [getattr(s, "value", s) for s in merged["symptoms"]]
        merged["updated_at"] = datetime.now(timezone.utc)
        self.rows[entry_id] = merged
        return dict(merged)

    async def delete_entry(self, entry_id: uuid.UUID, owner_id: uuid.UUID | None = None) -> bool:
        if await self.get_entry(entry_id, owner_id) is None:
            return False
        del self.rows[entry_id]
        return True


@pytest.fixture
def fake_store(monkeypatch: pytest.MonkeyPatch) -> FakePeriodStore:
    store = FakePeriodStore()
    for name in (
        "all_entries_for_user",
        "list_entries_for_user",
        "list_all_entries",
        "get_entry",
        "create_entry",
        "update_entry",
        "delete_entry",
    ):
        monkeypatch.setattr(period_store, name, getattr(store, name))
    return store


@pytest.fixture
def client(fake_store: FakePeriodStore) -> TestClient:
    # No context manager: the lifespan (DB pool) is not started.
    return TestClient(create_app())
