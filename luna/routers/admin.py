"""Admin endpoints for moderating period entries across users."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from luna.dependencies import AdminUser
from luna.models.periods import PeriodEntryPage, PeriodEntryRead, PeriodEntryUpdate
from luna.routers.period_entries import apply_update
from luna.services import period_store

router = APIRouter(prefix="/admin/period-entries", tags=["admin"])


@router.get("", response_model=PeriodEntryPage)
async def list_all_entries(
    admin: AdminUser,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=200),
) -> Any:
    items, total = await period_store.list_all_entries(offset, limit)
    return {"items": items, "total": total, "offset": offset, "limit": limit}


@router.patch("/{entry_id}", response_model=PeriodEntryRead)
async def update_any_entry(
    entry_id: uuid.UUID, admin: AdminUser, body: PeriodEntryUpdate
) -> Any:
    return await apply_update(entry_id, body, owner_id=None)


@router.delete("/{entry_id}", status_code=204)
async def delete_any_entry(entry_id: uuid.UUID, admin: AdminUser) -> None:
    if not await period_store.delete_entry(entry_id, owner_id=None):
        raise HTTPException(status_code=404, detail="Period entry not found")
