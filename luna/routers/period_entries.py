"""CRUD endpoints for the caller's period entries, plus their cycle insights."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from luna.dependencies import CurrentUser
from luna.models.periods import (
    InsightsRead,
    PeriodEntryCreate,
    PeriodEntryPage,
    PeriodEntryRead,
    PeriodEntryUpdate,
)
from luna.services import period_store
from luna.services.insights import insights_for_user

router = APIRouter(prefix="/period-entries", tags=["period entries"])


@router.get("", response_model=PeriodEntryPage)
async def list_entries(
    user: CurrentUser,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=10, ge=1, le=100),
) -> Any:
    items, total = await period_store.list_entries_for_user(user.user_id, offset, limit)
    return {"items": items, "total": total, "offset": offset, "limit": limit}


@router.post("", response_model=PeriodEntryRead, status_code=201)
async def create_entry(user: CurrentUser, body: PeriodEntryCreate) -> Any:
    try:
        return await period_store.create_entry(user.user_id, body)
    except period_store.EntryConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get("/insights", response_model=InsightsRead)
async def get_insights(user: CurrentUser) -> Any:
    insights = await insights_for_user(user.user_id)
    return InsightsRead.from_insights(insights)


@router.get("/{entry_id}", response_model=PeriodEntryRead)
async def get_entry(entry_id: uuid.UUID, user: CurrentUser) -> Any:
    row = await period_store.get_entry(entry_id, owner_id=user.user_id)
    if not row:
        raise HTTPException(status_code=404, detail="Period entry not found")
    return row


@router.patch("/{entry_id}", response_model=PeriodEntryRead)
async def update_entry(
    entry_id: uuid.UUID, user: CurrentUser, body: PeriodEntryUpdate
) -> Any:
    return await apply_update(entry_id, body, owner_id=user.user_id)


@router.delete("/{entry_id}", status_code=204)
async def delete_entry(entry_id: uuid.UUID, user: CurrentUser) -> None:
    if not await period_store.delete_entry(entry_id, owner_id=user.user_id):
        raise HTTPException(status_code=404, detail="Period entry not found")


async def apply_update(
    entry_id: uuid.UUID, body: PeriodEntryUpdate, owner_id: uuid.UUID | None
) -> dict[str, Any]:
    """Shared PATCH handling for owner and admin routes."""
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "start_date" in updates and updates["start_date"] is None:
        raise HTTPException(status_code=400, detail="startDate cannot be cleared")
    if "flow" in updates and updates["flow"] is None:
        raise HTTPException(status_code=400, detail="flow cannot be cleared")
    if "symptoms" in updates and updates["symptoms"] is None:
        updates["symptoms"] = []

    try:
        row = await period_store.update_entry(entry_id, updates, owner_id=owner_id)
    except period_store.EntryConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not row:
        raise HTTPException(status_code=404, detail="Period entry not found")
    return row
