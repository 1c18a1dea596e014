"""Stateless insight computation over a caller-supplied list of entries."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from luna.cycle.engine import CycleInsightEngine
from luna.cycle.entries import InvalidInputKind
from luna.dependencies import CurrentUser
from luna.models.periods import InsightsRead

router = APIRouter(prefix="/cycle-insights", tags=["cycle insights"])
logger = logging.getLogger("luna.cycle_insights")


@router.post("", response_model=InsightsRead)
async def compute_from_entries(
    user: CurrentUser,
    entries: Any = Body(..., description="List of period entries"),
) -> Any:
    """Compute insights for the posted entries without touching storage.

    Individual malformed entries are skipped.  A body that is not a list of
    entry objects is rejected with 422.
    """
    try:
        insights = CycleInsightEngine().compute_insights(entries)
    except InvalidInputKind as exc:
        logger.info("Rejected insight request from %s: %s", user.user_id, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return InsightsRead.from_insights(insights)
