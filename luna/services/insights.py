"""Cycle insights for a stored user."""

from __future__ import annotations

import uuid

from luna.cycle.engine import CycleInsightEngine, Insights
from luna.services import period_store


async def insights_for_user(
    user_id: uuid.UUID, engine: CycleInsightEngine | None = None
) -> Insights:
    """Load a snapshot of the user's entries and compute insights from it."""
    entries = await period_store.all_entries_for_user(user_id)
    return (engine or CycleInsightEngine()).compute_insights(entries)
