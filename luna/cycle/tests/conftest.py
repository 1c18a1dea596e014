"""Shared fixtures and entry builders for cycle-insight tests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import pytest

from luna.cycle.config_loader import InsightConfig, load_insight_config
from luna.cycle.engine import CycleInsightEngine

JAN_1 = date(2024, 1, 1)


# ---------------------------------------------------------------------------
# Entry builders
# ---------------------------------------------------------------------------


def make_entry(
    start: date,
    end: date | None = None,
    flow: str = "medium",
    symptoms: tuple[str, ...] = (),
) -> dict[str, Any]:
    """An entry shaped like a client JSON body."""
    return {
        "startDate": start.isoformat(),
        "endDate": end.isoformat() if end else None,
        "flow": flow,
        "symptoms": list(symptoms),
    }


def build_history(
    spacings: list[int],
    period_days: int = 5,
    first_start: date = JAN_1,
    symptoms: list[tuple[str, ...]] | None = None,
) -> list[dict[str, Any]]:
    """Entries whose starts are separated by ``spacings`` days, oldest first."""
    starts = [first_start]
    for gap in spacings:
        starts.append(starts[-1] + timedelta(days=gap))
    symptoms = symptoms or [()] * len(starts)
    return [
        make_entry(s, s + timedelta(days=period_days - 1), symptoms=sym)
        for s, sym in zip(starts, symptoms)
    ]


# ---------------------------------------------------------------------------
# Config / engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def insight_config() -> InsightConfig:
    """Load the bundled insight config."""
    return load_insight_config()


@pytest.fixture
def engine(insight_config: InsightConfig) -> CycleInsightEngine:
    return CycleInsightEngine(insight_config)
