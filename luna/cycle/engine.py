"""Cycle-insight engine.

Turns one user's period-entry history into a small set of explainable
statistics:

- average cycle length (start-to-start spacing of consecutive entries)
- average period length (inclusive of both boundary days)
- next predicted period start (last start + rounded average cycle)
- ovulation estimate and fertile window, counted back from that start
- cycle regularity band
- an ordered list of tips

The computation is pure: no I/O, no clock, no shared mutable state.  Identical
input always produces identical output, whatever the input order.  Values
that cannot be computed are ``None``, never ``0``.

Prediction is a naive linear step from the most recent entry.  There is no
trend or seasonality modelling; sample sizes are small and the goal is a
simple expectation, not a forecast with confidence bounds.
"""

from __future__ import annotations

import logging
import math
import statistics
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from luna.cycle.config_loader import InsightConfig, get_insight_config
from luna.cycle.entries import PeriodRecord, normalize_entries
from luna.cycle.tips import TipContext, generate_tips

logger = logging.getLogger("luna.cycle.engine")

INSUFFICIENT_DATA = "insufficient_data"


def round_half_up(value: float) -> int:
    """Round to the nearest whole number, halves away from zero for positives."""
    return math.floor(value + 0.5)


@dataclass
class Insights:
    """Derived cycle statistics for one user.

    Attributes:
        average_cycle_length:  Mean start-to-start spacing in days, full precision.
        average_period_length: Mean inclusive period length in days, full precision.
        total_cycles:          Number of adjacent entry pairs averaged.
        next_predicted_date:   Expected next period start.
        predicted_ovulation_date: Estimated ovulation before the next period.
        fertile_window_start:  First day of the estimated fertile window.
        fertile_window_end:    Last day of the estimated fertile window.
        tips:                  Ordered tip strings.
        cycle_regularity:      'regular', 'slightly_irregular', 'irregular' or
                               'insufficient_data'.
        cycle_lengths:         Per-pair spacing in days, oldest first.
        period_lengths:        Per-entry period lengths in days, oldest first.
    """

    average_cycle_length: float | None = None
    average_period_length: float | None = None
    total_cycles: int = 0
    next_predicted_date: date | None = None
    predicted_ovulation_date: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    tips: list[str] = field(default_factory=list)
    cycle_regularity: str = INSUFFICIENT_DATA
    cycle_lengths: list[int] = field(default_factory=list)
    period_lengths: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready record with averages rounded to whole days for display."""
        return {
            "averageCycleLength": _display_days(self.average_cycle_length),
            "averagePeriodLength": _display_days(self.average_period_length),
            "totalCycles": self.total_cycles,
            "nextPredictedDate": _iso(self.next_predicted_date),
            "predictedOvulationDate": _iso(self.predicted_ovulation_date),
            "fertileWindowStart": _iso(self.fertile_window_start),
            "fertileWindowEnd": _iso(self.fertile_window_end),
            "tips": list(self.tips),
            "cycleRegularity": self.cycle_regularity,
            "cycleLengths": list(self.cycle_lengths),
            "periodLengths": list(self.period_lengths),
        }


def _display_days(value: float | None) -> int | None:
    return None if value is None else round_half_up(value)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def shift_date(anchor: date | None, days: int) -> date | None:
    """Return ``anchor`` moved by ``days``, or None if absent or out of range."""
    if anchor is None:
        return None
    try:
        return anchor + timedelta(days=days)
    except OverflowError:
        logger.debug("Date %s shifted by %d days is out of range", anchor, days)
        return None


class CycleInsightEngine:
    """Compute cycle insights from a user's period entries.

    Usage::

        engine = CycleInsightEngine()
        insights = engine.compute_insights(entries)
        insights.next_predicted_date
        insights.to_dict()
    """

    def __init__(self, config: InsightConfig | None = None) -> None:
        self._config = config or get_insight_config()

    def compute_insights(self, entries: Any) -> Insights:
        """Compute insights from a sequence of entry-shaped records.

        Malformed entries are skipped field by field; they never abort the
        computation.

        Args:
            entries: Mappings (camelCase or snake_case keys) or objects with
                     ``start_date``/``end_date``/``flow``/``symptoms``
                     attributes, in any order.

        Returns:
            A fully populated Insights value.

        Raises:
            InvalidInputKind: If ``entries`` is not a sequence of entry-shaped records.
        """
        records = normalize_entries(entries)

        cycle_lengths = self.cycle_lengths(records)
        period_lengths = [
            r.period_length for r in records if r.period_length is not None
        ]

        avg_cycle = statistics.fmean(cycle_lengths) if cycle_lengths else None
        avg_period = statistics.fmean(period_lengths) if period_lengths else None

        next_date = None
        if avg_cycle is not None:
            next_date = shift_date(records[-1].start_date, round_half_up(avg_cycle))

        fertility = self._config.fertility
        ovulation = shift_date(next_date, -fertility.ovulation_offset_days)
        window_end = shift_date(next_date, -fertility.window_end_offset_days)
        if ovulation is None or window_end is None:
            ovulation = window_end = None

        regularity = self.classify_regularity(cycle_lengths)

        tips = generate_tips(
            TipContext(
                records=records,
                average_cycle_length=avg_cycle,
                average_period_length=avg_period,
                cycle_regularity=regularity,
                config=self._config,
            )
        )

        logger.debug(
            "Computed insights from %d usable entries: %d cycles, %d period lengths, %d tips",
            len(records),
            len(cycle_lengths),
            len(period_lengths),
            len(tips),
        )

        return Insights(
            average_cycle_length=avg_cycle,
            average_period_length=avg_period,
            total_cycles=len(cycle_lengths),
            next_predicted_date=next_date,
            predicted_ovulation_date=ovulation,
            fertile_window_start=ovulation,
            fertile_window_end=window_end,
            tips=tips,
            cycle_regularity=regularity,
            cycle_lengths=cycle_lengths,
            period_lengths=period_lengths,
        )

    @staticmethod
    def cycle_lengths(records: list[PeriodRecord]) -> list[int]:
        """Start-to-start spacing, in days, of each adjacent pair of sorted records."""
        return [
            (later.start_date - earlier.start_date).days
            for earlier, later in zip(records, records[1:])
        ]

    def classify_regularity(self, cycle_lengths: list[int]) -> str:
        """Band the population variance of cycle lengths.

        Returns:
            'regular', 'slightly_irregular', 'irregular', or
            'insufficient_data' when there is no cycle at all.
        """
        if not cycle_lengths:
            return INSUFFICIENT_DATA
        variance = statistics.pvariance(cycle_lengths)
        rg = self._config.regularity
        if variance <= rg.regular_max_variance:
            return "regular"
        if variance <= rg.slightly_irregular_max_variance:
            return "slightly_irregular"
        return "irregular"


def compute_insights(entries: Any, config: InsightConfig | None = None) -> Insights:
    """Shortcut for ``CycleInsightEngine(config).compute_insights(entries)``."""
    return CycleInsightEngine(config).compute_insights(entries)
