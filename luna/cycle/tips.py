"""Deterministic tip rules for cycle insights.

Each rule looks at the computed statistics and the recent entries and returns
at most one tip string.  Rules run in a fixed category order:

1. onboarding: not enough entries to predict anything yet
2. cycle_range: average cycle outside the typical range
3. symptom_frequency: a symptom recurring across the last few entries
4. regularity: cycle lengths varying more than usual
5. period_length: unusually short or long periods
6. tracking: encouragement once enough entries are logged

Tips are informational, never diagnostic.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Callable

from luna.cycle.config_loader import InsightConfig
from luna.cycle.entries import SYMPTOM_ORDER, PeriodRecord, SymptomTag

ONBOARDING_TIP = (
    "Log at least two periods to unlock cycle predictions. "
    "The more entries you add, the better your insights get."
)
KEEP_TRACKING_TIP = "Keep tracking! More entries will make your cycle predictions more accurate."
WELL_TRACKED_TIP = (
    "Excellent tracking! You have logged enough periods for reliable predictions "
    "and insights."
)


@dataclass(frozen=True)
class TipContext:
    """Everything the tip rules may read."""

    records: list[PeriodRecord]
    average_cycle_length: float | None
    average_period_length: float | None
    cycle_regularity: str
    config: InsightConfig


TipRule = Callable[[TipContext], str | None]


def onboarding_tip(ctx: TipContext) -> str | None:
    if len(ctx.records) < 2:
        return ONBOARDING_TIP
    return None


def cycle_range_tip(ctx: TipContext) -> str | None:
    avg = ctx.average_cycle_length
    band = ctx.config.cycle_range
    if avg is None or band.contains(avg):
        return None
    if avg < band.typical_min_days:
        return (
            f"Your average cycle is shorter than the typical "
            f"{band.typical_min_days}-{band.typical_max_days} day range, which can mean "
            "more frequent periods. Keep tracking, and mention it to a healthcare "
            "provider if it concerns you."
        )
    return (
        f"Your average cycle is longer than the typical "
        f"{band.typical_min_days}-{band.typical_max_days} day range. Longer cycles are "
        "normal for some people; note any changes in symptoms or flow."
    )


def most_frequent_recent_symptom(
    records: list[PeriodRecord], window: int, min_ratio: float
) -> tuple[SymptomTag, int, int] | None:
    """Find the symptom present in at least ``min_ratio`` of the last ``window`` entries.

    Returns (symptom, occurrences, entries considered) or None.  Ties go to the
    symptom listed first in the vocabulary.
    """
    recent = records[-window:]
    if not recent:
        return None

    counts: Counter[SymptomTag] = Counter()
    for record in recent:
        counts.update(record.symptoms)
    if not counts:
        return None

    symptom, count = min(counts.items(), key=lambda kv: (-kv[1], SYMPTOM_ORDER[kv[0]]))
    if count / len(recent) < min_ratio:
        return None
    return symptom, count, len(recent)


def symptom_frequency_tip(ctx: TipContext) -> str | None:
    sf = ctx.config.symptom_frequency
    found = most_frequent_recent_symptom(ctx.records, sf.window_entries, sf.min_ratio)
    if found is None:
        return None
    symptom, count, considered = found
    return (
        f"You logged {symptom.label} in {count} of your last {considered} "
        f"{'entry' if considered == 1 else 'entries'}. Noting when it starts and what "
        "helps can make patterns easier to spot."
    )


def regularity_tip(ctx: TipContext) -> str | None:
    if ctx.cycle_regularity == "slightly_irregular":
        return (
            "Your cycle length varies a little. Stress, sleep, diet and travel can "
            "all shift it by a few days."
        )
    if ctx.cycle_regularity == "irregular":
        return (
            "Your cycle length varies quite a bit. Tracking symptoms and lifestyle "
            "factors can help you and a healthcare provider spot patterns."
        )
    return None


def period_length_tip(ctx: TipContext) -> str | None:
    avg = ctx.average_period_length
    band = ctx.config.period_length
    if avg is None:
        return None
    if avg < band.short_max_days:
        return (
            "Your periods are on the short side. That can be normal; make sure "
            "you are getting enough iron and nutrients."
        )
    if avg > band.long_min_days:
        return (
            "Your periods tend to last longer than a week. Consider keeping an eye "
            "on iron levels and discussing it with a healthcare provider."
        )
    return None


def tracking_tip(ctx: TipContext) -> str | None:
    tr = ctx.config.tracking
    if len(ctx.records) >= tr.well_tracked_min_entries:
        return WELL_TRACKED_TIP
    if len(ctx.records) >= tr.keep_tracking_min_entries:
        return KEEP_TRACKING_TIP
    return None


TIP_RULES: tuple[TipRule, ...] = (
    onboarding_tip,
    cycle_range_tip,
    symptom_frequency_tip,
    regularity_tip,
    period_length_tip,
    tracking_tip,
)


def generate_tips(ctx: TipContext) -> list[str]:
    """Run every rule in category order and collect the tips produced."""
    tips = []
    for rule in TIP_RULES:
        tip = rule(ctx)
        if tip:
            tips.append(tip)
    return tips
