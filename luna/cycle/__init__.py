"""Cycle insights for Luna.

Computes average cycle and period lengths, predicts the next period start and
derives a short list of tips from a user's period entries.

Modules:
    entries        : entry vocabulary and defensive coercion of raw records
    engine         : the pure insight computation
    tips           : ordered tip rules
    config_loader  : load/validate/hot-reload insight_config.yaml
"""

from luna.cycle.config_loader import InsightConfig, get_insight_config
from luna.cycle.engine import CycleInsightEngine, Insights, compute_insights
from luna.cycle.entries import Flow, InvalidInputKind, PeriodRecord, SymptomTag

__all__ = [
    "CycleInsightEngine",
    "Insights",
    "compute_insights",
    "InvalidInputKind",
    "PeriodRecord",
    "Flow",
    "SymptomTag",
    "InsightConfig",
    "get_insight_config",
]
