"""Load, validate, and hot-reload the cycle-insight thresholds.

The thresholds live in ``insight_config.yaml`` alongside this module.  They
are loaded once and cached.  Call ``reload_insight_config()`` to re-read from
disk after an edit, no restart required.

Usage::

    from luna.cycle.config_loader import get_insight_config

    config = get_insight_config()
    config.cycle_range.typical_max_days     # 35
    config.symptom_frequency.min_ratio      # 0.5
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("luna.cycle.config")

_CONFIG_PATH = Path(__file__).parent / "insight_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class CycleRangeConfig:
    """Typical cycle-length band, in days (inclusive)."""

    typical_min_days: int = 21
    typical_max_days: int = 35

    def contains(self, days: float) -> bool:
        return self.typical_min_days <= days <= self.typical_max_days


@dataclass
class SymptomFrequencyConfig:
    """How recent symptoms are counted for the frequency tip."""

    window_entries: int = 3
    min_ratio: float = 0.5


@dataclass
class RegularityConfig:
    """Variance bands (days squared) for cycle regularity."""

    regular_max_variance: float = 7.0
    slightly_irregular_max_variance: float = 14.0


@dataclass
class PeriodLengthConfig:
    """Average period-length band, in days."""

    short_max_days: int = 3
    long_min_days: int = 7


@dataclass
class FertilityConfig:
    """Ovulation and fertile-window offsets, in days before the next period."""

    ovulation_offset_days: int = 14
    window_end_offset_days: int = 10


@dataclass
class TrackingConfig:
    """Entry counts for the tracking-encouragement tips."""

    keep_tracking_min_entries: int = 3
    well_tracked_min_entries: int = 6


@dataclass
class InsightConfig:
    """Complete, validated insight configuration.

    Attributes:
        version:           Config schema version string.
        cycle_range:       Typical cycle-length band.
        symptom_frequency: Window and ratio for the symptom tip.
        regularity:        Variance bands for cycle regularity.
        period_length:     Short/long period thresholds.
        fertility:         Ovulation and fertile-window offsets.
        tracking:          Entry counts for the tracking tips.
    """

    version: str = "1.0"
    cycle_range: CycleRangeConfig = field(default_factory=CycleRangeConfig)
    symptom_frequency: SymptomFrequencyConfig = field(default_factory=SymptomFrequencyConfig)
    regularity: RegularityConfig = field(default_factory=RegularityConfig)
    period_length: PeriodLengthConfig = field(default_factory=PeriodLengthConfig)
    fertility: FertilityConfig = field(default_factory=FertilityConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when insight_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Insight config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{path} must contain a mapping at the top level")
    return data


def _validate_and_build(raw: dict) -> InsightConfig:
    """Validate the raw YAML dict and construct an InsightConfig.

    Missing sections fall back to defaults.  Every problem found is collected
    and reported together.

    Raises:
        ConfigValidationError: If any value has the wrong type or range.
    """
    errors: list[str] = []

    def _section(name: str) -> dict:
        value = raw.get(name) or {}
        if not isinstance(value, dict):
            errors.append(f"'{name}' must be a mapping")
            return {}
        return value

    def _number(section: dict, section_name: str, key: str, default: float, cast=float):
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{section_name}.{key} must be a number, got {value!r}")
            return cast(default)

    version = str(raw.get("version", "1.0"))

    # ── Cycle range ──
    cr_raw = _section("cycle_range")
    cycle_range = CycleRangeConfig(
        typical_min_days=_number(cr_raw, "cycle_range", "typical_min_days", 21, int),
        typical_max_days=_number(cr_raw, "cycle_range", "typical_max_days", 35, int),
    )
    if cycle_range.typical_min_days <= 0:
        errors.append("cycle_range.typical_min_days must be positive")
    if cycle_range.typical_min_days > cycle_range.typical_max_days:
        errors.append(
            f"cycle_range.typical_min_days ({cycle_range.typical_min_days}) exceeds "
            f"typical_max_days ({cycle_range.typical_max_days})"
        )

    # ── Symptom frequency ──
    sf_raw = _section("symptom_frequency")
    symptom_frequency = SymptomFrequencyConfig(
        window_entries=_number(sf_raw, "symptom_frequency", "window_entries", 3, int),
        min_ratio=_number(sf_raw, "symptom_frequency", "min_ratio", 0.5),
    )
    if symptom_frequency.window_entries < 1:
        errors.append("symptom_frequency.window_entries must be at least 1")
    if not (0.0 < symptom_frequency.min_ratio <= 1.0):
        errors.append(
            f"symptom_frequency.min_ratio = {symptom_frequency.min_ratio} "
            "is out of range (0.0, 1.0]"
        )

    # ── Regularity ──
    rg_raw = _section("regularity")
    regularity = RegularityConfig(
        regular_max_variance=_number(rg_raw, "regularity", "regular_max_variance", 7.0),
        slightly_irregular_max_variance=_number(
            rg_raw, "regularity", "slightly_irregular_max_variance", 14.0
        ),
    )
    if regularity.regular_max_variance > regularity.slightly_irregular_max_variance:
        errors.append(
            "regularity.regular_max_variance must not exceed "
            "slightly_irregular_max_variance"
        )

    # ── Period length ──
    pl_raw = _section("period_length")
    period_length = PeriodLengthConfig(
        short_max_days=_number(pl_raw, "period_length", "short_max_days", 3, int),
        long_min_days=_number(pl_raw, "period_length", "long_min_days", 7, int),
    )
    if period_length.short_max_days > period_length.long_min_days:
        errors.append("period_length.short_max_days must not exceed long_min_days")

    # ── Fertility ──
    ft_raw = _section("fertility")
    fertility = FertilityConfig(
        ovulation_offset_days=_number(ft_raw, "fertility", "ovulation_offset_days", 14, int),
        window_end_offset_days=_number(ft_raw, "fertility", "window_end_offset_days", 10, int),
    )
    if fertility.window_end_offset_days < 0:
        errors.append("fertility.window_end_offset_days must not be negative")
    if fertility.window_end_offset_days > fertility.ovulation_offset_days:
        errors.append(
            "fertility.window_end_offset_days must not exceed ovulation_offset_days"
        )

    # ── Tracking ──
    tr_raw = _section("tracking")
    tracking = TrackingConfig(
        keep_tracking_min_entries=_number(tr_raw, "tracking", "keep_tracking_min_entries", 3, int),
        well_tracked_min_entries=_number(tr_raw, "tracking", "well_tracked_min_entries", 6, int),
    )
    if tracking.keep_tracking_min_entries < 1:
        errors.append("tracking.keep_tracking_min_entries must be at least 1")
    if tracking.keep_tracking_min_entries > tracking.well_tracked_min_entries:
        errors.append(
            "tracking.keep_tracking_min_entries must not exceed well_tracked_min_entries"
        )

    if errors:
        raise ConfigValidationError(
            f"insight_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return InsightConfig(
        version=version,
        cycle_range=cycle_range,
        symptom_frequency=symptom_frequency,
        regularity=regularity,
        period_length=period_length,
        fertility=fertility,
        tracking=tracking,
    )


def load_insight_config(path: Path | None = None) -> InsightConfig:
    """Load and validate the insight config from disk.

    Args:
        path: Override path to YAML. Uses the bundled insight_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded insight config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: InsightConfig | None = None
_config_lock = threading.Lock()


def get_insight_config() -> InsightConfig:
    """Return the global InsightConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_insight_config()
    return _config


def reload_insight_config(path: Path | None = None) -> InsightConfig:
    """Reload the insight config from disk and replace the global singleton.

    If validation fails the old config is retained and the error re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_insight_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded insight config: %s → %s", old_version, new_config.version)
    return new_config
