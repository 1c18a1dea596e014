"""Period-entry vocabulary and defensive coercion of raw entry records.

The insight engine accepts entries from several places: database rows,
pydantic API models, or a JSON body posted directly by a client.  This
module turns any of those into ``PeriodRecord`` values, dropping records
that are unusable rather than failing the whole computation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger("luna.cycle.entries")


class Flow(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class SymptomTag(str, Enum):
    cramps = "cramps"
    bloating = "bloating"
    headache = "headache"
    mood_swings = "mood_swings"
    fatigue = "fatigue"
    nausea = "nausea"
    back_pain = "back_pain"
    breast_tenderness = "breast_tenderness"
    acne = "acne"
    food_cravings = "food_cravings"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# Vocabulary order, used to break ties deterministically
SYMPTOM_ORDER: dict[SymptomTag, int] = {tag: i for i, tag in enumerate(SymptomTag)}

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "start_date": ("start_date", "startDate"),
    "end_date": ("end_date", "endDate"),
    "flow": ("flow",),
    "symptoms": ("symptoms",),
}


class InvalidInputKind(TypeError):
    """The input is not a sequence of entry-shaped records.

    This is a structural contract violation by the caller, distinct from
    data-quality problems inside individual entries (which are skipped).
    """


@dataclass(frozen=True)
class PeriodRecord:
    """A validated period entry, as used by the insight engine.

    Attributes:
        start_date: First day of the period.
        end_date:   Last day, or None while ongoing or when unusable.
        flow:       Flow intensity.
        symptoms:   Recognised symptom tags (no duplicates).
    """

    start_date: date
    end_date: date | None = None
    flow: Flow = Flow.medium
    symptoms: frozenset[SymptomTag] = frozenset()

    @property
    def period_length(self) -> int | None:
        """Inclusive length in days, or None without a usable end date."""
        if self.end_date is None or self.end_date < self.start_date:
            return None
        return (self.end_date - self.start_date).days + 1

    def sort_key(self) -> tuple:
        return (
            self.start_date,
            self.end_date or date.max,
            self.flow.value,
            tuple(sorted(SYMPTOM_ORDER[s] for s in self.symptoms)),
        )


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def ensure_entry_sequence(entries: Any) -> Sequence[Any]:
    """Check that ``entries`` is a sequence of entry-shaped records.

    Raises:
        InvalidInputKind: If the container or any element has the wrong shape.
    """
    if isinstance(entries, (str, bytes, bytearray, Mapping)) or not isinstance(
        entries, Sequence
    ):
        raise InvalidInputKind(
            f"Expected a sequence of period entries, got {type(entries).__name__}"
        )
    for index, item in enumerate(entries):
        if not _is_entry_shaped(item):
            raise InvalidInputKind(
                f"Element {index} is not a period entry (got {type(item).__name__})"
            )
    return entries


def _is_entry_shaped(item: Any) -> bool:
    if isinstance(item, Mapping):
        return True
    if isinstance(item, (str, bytes, bytearray, Sequence)) or item is None:
        return False
    return hasattr(item, "start_date")


def _get(item: Any, name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if isinstance(item, Mapping):
            if key in item:
                return item[key]
        elif hasattr(item, key):
            return getattr(item, key)
    return None


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def parse_date(value: Any) -> date | None:
    """Coerce a date, datetime or ISO-8601 string to a date.

    Timezone-aware datetimes are converted to UTC first.  Returns None if the
    value is missing or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def _parse_flow(value: Any) -> Flow | None:
    if value is None:
        return Flow.medium
    if isinstance(value, Flow):
        return value
    try:
        return Flow(str(value).strip().lower())
    except ValueError:
        return None


def _parse_symptoms(value: Any) -> frozenset[SymptomTag]:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return frozenset()
    tags: set[SymptomTag] = set()
    try:
        items = list(value)
    except TypeError:
        return frozenset()
    for raw in items:
        try:
            tags.add(raw if isinstance(raw, SymptomTag) else SymptomTag(str(raw)))
        except ValueError:
            continue
    return frozenset(tags)


def coerce_entry(item: Any) -> PeriodRecord | None:
    """Build a PeriodRecord from one entry-shaped record.

    Returns None when the entry cannot take part in any aggregate: a missing
    or malformed start date, or a flow outside the enumeration.  A malformed
    or inverted end date only clears ``end_date``.
    """
    start = parse_date(_get(item, "start_date"))
    if start is None:
        logger.debug("Skipping entry with unusable start date")
        return None

    flow = _parse_flow(_get(item, "flow"))
    if flow is None:
        logger.debug("Skipping entry starting %s: invalid flow", start)
        return None

    end = parse_date(_get(item, "end_date"))
    if end is not None and end < start:
        logger.debug("Entry starting %s ends before it starts; ignoring end date", start)
        end = None

    return PeriodRecord(
        start_date=start,
        end_date=end,
        flow=flow,
        symptoms=_parse_symptoms(_get(item, "symptoms")),
    )


def normalize_entries(entries: Any) -> list[PeriodRecord]:
    """Validate, coerce, sort and de-duplicate a user's entries.

    Returns records sorted ascending by start date with at most one record per
    start date.  The survivor among same-day duplicates is chosen by a total
    ordering on the record, so the result does not depend on input order.

    Raises:
        InvalidInputKind: If ``entries`` is not a sequence of entry-shaped records.
    """
    records = [
        record
        for record in (coerce_entry(item) for item in ensure_entry_sequence(entries))
        if record is not None
    ]
    records.sort(key=PeriodRecord.sort_key)

    unique: list[PeriodRecord] = []
    for record in records:
        if unique and unique[-1].start_date == record.start_date:
            logger.debug("Dropping duplicate entry for %s", record.start_date)
            continue
        unique.append(record)
    return unique
