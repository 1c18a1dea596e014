"""Pydantic models for period entries and cycle insights."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import Field, field_validator, model_validator

from luna.cycle.engine import Insights
from luna.cycle.entries import Flow, SymptomTag
from luna.models.base import LunaBase, TimestampMixin

NOTES_MAX_LENGTH = 500


def _unique_symptoms(value: list[SymptomTag] | None) -> list[SymptomTag] | None:
    if value is not None and len(set(value)) != len(value):
        raise ValueError("symptoms must not contain duplicates")
    return value


# ---------- Period entries ----------

class PeriodEntryBase(LunaBase):
    start_date: date
    end_date: date | None = None
    flow: Flow = Flow.medium
    symptoms: list[SymptomTag] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    check_symptoms = field_validator("symptoms")(_unique_symptoms)

    @model_validator(mode="after")
    def check_end_not_before_start(self) -> "PeriodEntryBase":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        return self


class PeriodEntryCreate(PeriodEntryBase):
    pass


class PeriodEntryUpdate(LunaBase):
    start_date: date | None = None
    end_date: date | None = None
    flow: Flow | None = None
    symptoms: list[SymptomTag] | None = None
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    check_symptoms = field_validator("symptoms")(_unique_symptoms)


class PeriodEntryRead(PeriodEntryBase, TimestampMixin):
    entry_id: uuid.UUID
    user_id: uuid.UUID


class PeriodEntryPage(LunaBase):
    items: list[PeriodEntryRead]
    total: int
    offset: int
    limit: int


# ---------- Insights ----------

class InsightsRead(LunaBase):
    """Serialised cycle insights.  Averages are whole days; None means unavailable."""

    average_cycle_length: int | None = None
    average_period_length: int | None = None
    total_cycles: int = 0
    next_predicted_date: date | None = None
    predicted_ovulation_date: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    tips: list[str] = Field(default_factory=list)
    cycle_regularity: str
    cycle_lengths: list[int] = Field(default_factory=list)
    period_lengths: list[int] = Field(default_factory=list)

    @classmethod
    def from_insights(cls, insights: Insights) -> "InsightsRead":
        return cls.model_validate(insights.to_dict())
