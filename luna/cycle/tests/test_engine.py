"""Tests for the cycle-insight engine."""

from __future__ import annotations

import copy
import random
from datetime import date

import pytest

from luna.cycle.config_loader import _validate_and_build
from luna.cycle.engine import CycleInsightEngine, compute_insights, round_half_up, shift_date
from luna.cycle.entries import InvalidInputKind
from luna.cycle.tips import ONBOARDING_TIP
from luna.cycle.tests.conftest import build_history, make_entry
from luna.models.periods import PeriodEntryCreate


class TestScenarios:
    def test_two_entries(self, engine: CycleInsightEngine) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 5)),
            make_entry(date(2024, 1, 29), date(2024, 2, 2)),
        ]
        result = engine.compute_insights(entries).to_dict()
        assert result["averageCycleLength"] == 28
        assert result["averagePeriodLength"] == 5
        assert result["totalCycles"] == 1
        assert result["nextPredictedDate"] == "2024-02-26"

    def test_single_entry(self, engine: CycleInsightEngine) -> None:
        insights = engine.compute_insights([make_entry(date(2024, 1, 1), date(2024, 1, 5))])
        assert insights.average_cycle_length is None
        assert insights.average_period_length == 5
        assert insights.total_cycles == 0
        assert insights.next_predicted_date is None
        assert ONBOARDING_TIP in insights.tips
        assert insights.cycle_regularity == "insufficient_data"

    def test_empty_history(self, engine: CycleInsightEngine) -> None:
        result = engine.compute_insights([]).to_dict()
        assert result["averageCycleLength"] is None
        assert result["averagePeriodLength"] is None
        assert result["totalCycles"] == 0
        assert result["nextPredictedDate"] is None
        assert result["tips"] == [ONBOARDING_TIP]
        assert result["cycleLengths"] == []
        assert result["periodLengths"] == []

    def test_inverted_end_date_only_skips_period_length(
        self, engine: CycleInsightEngine
    ) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 5)),
            make_entry(date(2024, 1, 29), date(2024, 1, 20)),
            make_entry(date(2024, 2, 26), date(2024, 3, 1)),
        ]
        insights = engine.compute_insights(entries)
        assert insights.cycle_lengths == [28, 28]
        assert insights.total_cycles == 2
        assert insights.period_lengths == [5, 5]
        assert insights.average_period_length == 5


class TestAverages:
    def test_average_kept_precise_and_displayed_rounded(
        self, engine: CycleInsightEngine
    ) -> None:
        insights = engine.compute_insights(build_history([28, 29]))
        assert insights.average_cycle_length == 28.5
        assert insights.to_dict()["averageCycleLength"] == 29
        # 2024-02-27 + 29 days
        assert insights.next_predicted_date == date(2024, 3, 27)

    def test_ongoing_entry_counts_for_spacing_not_duration(
        self, engine: CycleInsightEngine
    ) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 4)),
            make_entry(date(2024, 1, 31)),
        ]
        insights = engine.compute_insights(entries)
        assert insights.cycle_lengths == [30]
        assert insights.period_lengths == [4]
        assert insights.next_predicted_date == date(2024, 3, 1)

    def test_only_ongoing_entries_leave_period_average_absent(
        self, engine: CycleInsightEngine
    ) -> None:
        entries = [make_entry(date(2024, 1, 1)), make_entry(date(2024, 1, 29))]
        result = engine.compute_insights(entries).to_dict()
        assert result["averagePeriodLength"] is None
        assert result["averageCycleLength"] == 28

    def test_single_day_period_has_length_one(self, engine: CycleInsightEngine) -> None:
        insights = engine.compute_insights([make_entry(date(2024, 5, 1), date(2024, 5, 1))])
        assert insights.period_lengths == [1]

    def test_prediction_anchors_on_latest_start(self, engine: CycleInsightEngine) -> None:
        entries = build_history([30, 26])
        insights = engine.compute_insights(entries)
        assert insights.average_cycle_length == 28
        # last start 2024-02-26 + 28 days
        assert insights.next_predicted_date == date(2024, 3, 25)

    @pytest.mark.parametrize("n", [2, 3, 5, 8])
    def test_total_cycles_is_entries_minus_one(
        self, engine: CycleInsightEngine, n: int
    ) -> None:
        insights = engine.compute_insights(build_history([28] * (n - 1)))
        assert insights.total_cycles == n - 1
        assert len(insights.cycle_lengths) == n - 1

    @pytest.mark.parametrize("value, expected", [(27.5, 28), (28.49, 28), (28.5, 29), (5.0, 5)])
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestDefensiveInput:
    def test_malformed_entries_are_skipped(self, engine: CycleInsightEngine) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 5)),
            {"startDate": "not-a-date", "endDate": "2024-01-10"},
            {"startDate": None},
            {},
            {"startDate": "2024-01-15", "flow": "torrential"},
            make_entry(date(2024, 1, 29), date(2024, 2, 2)),
        ]
        result = engine.compute_insights(entries).to_dict()
        assert result["totalCycles"] == 1
        assert result["averageCycleLength"] == 28

    def test_accepts_snake_case_models_and_timestamps(
        self, engine: CycleInsightEngine
    ) -> None:
        entries = [
            {"start_date": date(2024, 1, 1), "end_date": date(2024, 1, 5), "flow": "light"},
            PeriodEntryCreate(start_date=date(2024, 1, 29), end_date=date(2024, 2, 2)),
            {"startDate": "2024-02-26T00:00:00.000Z", "endDate": "2024-03-01T00:00:00.000Z"},
        ]
        insights = engine.compute_insights(entries)
        assert insights.cycle_lengths == [28, 28]
        assert insights.period_lengths == [5, 5, 5]

    def test_duplicate_start_dates_collapse(self, engine: CycleInsightEngine) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 5)),
            make_entry(date(2024, 1, 1), date(2024, 1, 3)),
            make_entry(date(2024, 1, 29), date(2024, 2, 2)),
        ]
        insights = engine.compute_insights(entries)
        assert insights.total_cycles == 1
        assert insights.cycle_lengths == [28]
        assert engine.compute_insights(list(reversed(entries))).to_dict() == insights.to_dict()

    @pytest.mark.parametrize(
        "bad_input",
        [
            None,
            42,
            "2024-01-01",
            b"entries",
            {"startDate": "2024-01-01"},
            [1, 2],
            ["2024-01-01"],
            [[date(2024, 1, 1)]],
            [make_entry(date(2024, 1, 1)), None],
            (e for e in []),
        ],
    )
    def test_structural_violations_raise(
        self, engine: CycleInsightEngine, bad_input: object
    ) -> None:
        with pytest.raises(InvalidInputKind):
            engine.compute_insights(bad_input)

    def test_invalid_input_kind_is_a_type_error(self) -> None:
        assert issubclass(InvalidInputKind, TypeError)

    def test_prediction_past_last_representable_date(self, engine: CycleInsightEngine) -> None:
        insights = engine.compute_insights(
            [{"startDate": "9999-12-01"}, {"startDate": "9999-12-29"}]
        )
        assert insights.average_cycle_length == 28
        assert insights.total_cycles == 1
        assert insights.next_predicted_date is None
        assert insights.predicted_ovulation_date is None
        assert insights.to_dict()["nextPredictedDate"] is None

    def test_fertile_window_before_first_representable_date(
        self, engine: CycleInsightEngine
    ) -> None:
        insights = engine.compute_insights(
            [{"startDate": "0001-01-01"}, {"startDate": "0001-01-03"}]
        )
        assert insights.next_predicted_date == date(1, 1, 5)
        assert insights.predicted_ovulation_date is None
        assert insights.fertile_window_start is None
        assert insights.fertile_window_end is None

    def test_shift_date(self) -> None:
        assert shift_date(date(2024, 1, 1), 28) == date(2024, 1, 29)
        assert shift_date(None, 28) is None
        assert shift_date(date.max, 1) is None
        assert shift_date(date.min, -1) is None


class TestDeterminism:
    def test_idempotent_and_input_untouched(self, engine: CycleInsightEngine) -> None:
        entries = build_history([27, 31, 29], symptoms=[("cramps",), (), ("cramps",), ("acne",)])
        snapshot = copy.deepcopy(entries)
        first = engine.compute_insights(entries)
        second = engine.compute_insights(entries)
        assert first == second
        assert first.to_dict() == second.to_dict()
        assert entries == snapshot

    def test_order_independent(self, engine: CycleInsightEngine) -> None:
        entries = build_history(
            [25, 33, 28, 30],
            symptoms=[("fatigue",), ("cramps", "fatigue"), (), ("cramps",), ("cramps",)],
        )
        expected = engine.compute_insights(entries).to_dict()
        rng = random.Random(7)
        for _ in range(10):
            shuffled = entries[:]
            rng.shuffle(shuffled)
            assert engine.compute_insights(shuffled).to_dict() == expected

    def test_module_shortcut_matches_engine(self, insight_config) -> None:
        entries = build_history([28, 28])
        assert compute_insights(entries, insight_config) == CycleInsightEngine(
            insight_config
        ).compute_insights(entries)


class TestRegularity:
    @pytest.mark.parametrize(
        "spacings, expected",
        [
            ([28, 28, 28], "regular"),
            ([26, 30], "regular"),
            ([24, 30], "slightly_irregular"),
            ([21, 35], "irregular"),
        ],
    )
    def test_regularity_bands(
        self, engine: CycleInsightEngine, spacings: list[int], expected: str
    ) -> None:
        assert engine.compute_insights(build_history(spacings)).cycle_regularity == expected


class TestFertility:
    def test_window_counts_back_from_next_period(self, engine: CycleInsightEngine) -> None:
        entries = [
            make_entry(date(2024, 1, 1), date(2024, 1, 5)),
            make_entry(date(2024, 1, 29), date(2024, 2, 2)),
        ]
        result = engine.compute_insights(entries).to_dict()
        assert result["nextPredictedDate"] == "2024-02-26"
        assert result["predictedOvulationDate"] == "2024-02-12"
        assert result["fertileWindowStart"] == "2024-02-12"
        assert result["fertileWindowEnd"] == "2024-02-16"

    def test_absent_without_prediction(self, engine: CycleInsightEngine) -> None:
        result = engine.compute_insights([make_entry(date(2024, 1, 1))]).to_dict()
        assert result["predictedOvulationDate"] is None
        assert result["fertileWindowStart"] is None
        assert result["fertileWindowEnd"] is None

    def test_offsets_come_from_config(self) -> None:
        config = _validate_and_build(
            {"fertility": {"ovulation_offset_days": 16, "window_end_offset_days": 12}}
        )
        insights = CycleInsightEngine(config).compute_insights(build_history([28]))
        assert insights.next_predicted_date == date(2024, 2, 26)
        assert insights.predicted_ovulation_date == date(2024, 2, 10)
        assert insights.fertile_window_end == date(2024, 2, 14)
