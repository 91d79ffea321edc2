"""Tests for the progressive overload engine."""

import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace

from workout_tracker.analysis.features import HistoricalPoint
from workout_tracker.analysis.progressive_overload import (
    CONSERVATIVE_PREFERENCES,
    DeloadReason,
    ProgressionType,
    ProgressiveOverloadEngine,
)
from workout_tracker.sets import SetData

BENCH = SimpleNamespace(name="Bench Press", primary_muscle_group="chest", equipment="barbell")
PRESS = SimpleNamespace(name="Overhead Press", primary_muscle_group="shoulders", equipment="barbell")
CRUNCH = SimpleNamespace(name="Crunch", primary_muscle_group="core", equipment="bodyweight")
CALF_RAISE = SimpleNamespace(name="Calf Raise", primary_muscle_group="calves", equipment="machine")
START = datetime(2024, 3, 4, 18, 0)


def performed(set_number: int, target_reps: int, actual_reps: int, weight: float) -> SetData:
    set_data = SetData.new(set_number, target_reps, weight)
    set_data.update_actuals(actual_reps, weight)
    set_data.mark_completed()
    return set_data


def session(day: int, volume: float, key: str = "bench press") -> HistoricalPoint:
    return HistoricalPoint(key, START + timedelta(days=day), 100, volume, 10, 3, 1.0)


class TestNextSetRecommendations:
    """Per-set progression decisions."""

    def setup_method(self):
        self.engine = ProgressiveOverloadEngine()

    def test_bench_press_at_target_adds_five(self):
        last = [performed(n, 8, 8, 135) for n in range(1, 4)]

        sets = self.engine.recommend_next_sets(BENCH, last)

        assert [(s.set_number, s.target_reps, s.target_weight) for s in sets] == [
            (1, 8, 140), (2, 8, 140), (3, 8, 140)
        ]
        assert all(s.actual_reps == s.target_reps and s.actual_weight == s.target_weight for s in sets)
        assert not any(s.completed for s in sets)

    def test_defaults_without_history(self):
        barbell = self.engine.recommend_next_sets(BENCH, None)
        assert len(barbell) == 3
        assert all(s.target_reps == 10 and s.target_weight == 45 for s in barbell)

        core = self.engine.recommend_next_sets(CRUNCH, [])
        assert len(core) == 4
        assert all(s.target_reps == 15 and s.target_weight == 0 for s in core)

        calves = self.engine.recommend_next_sets(CALF_RAISE)
        assert len(calves) == 4
        assert calves[0].target_reps == 15

    def test_exceeding_target_increases_weight(self):
        progression = self.engine.evaluate_set(performed(1, 8, 10, 135), BENCH)
        assert progression.type == ProgressionType.INCREASE_WEIGHT
        assert progression.weight_increase == 5

    def test_high_ratio_alone_increases_weight(self):
        progression = self.engine.evaluate_set(performed(1, 5, 6, 135), BENCH)
        assert progression.type == ProgressionType.INCREASE_WEIGHT

    def test_close_to_target_adds_a_rep(self):
        sets = self.engine.recommend_next_sets(BENCH, [performed(1, 10, 9, 135)])
        assert sets[0].target_reps == 11
        assert sets[0].target_weight == 135

    def test_far_short_deloads(self):
        sets = self.engine.recommend_next_sets(BENCH, [performed(1, 10, 5, 200)])
        assert sets[0].target_weight == pytest.approx(180)
        assert sets[0].target_reps == 10

    def test_exactly_three_short_deloads(self):
        progression = self.engine.evaluate_set(performed(1, 12, 9, 100), BENCH)
        assert progression.type == ProgressionType.DELOAD

    def test_slightly_short_on_low_reps_maintains(self):
        sets = self.engine.recommend_next_sets(BENCH, [performed(1, 5, 3, 225)])
        assert sets[0].target_weight == 225
        assert sets[0].target_reps == 5

    def test_non_positive_target_maintains(self):
        progression = self.engine.evaluate_set(performed(1, 0, 5, 100), BENCH)
        assert progression.type == ProgressionType.MAINTAIN

    def test_increment_by_muscle_group(self):
        assert self.engine.recommend_next_sets(PRESS, [performed(1, 8, 8, 95)])[0].target_weight == 97.5
        assert self.engine.recommend_next_sets(CRUNCH, [performed(1, 15, 15, 0)])[0].target_weight == 0

    def test_conservative_preferences_halve_increments(self):
        sets = self.engine.recommend_next_sets(BENCH, [performed(1, 8, 8, 135)], CONSERVATIVE_PREFERENCES)
        assert sets[0].target_weight == 137.5

    def test_progression_uses_actual_weight(self):
        last = performed(1, 8, 8, 135)
        last.target_weight = 145
        assert self.engine.recommend_next_sets(BENCH, [last])[0].target_weight == 140


class TestProgressionSuggestion:
    """Whole-exercise suggestion for set tracking."""

    def setup_method(self):
        self.engine = ProgressiveOverloadEngine()

    def test_no_previous_sets(self):
        assert self.engine.suggest_progression(BENCH, None) is None
        assert self.engine.suggest_progression(BENCH, []) is None

    def test_unanimous_weight_increase(self):
        suggestion = self.engine.suggest_progression(BENCH, [performed(n, 8, 8, 135) for n in range(1, 4)])

        assert suggestion.type == ProgressionType.INCREASE_WEIGHT
        assert suggestion.new_weight == 140
        assert suggestion.new_reps is None
        assert suggestion.confidence == 1.0
        assert suggestion.reasoning

    def test_majority_wins(self):
        last = [performed(1, 8, 8, 135), performed(2, 8, 7, 135), performed(3, 8, 7, 135)]
        suggestion = self.engine.suggest_progression(BENCH, last)

        assert suggestion.type == ProgressionType.INCREASE_REPS
        assert suggestion.new_reps == 9
        assert suggestion.new_weight is None
        assert suggestion.confidence == pytest.approx(2 / 3)

    def test_tie_breaks_conservatively(self):
        last = [performed(1, 8, 8, 135), performed(2, 10, 5, 135)]
        suggestion = self.engine.suggest_progression(BENCH, last)

        assert suggestion.type == ProgressionType.DELOAD
        assert suggestion.new_weight == pytest.approx(121.5)
        assert suggestion.confidence == 0.5


class TestDeload:
    """Deload detection from volume trend."""

    def setup_method(self):
        self.engine = ProgressiveOverloadEngine()

    def test_needs_three_sessions(self):
        assert self.engine.suggest_deload(BENCH, [session(0, 1000), session(7, 500)]) is None

    def test_declining_volume(self):
        recommendation = self.engine.suggest_deload(
            BENCH, [session(0, 1000), session(7, 950), session(14, 850)]
        )

        assert recommendation.reason == DeloadReason.VOLUME_DECLINE
        assert recommendation.recommended_reduction == 0.2
        assert recommendation.duration_weeks == 1
        assert recommendation.volume_trend == pytest.approx(-0.15)

    def test_exactly_ten_percent_decline(self):
        assert self.engine.suggest_deload(BENCH, [session(0, 1000), session(7, 950), session(14, 900)]) is not None

    def test_small_decline(self):
        assert self.engine.suggest_deload(BENCH, [session(0, 1000), session(7, 980), session(14, 950)]) is None

    def test_only_last_three_sessions_count(self):
        history = [session(0, 5000), session(7, 1000), session(14, 1000), session(21, 1000)]
        assert self.engine.suggest_deload(BENCH, history) is None

    def test_sessions_sorted_and_filtered(self):
        history = [
            session(14, 800),
            session(0, 1000),
            session(10, 2000, key="squat"),
            session(7, 900),
        ]
        recommendation = self.engine.suggest_deload(BENCH, history)
        assert recommendation.volume_trend == pytest.approx(-0.2)

    def test_zero_baseline(self):
        assert self.engine.suggest_deload(BENCH, [session(0, 0), session(7, 100), session(14, 50)]) is None


class TestPerformanceAnalysis:
    """Session-over-session comparison."""

    def setup_method(self):
        self.engine = ProgressiveOverloadEngine()

    def test_baseline_without_previous(self):
        analysis = self.engine.analyze_performance([performed(1, 8, 8, 135)], None)

        assert analysis.volume_change == 0
        assert analysis.strength_gain == 0
        assert analysis.consistency_score == 1.0
        assert analysis.recommendation == "First workout - establish baseline"

    def test_volume_increase(self):
        previous = [performed(1, 10, 10, 100)]
        current = [performed(1, 10, 12, 100)]

        analysis = self.engine.analyze_performance(current, previous)

        assert analysis.volume_change == pytest.approx(20)
        assert analysis.recommendation == "Great progress! Volume increased by 20%"

    def test_volume_decrease(self):
        analysis = self.engine.analyze_performance([performed(1, 10, 5, 100)], [performed(1, 10, 10, 100)])
        assert analysis.volume_change == pytest.approx(-50)
        assert analysis.recommendation.startswith("Volume decreased")

    def test_strength_gain(self):
        analysis = self.engine.analyze_performance([performed(1, 10, 10, 105)], [performed(1, 10, 10, 100)])
        assert analysis.strength_gain == pytest.approx(5)
        assert analysis.recommendation.startswith("Good strength improvement")

    def test_consistency_and_maintenance(self):
        current = [performed(1, 10, 10, 100), SetData.new(2, 10, 100)]
        analysis = self.engine.analyze_performance(current, [performed(1, 10, 10, 100)])

        assert analysis.consistency_score == 0.5
        assert analysis.recommendation.startswith("Maintaining current level")
