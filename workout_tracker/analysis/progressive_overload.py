"""
Progressive Overload Module

Turns last-session per-set outcomes into next-session targets, a single
progression suggestion and deload signals.
"""

import logging
from collections import Counter
from enum import Enum
from dataclasses import dataclass
from typing import Any, List, Optional

from ..config import config
from ..sets import MuscleGroup, SetData, exercise_key, max_weight, total_volume
from .features import HistoricalPoint, sort_history

logger = logging.getLogger(__name__)


class ProgressionType(Enum):
    INCREASE_WEIGHT = "increase_weight"
    INCREASE_REPS = "increase_reps"
    MAINTAIN = "maintain"
    DELOAD = "deload"


# Most conservative first; used to break ties between per-set decisions
CONSERVATIVE_ORDER = [
    ProgressionType.DELOAD,
    ProgressionType.MAINTAIN,
    ProgressionType.INCREASE_REPS,
    ProgressionType.INCREASE_WEIGHT,
]

SUGGESTION_REASONING = {
    ProgressionType.INCREASE_WEIGHT: "You completed all sets last time. Ready for more weight!",
    ProgressionType.INCREASE_REPS: "You're doing well. Try adding one more rep before increasing weight.",
    ProgressionType.MAINTAIN: "Keep working at this weight until you can complete all sets.",
    ProgressionType.DELOAD: "You struggled last time. Try reducing the weight to build back up.",
}


@dataclass(frozen=True)
class ProgressionPreferences:
    large_increment: float  # chest, back, legs
    small_increment: float  # shoulders, arms
    bodyweight_increment: float  # core
    conservative_mode: bool = False


DEFAULT_PREFERENCES = ProgressionPreferences(
    large_increment=config.LARGE_INCREMENT,
    small_increment=config.SMALL_INCREMENT,
    bodyweight_increment=config.BODYWEIGHT_INCREMENT,
)

CONSERVATIVE_PREFERENCES = ProgressionPreferences(
    large_increment=config.LARGE_INCREMENT / 2,
    small_increment=config.SMALL_INCREMENT / 2,
    bodyweight_increment=config.BODYWEIGHT_INCREMENT / 2,
    conservative_mode=True,
)


@dataclass
class Progression:
    """Decision for a single set."""
    type: ProgressionType
    weight_increase: float = 0.0
    rep_increase: int = 0


@dataclass
class ProgressionSuggestion:
    type: ProgressionType
    new_weight: Optional[float]
    new_reps: Optional[int]
    confidence: float
    reasoning: str


class DeloadReason(Enum):
    VOLUME_DECLINE = "volume_decline"
    STRENGTH_PLATEAU = "strength_plateau"
    FORM_BREAKDOWN = "form_breakdown"
    FATIGUE = "fatigue"


@dataclass
class DeloadRecommendation:
    reason: DeloadReason
    recommended_reduction: float  # fraction of volume, 0.2 = 20%
    duration_weeks: int
    volume_trend: float


@dataclass
class PerformanceAnalysis:
    volume_change: float  # percent
    strength_gain: float  # percent
    consistency_score: float  # 0.0 - 1.0
    recommendation: str


def weight_increment(muscle_group: MuscleGroup, preferences: ProgressionPreferences) -> float:
    if muscle_group in (MuscleGroup.CHEST, MuscleGroup.BACK, MuscleGroup.LEGS):
        return preferences.large_increment
    if muscle_group in (MuscleGroup.SHOULDERS, MuscleGroup.ARMS):
        return preferences.small_increment
    return preferences.bodyweight_increment


def _lower(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def default_set_count(exercise: Any) -> int:
    return 4 if _lower(getattr(exercise, "primary_muscle_group", None)) in ("core", "calves") else 3


def default_reps(exercise: Any) -> int:
    return 15 if _lower(getattr(exercise, "primary_muscle_group", None)) in ("core", "calves") else 10


def default_weight(exercise: Any) -> float:
    if _lower(getattr(exercise, "equipment", None)) == "bodyweight":
        return 0.0
    return config.BAR_WEIGHT


def volume_trend(points: List[HistoricalPoint]) -> Optional[float]:
    """Relative change from the first to the last point's volume (None if undefined)."""
    if len(points) < 2:
        return 0.0
    first, last = points[0].total_volume, points[-1].total_volume
    if first <= 0:
        return None
    return (last - first) / first


class ProgressiveOverloadEngine:
    """Rule engine for next-session loading."""

    def __init__(self, preferences: Optional[ProgressionPreferences] = None):
        self.preferences = preferences or DEFAULT_PREFERENCES
        self.logger = logging.getLogger(__name__)

    def recommend_next_sets(
        self,
        exercise: Any,
        last_session_sets: Optional[List[SetData]] = None,
        preferences: Optional[ProgressionPreferences] = None,
    ) -> List[SetData]:
        """
        Generate next-session sets for an exercise.

        Args:
            exercise: Exercise taxonomy (primary_muscle_group, equipment)
            last_session_sets: Sets from the previous session, if any
            preferences: Increment preferences (engine default if omitted)

        Returns:
            New planned sets with actuals mirroring targets
        """
        preferences = preferences or self.preferences

        if not last_session_sets:
            reps = default_reps(exercise)
            weight = default_weight(exercise)
            return [SetData.new(n, reps, weight) for n in range(1, default_set_count(exercise) + 1)]

        recommendations = []
        for index, last_set in enumerate(last_session_sets):
            progression = self.evaluate_set(last_set, exercise, preferences)
            recommendations.append(self._apply(index + 1, last_set, progression))

        return recommendations

    def evaluate_set(
        self,
        last_set: SetData,
        exercise: Any,
        preferences: Optional[ProgressionPreferences] = None,
    ) -> Progression:
        """Decide the progression for one set from its completion ratio."""
        preferences = preferences or self.preferences

        if last_set.target_reps <= 0:
            return Progression(ProgressionType.MAINTAIN)

        ratio = last_set.actual_reps / last_set.target_reps
        muscle_group = MuscleGroup.from_name(getattr(exercise, "primary_muscle_group", None))
        increment = weight_increment(muscle_group, preferences)

        if ratio >= 1.2 or last_set.actual_reps >= last_set.target_reps + 2:
            return Progression(ProgressionType.INCREASE_WEIGHT, weight_increase=increment)

        if 1.0 <= ratio < 1.2:
            return Progression(ProgressionType.INCREASE_WEIGHT, weight_increase=increment)

        if 0.8 <= ratio < 1.0:
            return Progression(ProgressionType.INCREASE_REPS, rep_increase=1)

        if last_set.target_reps - last_set.actual_reps >= 3:
            return Progression(ProgressionType.DELOAD)

        return Progression(ProgressionType.MAINTAIN)

    def suggest_progression(self, exercise: Any, last_session_sets: Optional[List[SetData]]) -> Optional[ProgressionSuggestion]:
        """Collapse per-set decisions into one suggestion for the whole exercise."""
        if not last_session_sets:
            return None

        decisions = [(s, self.evaluate_set(s, exercise)) for s in last_session_sets]
        counts = Counter(progression.type for _, progression in decisions)
        top = max(counts.values())
        chosen = next(t for t in CONSERVATIVE_ORDER if counts.get(t) == top)

        # Heaviest set with the chosen decision drives the new targets
        last_set, progression = max(
            ((s, p) for s, p in decisions if p.type == chosen),
            key=lambda pair: pair[0].actual_weight,
        )
        recommended = self._apply(last_set.set_number, last_set, progression)

        new_weight = None
        new_reps = None
        if chosen in (ProgressionType.INCREASE_WEIGHT, ProgressionType.DELOAD):
            new_weight = recommended.target_weight
        elif chosen == ProgressionType.INCREASE_REPS:
            new_reps = recommended.target_reps

        return ProgressionSuggestion(
            type=chosen,
            new_weight=new_weight,
            new_reps=new_reps,
            confidence=top / len(decisions),
            reasoning=SUGGESTION_REASONING[chosen],
        )

    def suggest_deload(self, exercise: Any, recent_sessions: List[HistoricalPoint]) -> Optional[DeloadRecommendation]:
        """Recommend a deload when volume fell over the last three sessions."""
        key = exercise_key(exercise)
        points = sort_history([p for p in recent_sessions if not key or p.exercise_key == key])

        if len(points) < 3:
            return None

        trend = volume_trend(points[-3:])
        if trend is None:
            self.logger.debug(f"No volume baseline for {key}, skipping deload check")
            return None

        if trend <= config.DELOAD_VOLUME_THRESHOLD:
            return DeloadRecommendation(
                reason=DeloadReason.VOLUME_DECLINE,
                recommended_reduction=config.DELOAD_VOLUME_REDUCTION,
                duration_weeks=config.DELOAD_DURATION_WEEKS,
                volume_trend=trend,
            )

        return None

    def analyze_performance(
        self,
        current_sets: List[SetData],
        previous_sets: Optional[List[SetData]] = None,
    ) -> PerformanceAnalysis:
        """Compare a session against the previous one for the same exercise."""
        if not previous_sets:
            return PerformanceAnalysis(
                volume_change=0.0,
                strength_gain=0.0,
                consistency_score=1.0,
                recommendation="First workout - establish baseline",
            )

        current_volume = total_volume(current_sets)
        previous_volume = total_volume(previous_sets)
        volume_change = (current_volume - previous_volume) / previous_volume * 100 if previous_volume > 0 else 0.0

        previous_max = max_weight(previous_sets)
        strength_gain = (max_weight(current_sets) - previous_max) / previous_max * 100 if previous_max > 0 else 0.0

        completed = sum(1 for s in current_sets if s.completed)
        consistency = completed / max(len(current_sets), 1)

        if volume_change > 10:
            recommendation = f"Great progress! Volume increased by {int(volume_change)}%"
        elif volume_change < -10:
            recommendation = "Volume decreased. Consider reducing weight or adding rest."
        elif strength_gain > 0:
            recommendation = "Good strength improvement! Keep progressing gradually."
        else:
            recommendation = "Maintaining current level. Focus on form and consistency."

        return PerformanceAnalysis(
            volume_change=volume_change,
            strength_gain=strength_gain,
            consistency_score=consistency,
            recommendation=recommendation,
        )

    def _apply(self, set_number: int, last_set: SetData, progression: Progression) -> SetData:
        weight = last_set.actual_weight
        reps = last_set.target_reps

        if progression.type == ProgressionType.INCREASE_WEIGHT:
            weight += progression.weight_increase
        elif progression.type == ProgressionType.INCREASE_REPS:
            reps += progression.rep_increase
        elif progression.type == ProgressionType.DELOAD:
            weight *= config.DELOAD_FACTOR

        return SetData.new(set_number, reps, weight)
