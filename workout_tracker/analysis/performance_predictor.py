"""
Performance Prediction Module

Rule-based prediction of next-session performance from an exercise's history.
Every score is a named function of the extracted features.

Provides:
- Success probability and predicted reps for a target load
- Progression timeline toward a target weight
- Optimal rest time between sets
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import config
from ..sets import MuscleGroup, SetData, exercise_key
from .features import (
    HistoricalPoint,
    PredictionFeatures,
    calculate_progression_rate,
    calculate_rest_adjustment,
    calculate_volume_consistency,
    extract_features,
    has_enough_history,
)

logger = logging.getLogger(__name__)

WEIGHT_DIFFICULTY_K = 0.5
REPS_DIFFICULTY_K = 0.3
TREND_WEIGHT = 0.2


@dataclass
class PerformancePrediction:
    predicted_reps: int
    predicted_weight: float
    success_probability: float
    confidence: float
    reasoning: str


@dataclass
class ProgressionMilestone:
    weight: float
    estimated_week: int
    confidence: float


@dataclass
class ProgressionTimeline:
    target_weight: float
    estimated_weeks: Optional[int]
    confidence: float
    milestones: List[ProgressionMilestone] = field(default_factory=list)
    recommendation: str = ""


@dataclass
class RestTimePrediction:
    recommended_seconds: int
    confidence: float
    reasoning: str


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def difficulty_factor(target: float, recent_average: float) -> float:
    """Ratio of target to recent average; neutral (1.0) when there is no average."""
    if recent_average <= 0:
        return 1.0
    return target / recent_average


def difficulty_adjustment(factor: float, k: float) -> float:
    return max(0.0, 1.0 - (factor - 1.0) * k)


def success_probability(features: PredictionFeatures) -> float:
    """Probability of completing the target, in [0, 1]."""
    weight_factor = difficulty_factor(features.target_weight, features.recent_average_weight)
    reps_factor = difficulty_factor(features.target_reps, features.recent_average_reps)

    base = clamp01(
        features.recent_completion_rate
        + features.trend_multiplier * TREND_WEIGHT
        + calculate_rest_adjustment(features.days_since_last_workout)
    )
    probability = (
        base
        * difficulty_adjustment(weight_factor, WEIGHT_DIFFICULTY_K)
        * difficulty_adjustment(reps_factor, REPS_DIFFICULTY_K)
    )
    # Easier-than-usual targets push the adjustments above 1
    return clamp01(probability)


def prediction_confidence(workout_count: int, completion_rate: float, trend_strength: float) -> float:
    """Mean of data-volume, completion and trend-strength scores."""
    data_score = clamp01(workout_count / 10.0)
    completion_score = clamp01(completion_rate)
    trend_score = clamp01(trend_strength * 2.0)
    return (data_score + completion_score + trend_score) / 3.0


def prediction_reasoning(probability: float, weight_factor: float, trend: float) -> str:
    reasons = []

    if probability > 0.8:
        reasons.append("High success probability based on recent performance")
    elif probability < 0.5:
        reasons.append("Challenging target based on current progression")

    if weight_factor > 1.2:
        reasons.append("Weight increase is above typical progression")

    if trend > 0.1:
        reasons.append("Recent upward trend supports progression")
    elif trend < -0.1:
        reasons.append("Recent decline suggests more conservative approach")

    return ". ".join(reasons) if reasons else "Prediction based on historical performance patterns"


def timeline_recommendation(confidence: float, weeks: int) -> str:
    if confidence > 0.8:
        return "High confidence prediction. Stay consistent with current training."
    elif confidence > 0.6:
        return "Moderate confidence. Consider tracking form quality and recovery."
    elif weeks > 52:
        return "Long-term goal. Break into smaller milestones and reassess regularly."
    return "Low confidence. More training data needed for accurate prediction."


def generate_milestones(current_weight: float, target_weight: float, rate: float) -> List[ProgressionMilestone]:
    """Weekly milestones stepping by ``rate``; the last one lands exactly on the target."""
    milestones = []
    weight = current_weight
    week = 0

    while weight < target_weight:
        weight = min(weight + rate, target_weight)
        week += 1
        milestones.append(ProgressionMilestone(
            weight=weight,
            estimated_week=week,
            confidence=max(0.3, 1.0 - week * 0.02),
        ))

    return milestones


def base_rest_time(muscle_group: Optional[str]) -> int:
    return config.get_muscle_group_rest_time(MuscleGroup.from_name(muscle_group).value)


def rep_ratios(sets: List[SetData]) -> List[float]:
    return [s.actual_reps / s.target_reps for s in sets if s.target_reps > 0]


def fatigue_level(previous_sets: List[SetData]) -> float:
    """Relative drop in rep completion from the first to the last set."""
    ratios = rep_ratios(previous_sets)
    if len(ratios) < 2 or ratios[0] <= 0:
        return 0.0
    return max(0.0, (ratios[0] - ratios[-1]) / ratios[0])


class PerformancePredictor:
    """
    Rule-based predictor over an exercise's historical points.

    History is passed in explicitly or read through the repository. Every
    public method returns None instead of raising when data is insufficient
    or inputs are invalid.
    """

    def __init__(self, repository=None, resolver=None):
        """Initialize the performance predictor."""
        self.repository = repository
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

    def predict_next_performance(
        self,
        exercise: Any,
        target_weight: float,
        target_reps: int,
        history: Optional[List[HistoricalPoint]] = None,
        as_of: Optional[date] = None,
    ) -> Optional[PerformancePrediction]:
        """
        Predict how the next session at a target load will go.

        Args:
            exercise: Exercise taxonomy entry or name
            target_weight: Planned weight
            target_reps: Planned reps per set
            history: Historical points (loaded from the store if omitted)
            as_of: Date of the planned session (default today)

        Returns:
            Prediction, or None with insufficient history or invalid targets
        """
        if target_weight <= 0 or target_reps <= 0:
            self.logger.debug(f"Ignoring invalid target {target_weight}x{target_reps}")
            return None

        history = self._history(exercise, history)
        if not has_enough_history(history):
            return None

        features = extract_features(history, target_weight, target_reps, as_of)
        probability = success_probability(features)

        return PerformancePrediction(
            predicted_reps=int(round(target_reps * probability)),
            predicted_weight=target_weight,
            success_probability=probability,
            confidence=prediction_confidence(
                features.workout_count,
                features.recent_completion_rate,
                abs(features.trend_multiplier),
            ),
            reasoning=prediction_reasoning(
                probability,
                difficulty_factor(target_weight, features.recent_average_weight),
                features.trend_multiplier,
            ),
        )

    def predict_progression_timeline(
        self,
        exercise: Any,
        target_weight: float,
        current_weight: float,
        history: Optional[List[HistoricalPoint]] = None,
    ) -> Optional[ProgressionTimeline]:
        """
        Estimate how many weeks it takes to reach a target weight.

        Returns:
            Timeline, a zero-confidence message-only timeline when no
            progression has been recorded, or None with insufficient history
        """
        if target_weight <= 0 or current_weight < 0:
            return None

        history = self._history(exercise, history)
        if not has_enough_history(history):
            return None

        rate = calculate_progression_rate(history)
        if rate <= 0:
            return ProgressionTimeline(
                target_weight=target_weight,
                estimated_weeks=None,
                confidence=0.0,
                milestones=[],
                recommendation="Need more consistent training data to predict progression",
            )

        confidence = (
            clamp01(len(history) / 10.0)
            + calculate_volume_consistency(history)
            + 1.0  # progression recorded
        ) / 3.0

        weight_difference = target_weight - current_weight
        if weight_difference <= 0:
            return ProgressionTimeline(
                target_weight=target_weight,
                estimated_weeks=0,
                confidence=confidence,
                milestones=[],
                recommendation="Target already reached. Set a new goal.",
            )

        estimated_weeks = math.ceil(weight_difference / rate)

        return ProgressionTimeline(
            target_weight=target_weight,
            estimated_weeks=estimated_weeks,
            confidence=confidence,
            milestones=generate_milestones(current_weight, target_weight, rate),
            recommendation=timeline_recommendation(confidence, estimated_weeks),
        )

    def predict_optimal_rest_time(
        self,
        exercise: Any,
        current_set: SetData,
        previous_sets: Optional[List[SetData]] = None,
    ) -> Optional[RestTimePrediction]:
        """Recommend rest before ``current_set`` given the sets already done this session."""
        if current_set is None:
            return None

        if not previous_sets:
            seconds = self._resolver().resolve(current_set, exercise)
            return RestTimePrediction(
                recommended_seconds=int(seconds),
                confidence=0.5,
                reasoning="Default rest time for exercise",
            )

        muscle_group = getattr(exercise, "primary_muscle_group", None)
        fatigue = fatigue_level(previous_sets)
        weight = max(0.0, current_set.target_weight)

        recommended = base_rest_time(muscle_group) + fatigue * 30 + (weight / 100.0) * 15
        clamped = int(max(config.MIN_REST_TIME, min(config.MAX_REST_TIME, recommended)))

        return RestTimePrediction(
            recommended_seconds=clamped,
            confidence=0.7,
            reasoning="Based on exercise type, fatigue level, and weight",
        )

    def _history(self, exercise: Any, history: Optional[List[HistoricalPoint]]) -> Optional[List[HistoricalPoint]]:
        if history is not None:
            key = exercise_key(exercise)
            # Points carry their exercise key; drop any that belong elsewhere
            return [p for p in history if not key or not p.exercise_key or p.exercise_key == key]

        repository = self.repository
        if repository is None:
            from ..db.repository import get_repository
            repository = get_repository()

        try:
            return repository.get_history(exercise)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to load history for {exercise_key(exercise)}: {e}")
            return None

    def _resolver(self):
        if self.resolver is None:
            from ..tracking.rest_time_resolver import get_rest_time_resolver
            self.resolver = get_rest_time_resolver()
        return self.resolver
