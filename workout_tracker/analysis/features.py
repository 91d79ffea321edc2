"""
Feature Extraction Module

Reduces past exercise instances to historical points and turns a history of
points into the aggregate statistics consumed by the performance predictor.
Every function here is pure.
"""

import numpy as np
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..config import config
from ..sets import (
    SetData,
    average_reps,
    completion_rate,
    max_weight,
    total_volume,
)


@dataclass
class HistoricalPoint:
    """One past exercise instance reduced to summary values."""
    exercise_key: str
    date: datetime
    max_weight: float
    total_volume: float
    average_reps: float
    set_count: int
    completion_rate: float
    rest_times: List[int] = field(default_factory=list)

    @classmethod
    def from_sets(cls, exercise_key: str, when: datetime, sets: List[SetData]) -> "HistoricalPoint":
        return cls(
            exercise_key=exercise_key,
            date=when,
            max_weight=max_weight(sets),
            total_volume=total_volume(sets),
            average_reps=average_reps(sets),
            set_count=len(sets),
            completion_rate=completion_rate(sets),
            rest_times=[s.rest_time for s in sets if s.rest_time is not None],
        )


@dataclass
class PredictionFeatures:
    """Aggregate statistics over recent history plus the requested target."""
    target_weight: float
    target_reps: int
    recent_average_volume: float
    recent_average_weight: float
    recent_average_reps: float
    recent_completion_rate: float
    trend_multiplier: float
    days_since_last_workout: int
    workout_count: int


def has_enough_history(history: Optional[List[HistoricalPoint]]) -> bool:
    return history is not None and len(history) >= config.MIN_HISTORY_POINTS


def calendar_day(value) -> date:
    """Reduce a ``date`` or ``datetime`` to its calendar date."""
    return value.date() if isinstance(value, datetime) else value


def as_datetime(value) -> datetime:
    return value if isinstance(value, datetime) else datetime.combine(value, datetime.min.time())


def sort_history(history: List[HistoricalPoint]) -> List[HistoricalPoint]:
    return sorted(history, key=lambda point: as_datetime(point.date))


def recent_points(history: List[HistoricalPoint], window: Optional[int] = None) -> List[HistoricalPoint]:
    window = window or config.RECENT_WINDOW
    return sort_history(history)[-window:]


def calculate_trend_multiplier(history: List[HistoricalPoint]) -> float:
    """Relative volume change across the most recent trend window (0 if too short)."""
    if len(history) < config.TREND_WINDOW:
        return 0.0

    volumes = [point.total_volume for point in sort_history(history)[-config.TREND_WINDOW:]]
    first_volume, last_volume = volumes[0], volumes[-1]

    if first_volume <= 0:
        return 0.0

    return (last_volume - first_volume) / first_volume


def days_since_last_workout(history: List[HistoricalPoint], as_of: Optional[date] = None) -> int:
    """Calendar days between the most recent point and ``as_of`` (default today)."""
    if not history:
        return 0

    as_of = calendar_day(as_of or date.today())
    last_day = calendar_day(sort_history(history)[-1].date)
    return max(0, (as_of - last_day).days)


def calculate_rest_adjustment(days: int) -> float:
    """Probability adjustment for the gap since the last workout."""
    if days <= 0:
        return 0.0
    if days == 1:
        return 0.1
    if days == 2:
        return 0.05
    if days <= 7:
        return 0.0
    return -0.1


def extract_features(
    history: List[HistoricalPoint],
    target_weight: float,
    target_reps: int,
    as_of: Optional[date] = None,
) -> PredictionFeatures:
    """Compute prediction features from a history of at least one point."""
    recent = recent_points(history)

    return PredictionFeatures(
        target_weight=target_weight,
        target_reps=target_reps,
        recent_average_volume=float(np.mean([p.total_volume for p in recent])),
        recent_average_weight=float(np.mean([p.max_weight for p in recent])),
        recent_average_reps=float(np.mean([p.average_reps for p in recent])),
        recent_completion_rate=float(np.mean([p.completion_rate for p in recent])),
        trend_multiplier=calculate_trend_multiplier(recent),
        days_since_last_workout=days_since_last_workout(history, as_of),
        workout_count=len(history),
    )


def calculate_progression_rate(history: List[HistoricalPoint]) -> float:
    """Weight gained per week, counting only the intervals in which weight went up."""
    points = sort_history(history)
    if len(points) < 2:
        return 0.0

    total_gain = 0.0
    total_weeks = 0.0

    for previous, current in zip(points, points[1:]):
        gain = current.max_weight - previous.max_weight
        if gain > 0:
            total_gain += gain
            days = (calendar_day(current.date) - calendar_day(previous.date)).days
            total_weeks += days / 7.0

    return total_gain / total_weeks if total_weeks > 0 else 0.0


def calculate_volume_consistency(history: List[HistoricalPoint]) -> float:
    """1 minus the coefficient of variation of session volume, floored at 0."""
    if len(history) < 2:
        return 0.5

    volumes = np.array([point.total_volume for point in history], dtype=float)
    mean = volumes.mean()
    if mean <= 0:
        return 0.0

    coefficient_of_variation = volumes.std() / mean
    return float(max(0.0, 1.0 - coefficient_of_variation))
