"""Analysis module for performance prediction and progression."""

from .features import HistoricalPoint, PredictionFeatures, extract_features
from .performance_predictor import (
    PerformancePredictor,
    PerformancePrediction,
    ProgressionTimeline,
    RestTimePrediction,
)
from .progressive_overload import (
    ProgressiveOverloadEngine,
    ProgressionSuggestion,
    ProgressionType,
)
from .history import personal_records, progress_trend

__all__ = [
    "HistoricalPoint",
    "PredictionFeatures",
    "extract_features",
    "PerformancePredictor",
    "PerformancePrediction",
    "ProgressionTimeline",
    "RestTimePrediction",
    "ProgressiveOverloadEngine",
    "ProgressionSuggestion",
    "ProgressionType",
    "personal_records",
    "progress_trend",
]
