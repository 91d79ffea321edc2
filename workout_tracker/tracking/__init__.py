"""Rest timing and live set tracking."""

from .rest_time_resolver import RestTimeResolver, RestTimeSource, get_rest_time_resolver
from .rest_timer import RestTimerService, TimerState, AdjustmentType
from .alerts import DeferredAlertScheduler, RecordingAlertScheduler
from .set_tracking import SetTrackingService

__all__ = [
    "RestTimeResolver",
    "RestTimeSource",
    "get_rest_time_resolver",
    "RestTimerService",
    "TimerState",
    "AdjustmentType",
    "DeferredAlertScheduler",
    "RecordingAlertScheduler",
    "SetTrackingService",
]
