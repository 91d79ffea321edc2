"""
Rest Timer Module

Countdown state machine for the rest interval between sets.

    IDLE -> RUNNING -> {PAUSED, COMPLETED}
    PAUSED -> RUNNING
    RUNNING/PAUSED -> IDLE  (stop, skip)

The host drives the countdown by calling :meth:`RestTimerService.tick` once
per second. While the host is suspended no ticks are expected; on resumption
the real wall-clock delta is subtracted instead.
"""

import logging
import time
from enum import Enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from ..events import EventEmitter
from .alerts import REST_TIMER_ALERT_ID, DeferredAlertScheduler
from .rest_time_resolver import RestTimeSource

logger = logging.getLogger(__name__)


class TimerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class AdjustmentType(Enum):
    EXTENDED = "Extended"
    REDUCED = "Reduced"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class TimerAdjustment:
    """A manual change to the running timer.

    For SKIPPED entries ``original_remaining`` holds the planned total and
    ``adjusted_remaining`` the seconds actually rested.
    """
    type: AdjustmentType
    original_remaining: float
    adjusted_remaining: float
    timestamp: datetime

    @property
    def amount(self) -> float:
        return abs(self.adjusted_remaining - self.original_remaining)


class RestTimerService:
    """Rest timer with undoable adjustments and background continuity.

    Args:
        clock: Wall-clock source returning seconds since the epoch
        alerts: Deferred alert capability for completion while backgrounded
    """

    def __init__(self, clock: Callable[[], float] = time.time,
                 alerts: Optional[DeferredAlertScheduler] = None):
        self.clock = clock
        self.alerts = alerts or DeferredAlertScheduler()
        self.events = EventEmitter()
        self.logger = logging.getLogger(__name__)

        self.state = TimerState.IDLE
        self.remaining: float = 0.0
        self.total: float = 0.0
        self.source: Optional[RestTimeSource] = None
        self.last_source: Optional[RestTimeSource] = None
        self.adjustment_history: List[TimerAdjustment] = []
        self.in_foreground = True
        self.was_skipped = False

        self._manually_completed = False
        self._background_at: Optional[float] = None

    # Observables

    @property
    def is_active(self) -> bool:
        return self.state in (TimerState.RUNNING, TimerState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.state == TimerState.PAUSED

    @property
    def is_manually_completed(self) -> bool:
        return self.is_active and self._manually_completed

    @property
    def can_undo(self) -> bool:
        return bool(self.adjustment_history)

    @property
    def progress(self) -> float:
        """Fraction of the interval already elapsed (0.0 - 1.0)."""
        if self.total <= 0:
            return 0.0
        return min(1.0, max(0.0, 1.0 - self.remaining / self.total))

    @property
    def completion_percent(self) -> float:
        return self.progress * 100

    @property
    def formatted_remaining(self) -> str:
        seconds = int(self.remaining)
        return f"{seconds // 60}:{seconds % 60:02d}"

    @property
    def estimated_completion(self) -> Optional[datetime]:
        if self.state != TimerState.RUNNING or self.remaining <= 0:
            return None
        return datetime.fromtimestamp(self.clock() + self.remaining)

    def subscribe(self, topic: str, handler) -> Callable[[], None]:
        return self.events.subscribe(topic, handler)

    # Transitions

    def start(self, duration: float, source: Optional[RestTimeSource] = None, force_restart: bool = False):
        """Start a new rest interval of ``duration`` seconds."""
        if self.is_active and not force_restart:
            self.logger.debug("Timer already active - start ignored")
            return

        self._reset()

        duration = max(0.0, float(duration))
        self.total = duration
        self.remaining = duration
        self.state = TimerState.RUNNING
        self.source = source
        self.was_skipped = False
        self.adjustment_history.clear()

        if source is not None:
            self.last_source = source

        self._publish("started")

        if duration == 0:
            self._complete()
        else:
            self._recapture_background()

    def pause(self):
        if self.state != TimerState.RUNNING:
            return
        self._catch_up_background()
        if self.state != TimerState.RUNNING:
            return
        self.state = TimerState.PAUSED
        self._publish("paused")

    def resume(self):
        if self.state != TimerState.PAUSED:
            return
        self.state = TimerState.RUNNING
        if not self.in_foreground:
            self._capture_background()
        self._publish("resumed")

    def restart(self):
        """Restart the current interval with its total and source."""
        if not self.is_active:
            return
        self.start(self.total, source=self.source, force_restart=True)

    def stop(self):
        """Return to IDLE from any state."""
        was_running = self.state != TimerState.IDLE
        self._reset()
        if was_running:
            self._publish("stopped")

    def skip(self):
        """Abandon the interval before natural completion."""
        if not self.is_active:
            return

        planned = self.total
        rested = max(0.0, self.total - self.remaining)

        self._reset()
        self.was_skipped = True
        self.adjustment_history.append(TimerAdjustment(
            type=AdjustmentType.SKIPPED,
            original_remaining=planned,
            adjusted_remaining=rested,
            timestamp=self._now(),
        ))
        self._publish("skipped", planned=planned, rested=rested)

    def extend(self, seconds: float):
        """Add time to both remaining and total."""
        if not self.is_active or seconds <= 0:
            return
        if not self._settle_background():
            return

        original = self.remaining
        self.remaining += seconds
        self.total += seconds

        if self.remaining > 0:
            self._manually_completed = False

        self._record(AdjustmentType.EXTENDED, original, self.remaining)
        self._recapture_background()

    def reduce(self, seconds: float):
        """Remove time from remaining, floored at zero.

        Reaching zero this way leaves the timer active and stalled until
        :meth:`stop`; it does not fire the completion event.
        """
        if not self.is_active or seconds <= 0:
            return
        if not self._settle_background():
            return

        original = self.remaining
        self.remaining = max(0.0, self.remaining - seconds)

        if self.remaining <= 0:
            self.remaining = 0.0
            self._manually_completed = True

        self._record(AdjustmentType.REDUCED, original, self.remaining)
        self._recapture_background()

    def undo_last_adjustment(self) -> bool:
        """Reverse the most recent extend/reduce. Skips cannot be undone."""
        if not self.adjustment_history or not self.is_active:
            return False

        last = self.adjustment_history[-1]
        if last.type == AdjustmentType.SKIPPED:
            return False
        if not self._settle_background():
            return False

        if last.type == AdjustmentType.EXTENDED:
            amount = last.adjusted_remaining - last.original_remaining
            self.remaining = max(0.0, self.remaining - amount)
            self.total = max(self.total - amount, self.remaining)
            if self.remaining <= 0:
                self._manually_completed = True
        else:
            amount = last.original_remaining - last.adjusted_remaining
            self.remaining += amount
            if self.remaining > 0:
                self._manually_completed = False

        self.adjustment_history.pop()
        self._publish("adjusted", adjustment="undo", undone=last.type.value)
        self._recapture_background()
        return True

    def tick(self):
        """Advance the countdown by one second."""
        if self.state != TimerState.RUNNING or self._background_at is not None:
            return
        if self.remaining <= 0:
            # Stalled at zero after a manual reduction
            return

        self.remaining = max(0.0, self.remaining - 1)
        self._publish("tick")

        if self.remaining <= 0 and not self._manually_completed:
            self._complete()

    # Background continuity

    def enter_background(self, now: Optional[float] = None):
        """Host is being suspended; remember when."""
        self.in_foreground = False
        self._capture_background(now)

    def enter_foreground(self, now: Optional[float] = None):
        """Host resumed; subtract the wall-clock time spent suspended."""
        self.in_foreground = True
        self._catch_up_background(now)

    def _capture_background(self, now: Optional[float] = None):
        if self.state != TimerState.RUNNING or self._background_at is not None:
            return

        self._background_at = now if now is not None else self.clock()

        if not self._manually_completed and self.remaining > 0:
            self.alerts.schedule_deferred_alert(
                REST_TIMER_ALERT_ID,
                self.remaining,
                "Rest Timer Complete",
                "Time to start your next set!",
            )

    def _catch_up_background(self, now: Optional[float] = None):
        """Fold time spent suspended into ``remaining`` and drop the pending alert."""
        if self._background_at is None:
            return

        self.alerts.cancel_deferred_alert(REST_TIMER_ALERT_ID)
        now = now if now is not None else self.clock()
        elapsed = max(0.0, now - self._background_at)
        self._background_at = None

        if self.state != TimerState.RUNNING or self._manually_completed:
            return

        self.remaining = max(0.0, self.remaining - elapsed)
        self.logger.debug(f"Resumed after {elapsed:.1f}s in background, {self.remaining:.1f}s remaining")

        if self.remaining <= 0:
            self._complete()
        else:
            self._publish("tick")

    def _settle_background(self) -> bool:
        """Catch up before an adjustment. False if the interval ended meanwhile."""
        self._catch_up_background()
        return self.is_active

    def _recapture_background(self):
        # Re-arm the alert against the adjusted remaining time
        if not self.in_foreground:
            self._capture_background()

    # Internals

    def _complete(self):
        self.state = TimerState.COMPLETED
        self.remaining = 0.0
        self._background_at = None
        self._publish("completed")

        if not self.in_foreground:
            self.alerts.schedule_deferred_alert(
                REST_TIMER_ALERT_ID, 0, "Rest Timer Complete", "Time to start your next set!"
            )

    def _reset(self):
        self.state = TimerState.IDLE
        self.remaining = 0.0
        self.total = 0.0
        self._manually_completed = False
        if self._background_at is not None:
            self.alerts.cancel_deferred_alert(REST_TIMER_ALERT_ID)
            self._background_at = None

    def _record(self, adjustment_type: AdjustmentType, original: float, adjusted: float):
        self.adjustment_history.append(TimerAdjustment(
            type=adjustment_type,
            original_remaining=original,
            adjusted_remaining=adjusted,
            timestamp=self._now(),
        ))
        self._publish("adjusted", adjustment=adjustment_type.value)

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock())

    def _publish(self, topic: str, **payload):
        self.events.publish(
            topic,
            state=self.state,
            remaining=self.remaining,
            total=self.total,
            **payload,
        )
