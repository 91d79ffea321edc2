"""Deferred alert capability used by the rest timer when the host is in the background."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

logger = logging.getLogger(__name__)

REST_TIMER_ALERT_ID = "restTimer"


class DeferredAlertScheduler:
    """Capability interface implemented by a platform adapter.

    The default implementation only logs, which is what a host without any
    notification mechanism gets.
    """

    def schedule_deferred_alert(self, identifier: str, delay_seconds: float, title: str, body: str):
        logger.debug(f"Alert '{identifier}' requested in {delay_seconds:.0f}s: {title}")

    def cancel_deferred_alert(self, identifier: str):
        logger.debug(f"Alert '{identifier}' cancelled")


@dataclass
class ScheduledAlert:
    identifier: str
    delay_seconds: float
    title: str
    body: str
    requested_at: datetime


class RecordingAlertScheduler(DeferredAlertScheduler):
    """Keeps pending alerts in memory so a host can poll them."""

    def __init__(self):
        self.pending: List[ScheduledAlert] = []
        self.cancelled: List[str] = []

    def schedule_deferred_alert(self, identifier: str, delay_seconds: float, title: str, body: str):
        # One pending alert per identifier
        self.pending = [a for a in self.pending if a.identifier != identifier]
        self.pending.append(ScheduledAlert(identifier, max(0.0, delay_seconds), title, body, datetime.now()))

    def cancel_deferred_alert(self, identifier: str):
        before = len(self.pending)
        self.pending = [a for a in self.pending if a.identifier != identifier]
        if len(self.pending) != before:
            self.cancelled.append(identifier)

    def get(self, identifier: str) -> Optional[ScheduledAlert]:
        return next((a for a in self.pending if a.identifier == identifier), None)
