"""Personal records and progress trends over an exercise's past instances."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from ..sets import ExerciseInstance, SetData, max_weight


@dataclass
class Record:
    value: float
    date: Optional[datetime]


@dataclass
class PersonalRecords:
    max_weight: Optional[Record] = None
    max_volume: Optional[Record] = None
    max_reps: Optional[Record] = None
    best_set: Optional[SetData] = None
    best_set_date: Optional[datetime] = None


@dataclass
class ProgressTrend:
    period_days: int
    volume_change: float  # fraction, 0.1 = +10%
    strength_change: float  # fraction of max weight
    consistency: float  # 0.0 - 1.0
    workout_count: int

    @staticmethod
    def format_change(change: float) -> str:
        percentage = int(change * 100)
        return f"+{percentage}%" if percentage > 0 else f"{percentage}%"

    @property
    def volume_change_formatted(self) -> str:
        return self.format_change(self.volume_change)

    @property
    def strength_change_formatted(self) -> str:
        return self.format_change(self.strength_change)

    @property
    def consistency_formatted(self) -> str:
        return f"{int(self.consistency * 100)}%"


def personal_records(instances: List[ExerciseInstance]) -> PersonalRecords:
    """Best weight, volume, reps and single set over completed sets."""
    records = PersonalRecords()
    best_score = 0.0

    for instance in instances:
        volume = instance.total_volume
        if volume > 0 and (records.max_volume is None or volume > records.max_volume.value):
            records.max_volume = Record(volume, instance.session_date)

        for set_data in instance.sets:
            if not set_data.completed:
                continue

            if set_data.actual_weight > 0 and (
                records.max_weight is None or set_data.actual_weight > records.max_weight.value
            ):
                records.max_weight = Record(set_data.actual_weight, instance.session_date)

            if set_data.actual_reps > 0 and (
                records.max_reps is None or set_data.actual_reps > records.max_reps.value
            ):
                records.max_reps = Record(set_data.actual_reps, instance.session_date)

            score = set_data.actual_weight * set_data.actual_reps
            if score > best_score:
                best_score = score
                records.best_set = set_data
                records.best_set_date = instance.session_date

    return records


def progress_trend(
    instances: List[ExerciseInstance],
    period_days: int = 30,
    as_of: Optional[datetime] = None,
) -> ProgressTrend:
    """Change between the first and last workout inside the period."""
    as_of = as_of or datetime.now()
    cutoff = as_of - timedelta(days=period_days)

    recent = sorted(
        (i for i in instances if i.session_date is not None and cutoff <= i.session_date <= as_of),
        key=lambda i: i.session_date,
    )

    if len(recent) < 2:
        return ProgressTrend(period_days, 0.0, 0.0, 0.0, len(recent))

    first, last = recent[0], recent[-1]

    volume_change = 0.0
    if first.total_volume > 0:
        volume_change = (last.total_volume - first.total_volume) / first.total_volume

    strength_change = 0.0
    first_max = max_weight(first.sets)
    if first_max > 0:
        strength_change = (max_weight(last.sets) - first_max) / first_max

    total_sets = sum(len(i.sets) for i in recent)
    done = sum(1 for i in recent for s in i.sets if s.completed)
    consistency = done / total_sets if total_sets else 0.0

    return ProgressTrend(period_days, volume_change, strength_change, consistency, len(recent))
