"""Set-level data model shared by the timer, predictor and tracking services."""

import uuid
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, List, Optional

from .config import config


class MuscleGroup(Enum):
    """Muscle group categories used for increments and rest times."""
    CHEST = "chest"
    BACK = "back"
    LEGS = "legs"
    SHOULDERS = "shoulders"
    ARMS = "arms"
    CORE = "core"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "MuscleGroup":
        """Map a free-text muscle name onto a category (unknown maps to chest)."""
        if not name:
            return cls.CHEST

        aliases = {
            "chest": cls.CHEST, "upper chest": cls.CHEST, "lower chest": cls.CHEST,
            "back": cls.BACK, "upper back": cls.BACK, "lower back": cls.BACK, "lats": cls.BACK,
            "legs": cls.LEGS, "quadriceps": cls.LEGS, "hamstrings": cls.LEGS,
            "glutes": cls.LEGS, "calves": cls.LEGS,
            "shoulders": cls.SHOULDERS, "rear delts": cls.SHOULDERS,
            "arms": cls.ARMS, "biceps": cls.ARMS, "triceps": cls.ARMS, "forearms": cls.ARMS,
            "core": cls.CORE, "obliques": cls.CORE, "abs": cls.CORE,
        }
        return aliases.get(name.strip().lower(), cls.CHEST)


@dataclass
class SetData:
    """One planned/performed set of an exercise."""
    set_number: int
    target_reps: int = 10
    target_weight: float = 0.0
    actual_reps: int = 0
    actual_weight: float = 0.0
    completed: bool = False
    rest_time: Optional[int] = None  # seconds, overrides exercise/global rest
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None
    rpe: Optional[int] = None  # 1-10
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def new(cls, set_number: int, target_reps: int = 10, target_weight: float = 0.0) -> "SetData":
        """Create a planned set whose actuals mirror its targets."""
        return cls(
            set_number=set_number,
            target_reps=target_reps,
            target_weight=target_weight,
            actual_reps=target_reps,
            actual_weight=target_weight,
        )

    @property
    def volume(self) -> float:
        return self.actual_reps * self.actual_weight

    @property
    def is_completed(self) -> bool:
        return self.completed and self.actual_reps > 0

    def mark_completed(self, when: Optional[datetime] = None):
        self.completed = True
        self.timestamp = when or datetime.now()

    def update_actuals(self, reps: int, weight: float):
        self.actual_reps = reps
        self.actual_weight = weight

    def copy(self) -> "SetData":
        return replace(self)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SetData):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


# Set list helpers

def completed_sets(sets: List[SetData]) -> List[SetData]:
    return [s for s in sets if s.is_completed]


def total_volume(sets: List[SetData]) -> float:
    """Sum of volume across completed sets."""
    return sum(s.volume for s in completed_sets(sets))


def completion_rate(sets: List[SetData]) -> float:
    if not sets:
        return 0.0
    return len(completed_sets(sets)) / len(sets)


def average_reps(sets: List[SetData]) -> float:
    done = completed_sets(sets)
    if not done:
        return 0.0
    return sum(s.actual_reps for s in done) / len(done)


def average_weight(sets: List[SetData]) -> float:
    done = completed_sets(sets)
    if not done:
        return 0.0
    return sum(s.actual_weight for s in done) / len(done)


def max_weight(sets: List[SetData]) -> float:
    return max((s.actual_weight for s in sets), default=0.0)


def clamp_weight(weight: float) -> float:
    """Bound a typed weight to 0 - MAX_WEIGHT_INPUT."""
    return min(max(0.0, float(weight)), config.MAX_WEIGHT_INPUT)


def clamp_reps(reps: int, minimum: int = 0) -> int:
    return min(max(minimum, int(reps)), config.MAX_REPS_INPUT)


def clamp_rpe(rpe: int) -> int:
    return min(max(1, int(rpe)), 10)


def renumber(sets: List[SetData]) -> List[SetData]:
    """Make set numbers contiguous and 1-based, in list order."""
    for i, set_data in enumerate(sets):
        set_data.set_number = i + 1
    return sets


@dataclass
class ExerciseInstance:
    """Ordered sets for one exercise within one session."""
    workout_exercise_id: Optional[int]
    exercise: Any  # Exercise taxonomy (name, primary_muscle_group, equipment)
    session_date: Optional[datetime]
    sets: List[SetData] = field(default_factory=list)

    @property
    def exercise_key(self) -> str:
        return exercise_key(self.exercise)

    @property
    def total_volume(self) -> float:
        return total_volume(self.sets)

    @property
    def all_sets_completed(self) -> bool:
        return bool(self.sets) and all(s.completed for s in self.sets)


def exercise_key(exercise: Any) -> str:
    """Stable identity of an exercise for configuration and history lookups."""
    if exercise is None:
        return ""
    if isinstance(exercise, str):
        return exercise.strip().lower()
    return (getattr(exercise, "name", None) or "").strip().lower()
