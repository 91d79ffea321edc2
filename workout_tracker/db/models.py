"""Database models for exercises, workout sessions and rest-time settings."""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import declarative_base, relationship

from ..sets import SetData, exercise_key
from .codec import sets_from_json, sets_to_json

Base = declarative_base()


class Exercise(Base):
    """Exercise taxonomy entry."""

    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    primary_muscle_group = Column(String(50))  # chest, quadriceps, biceps, core, ...
    equipment = Column(String(50))  # barbell, dumbbell, bodyweight, ...
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def key(self) -> str:
        return exercise_key(self)

    def __repr__(self):
        return f"<Exercise(name={self.name}, muscle_group={self.primary_muscle_group}, equipment={self.equipment})>"


class WorkoutSession(Base):
    """One training session."""

    __tablename__ = "workout_sessions"

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    date = Column(DateTime, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    exercises = relationship(
        "WorkoutExercise",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="WorkoutExercise.position",
    )

    def __repr__(self):
        return f"<WorkoutSession(name={self.name}, date={self.date})>"


class WorkoutExercise(Base):
    """An exercise within a session, carrying its set list."""

    __tablename__ = "workout_exercises"

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey("workout_sessions.id"), nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercises.id"), nullable=False)
    position = Column(Integer, default=0)

    # Legacy single-value tracking
    sets = Column(Integer, default=3)
    reps = Column(Integer, default=10)
    weight = Column(Float, default=0.0)

    # Per-set tracking
    set_data = Column(Text)  # JSON list of sets
    is_using_enhanced_tracking = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = relationship("WorkoutSession", back_populates="exercises")
    exercise = relationship("Exercise")

    def get_sets(self) -> List[SetData]:
        """Decode the stored set list."""
        return sets_from_json(self.set_data)

    def set_sets(self, sets: List[SetData]):
        """Encode and store a set list."""
        self.set_data = sets_to_json(sets)
        self.is_using_enhanced_tracking = True

    def enable_enhanced_tracking(self) -> List[SetData]:
        """Convert legacy sets/reps/weight into one set per declared count."""
        if self.is_using_enhanced_tracking:
            return self.get_sets()

        safe_sets = max(1, self.sets or 0)
        safe_reps = max(1, self.reps or 0)
        safe_weight = max(0.0, self.weight or 0.0)

        converted = [
            SetData.new(set_number, target_reps=safe_reps, target_weight=safe_weight)
            for set_number in range(1, safe_sets + 1)
        ]
        self.set_sets(converted)
        return converted

    def __repr__(self):
        return f"<WorkoutExercise(session_id={self.session_id}, exercise_id={self.exercise_id})>"


class RestTimeSetting(Base):
    """Persisted rest-time configuration (global default and exercise overrides)."""

    __tablename__ = "rest_time_settings"

    id = Column(Integer, primary_key=True)
    key = Column(String(255), unique=True, nullable=False)  # "global" or "exercise:<key>"
    seconds = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<RestTimeSetting(key={self.key}, seconds={self.seconds})>"
