"""Database module for the Workout Tracker engine."""

from .database import Database, get_db
from .models import Exercise, WorkoutSession, WorkoutExercise, RestTimeSetting
from .repository import WorkoutRepository, get_repository

__all__ = [
    "Database",
    "get_db",
    "Exercise",
    "WorkoutSession",
    "WorkoutExercise",
    "RestTimeSetting",
    "WorkoutRepository",
    "get_repository",
]
