"""Configuration management for the Workout Tracker engine."""

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./workout_tracker.db")

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Rest Timer
    DEFAULT_REST_TIME: int = int(os.getenv("DEFAULT_REST_TIME", "90"))  # seconds
    MIN_REST_TIME: int = int(os.getenv("MIN_REST_TIME", "60"))  # floor for predicted rest
    MAX_REST_TIME: int = int(os.getenv("MAX_REST_TIME", "300"))  # ceiling for predicted rest

    # Base rest times per muscle group (seconds)
    MUSCLE_GROUP_REST_TIMES = {
        "chest": int(os.getenv("REST_TIME_CHEST", "120")),
        "back": int(os.getenv("REST_TIME_BACK", "120")),
        "legs": int(os.getenv("REST_TIME_LEGS", "120")),
        "shoulders": int(os.getenv("REST_TIME_SHOULDERS", "90")),
        "arms": int(os.getenv("REST_TIME_ARMS", "90")),
        "core": int(os.getenv("REST_TIME_CORE", "60")),
    }

    # Prediction
    MIN_HISTORY_POINTS: int = int(os.getenv("MIN_HISTORY_POINTS", "2"))
    RECENT_WINDOW: int = int(os.getenv("RECENT_WINDOW", "5"))  # points averaged for recent features
    TREND_WINDOW: int = int(os.getenv("TREND_WINDOW", "3"))  # points used for the volume trend

    # Progressive Overload
    LARGE_INCREMENT: float = float(os.getenv("LARGE_INCREMENT", "5.0"))  # chest, back, legs
    SMALL_INCREMENT: float = float(os.getenv("SMALL_INCREMENT", "2.5"))  # shoulders, arms
    BODYWEIGHT_INCREMENT: float = float(os.getenv("BODYWEIGHT_INCREMENT", "0.0"))  # core
    BAR_WEIGHT: float = float(os.getenv("BAR_WEIGHT", "45.0"))  # empty barbell
    DELOAD_FACTOR: float = float(os.getenv("DELOAD_FACTOR", "0.9"))  # 10% weight reduction

    # Input limits for values typed during a session
    MAX_WEIGHT_INPUT: float = float(os.getenv("MAX_WEIGHT_INPUT", "500.0"))
    MAX_REPS_INPUT: int = int(os.getenv("MAX_REPS_INPUT", "100"))

    # Deload detection
    DELOAD_VOLUME_THRESHOLD: float = float(os.getenv("DELOAD_VOLUME_THRESHOLD", "-0.1"))
    DELOAD_VOLUME_REDUCTION: float = float(os.getenv("DELOAD_VOLUME_REDUCTION", "0.2"))
    DELOAD_DURATION_WEEKS: int = int(os.getenv("DELOAD_DURATION_WEEKS", "1"))

    @classmethod
    def get_muscle_group_rest_time(cls, muscle_group: Optional[str]) -> int:
        """Get base rest time for a muscle group in seconds."""
        if not muscle_group:
            return cls.MUSCLE_GROUP_REST_TIMES["chest"]
        return cls.MUSCLE_GROUP_REST_TIMES.get(muscle_group.lower(), cls.MUSCLE_GROUP_REST_TIMES["chest"])

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration values."""
        if cls.DEFAULT_REST_TIME < 0:
            raise ValueError("DEFAULT_REST_TIME must not be negative")
        if cls.MIN_REST_TIME > cls.MAX_REST_TIME:
            raise ValueError(
                f"MIN_REST_TIME ({cls.MIN_REST_TIME}) is greater than MAX_REST_TIME ({cls.MAX_REST_TIME})"
            )
        if cls.MIN_HISTORY_POINTS < 2:
            raise ValueError("MIN_HISTORY_POINTS must be at least 2")
        return True


config = Config()
