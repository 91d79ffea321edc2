"""Repository over the workout store.

All ORM access used by the analysis and tracking services goes through
``WorkoutRepository``. Rows leave this module as plain domain objects
(``ExerciseInstance``, ``HistoricalPoint``) or detached ``Exercise`` rows.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union
from sqlalchemy import func

from ..sets import ExerciseInstance, SetData, exercise_key
from ..analysis.features import HistoricalPoint
from .database import Database, get_db
from .models import Exercise, RestTimeSetting, WorkoutExercise, WorkoutSession

ExerciseRef = Union[Exercise, str]


class WorkoutRepository:
    """Queries and writes for exercises, sessions and set lists."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    # Exercises

    def add_exercise(self, name: str, primary_muscle_group: Optional[str] = None,
                     equipment: Optional[str] = None) -> Exercise:
        """Get or create an exercise by name."""
        with self.db.get_session() as session:
            existing = self._query_exercise(session, name)
            if existing:
                return existing

            exercise = Exercise(name=name.strip(), primary_muscle_group=primary_muscle_group, equipment=equipment)
            session.add(exercise)
            session.flush()
            return exercise

    def get_exercise(self, ref: ExerciseRef) -> Optional[Exercise]:
        with self.db.get_session() as session:
            return self._query_exercise(session, ref)

    def list_exercises(self) -> List[Exercise]:
        with self.db.get_session() as session:
            return session.query(Exercise).order_by(Exercise.name).all()

    def exercise_exists(self, key: str) -> bool:
        return self.get_exercise(key) is not None

    def _query_exercise(self, session, ref: ExerciseRef) -> Optional[Exercise]:
        key = exercise_key(ref)
        if not key:
            return None
        return session.query(Exercise).filter(func.lower(Exercise.name) == key).first()

    # Sessions and exercise instances

    def create_session(self, date: datetime, name: Optional[str] = None) -> WorkoutSession:
        with self.db.get_session() as session:
            workout = WorkoutSession(date=date, name=name or "Workout")
            session.add(workout)
            session.flush()
            return workout

    def add_exercise_to_session(
        self,
        session_id: int,
        exercise: ExerciseRef,
        sets: Optional[List[SetData]] = None,
        legacy_sets: int = 3,
        legacy_reps: int = 10,
        legacy_weight: float = 0.0,
    ) -> int:
        """Attach an exercise to a session and return the workout-exercise id.

        Without ``sets`` the row is created in legacy single-value form and is
        upconverted the first time it is loaded for tracking.
        """
        with self.db.get_session() as session:
            row = self._query_exercise(session, exercise)
            if row is None:
                raise ValueError(f"Unknown exercise: {exercise_key(exercise)}")

            workout = session.get(WorkoutSession, session_id)
            if workout is None:
                raise ValueError(f"Unknown workout session: {session_id}")

            workout_exercise = WorkoutExercise(
                session_id=session_id,
                exercise_id=row.id,
                position=len(workout.exercises),
                sets=legacy_sets,
                reps=legacy_reps,
                weight=legacy_weight,
            )
            if sets is not None:
                workout_exercise.set_sets(sets)

            session.add(workout_exercise)
            session.flush()
            return workout_exercise.id

    def load_instance(self, workout_exercise_id: int) -> Optional[ExerciseInstance]:
        """Load an exercise instance, upconverting legacy rows in place."""
        with self.db.get_session() as session:
            row = session.get(WorkoutExercise, workout_exercise_id)
            if row is None:
                return None

            if row.is_using_enhanced_tracking:
                sets = row.get_sets()
            else:
                sets = row.enable_enhanced_tracking()

            return ExerciseInstance(
                workout_exercise_id=row.id,
                exercise=row.exercise,
                session_date=row.session.date if row.session else None,
                sets=sets,
            )

    def save_sets(self, workout_exercise_id: int, sets: List[SetData]):
        with self.db.get_session() as session:
            row = session.get(WorkoutExercise, workout_exercise_id)
            if row is None:
                raise ValueError(f"Unknown workout exercise: {workout_exercise_id}")
            row.set_sets(sets)

    # History

    def get_exercise_instances(
        self,
        exercise: ExerciseRef,
        before: Optional[datetime] = None,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> List[ExerciseInstance]:
        """All tracked instances of an exercise with at least one set, sorted by session date."""
        key = exercise_key(exercise)
        with self.db.get_session() as session:
            query = (
                session.query(WorkoutExercise)
                .join(WorkoutSession, WorkoutExercise.session_id == WorkoutSession.id)
                .join(Exercise, WorkoutExercise.exercise_id == Exercise.id)
                .filter(func.lower(Exercise.name) == key)
                .filter(WorkoutExercise.is_using_enhanced_tracking.is_(True))
            )
            if before is not None:
                query = query.filter(WorkoutSession.date < before)

            order = WorkoutSession.date.desc() if newest_first else WorkoutSession.date.asc()
            instances = []
            for row in query.order_by(order).all():
                sets = row.get_sets()
                if not sets:
                    continue
                instances.append(ExerciseInstance(
                    workout_exercise_id=row.id,
                    exercise=row.exercise,
                    session_date=row.session.date,
                    sets=sets,
                ))
                if limit is not None and len(instances) >= limit:
                    break

            return instances

    def get_history(self, exercise: ExerciseRef, before: Optional[datetime] = None) -> List[HistoricalPoint]:
        """Historical points for an exercise, oldest first."""
        return [
            HistoricalPoint.from_sets(instance.exercise_key, instance.session_date, instance.sets)
            for instance in self.get_exercise_instances(exercise, before=before)
        ]

    def get_previous_instance(self, exercise: ExerciseRef, before: datetime) -> Optional[ExerciseInstance]:
        """Most recent instance of the exercise from a session strictly earlier than ``before``."""
        instances = self.get_exercise_instances(exercise, before=before, limit=1, newest_first=True)
        return instances[0] if instances else None

    # Rest time settings

    def get_rest_time_settings(self) -> Dict[str, int]:
        with self.db.get_session() as session:
            return {row.key: row.seconds for row in session.query(RestTimeSetting).all()}

    def put_rest_time_setting(self, key: str, seconds: int):
        with self.db.get_session() as session:
            row = session.query(RestTimeSetting).filter(RestTimeSetting.key == key).first()
            if row is None:
                session.add(RestTimeSetting(key=key, seconds=seconds))
            else:
                row.seconds = seconds

    def delete_rest_time_setting(self, key: str):
        with self.db.get_session() as session:
            session.query(RestTimeSetting).filter(RestTimeSetting.key == key).delete()


_repository: Optional[WorkoutRepository] = None


def get_repository() -> WorkoutRepository:
    """Get or create the repository over the global database."""
    global _repository
    if _repository is None:
        _repository = WorkoutRepository()
    return _repository
