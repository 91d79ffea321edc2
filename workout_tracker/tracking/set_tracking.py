"""
Set Tracking Module

Orchestrates one exercise instance during an active session: loads and mutates
its sets, drives the rest timer after each completed set, and requests a
progression suggestion from the previous session.
"""

import logging
import threading
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..analysis.progressive_overload import (
    ProgressionSuggestion,
    ProgressionType,
    ProgressiveOverloadEngine,
)
from ..events import EventEmitter
from ..sets import ExerciseInstance, SetData, clamp_reps, clamp_rpe, clamp_weight, renumber
from .rest_timer import RestTimerService

logger = logging.getLogger(__name__)


class SetTrackingService:
    """Tracks the sets of a single exercise instance.

    In-memory state is authoritative. Every mutation is written through the
    repository; when a write fails ``has_unsaved_changes`` is set and
    :meth:`retry_save` can be called later.
    """

    def __init__(self, repository=None, timer: Optional[RestTimerService] = None,
                 resolver=None, engine: Optional[ProgressiveOverloadEngine] = None):
        if repository is None:
            from ..db.repository import get_repository
            repository = get_repository()
        if resolver is None:
            from .rest_time_resolver import get_rest_time_resolver
            resolver = get_rest_time_resolver()

        self.repository = repository
        self.timer = timer or RestTimerService()
        self.resolver = resolver
        self.engine = engine or ProgressiveOverloadEngine()
        self.events = EventEmitter()
        self.logger = logging.getLogger(__name__)

        self.instance: Optional[ExerciseInstance] = None
        self.active_sets: List[SetData] = []
        self.current_set_index = 0
        self.previous_sets: Optional[List[SetData]] = None
        self.progression_suggestion: Optional[ProgressionSuggestion] = None
        self.is_loading = False
        self.has_unsaved_changes = False

        self._loader: Optional[threading.Thread] = None

    @property
    def exercise(self):
        return self.instance.exercise if self.instance else None

    @property
    def current_set(self) -> Optional[SetData]:
        if 0 <= self.current_set_index < len(self.active_sets):
            return self.active_sets[self.current_set_index]
        return None

    @property
    def all_sets_completed(self) -> bool:
        return bool(self.active_sets) and all(s.completed for s in self.active_sets)

    # Loading

    def load_sets(self, workout_exercise_id: int, background: bool = True) -> bool:
        """
        Load the sets of an exercise instance.

        Legacy rows are upconverted on load. An instance without sets is seeded
        from the previous session's recommendations. The previous session lookup and
        progression suggestion run on a worker thread unless ``background``
        is False; call :meth:`wait_until_loaded` to join it.

        Returns:
            True if the instance was found
        """
        try:
            instance = self.repository.load_instance(workout_exercise_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to load exercise instance {workout_exercise_id}: {e}")
            return False

        if instance is None:
            self.logger.warning(f"Exercise instance {workout_exercise_id} not found")
            return False

        self.instance = instance
        self.active_sets = list(instance.sets)
        self.previous_sets = None
        self.progression_suggestion = None
        self.has_unsaved_changes = False

        if not self.active_sets:
            self._seed_sets()

        self.current_set_index = self._first_incomplete(default=0)
        self.is_loading = True

        if background:
            self._loader = threading.Thread(target=self._load_previous_session, daemon=True)
            self._loader.start()
        else:
            self._load_previous_session()

        self.events.publish("loaded", workout_exercise_id=workout_exercise_id, set_count=len(self.active_sets))
        return True

    def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        """Block until the previous-session lookup finishes. Returns False on timeout."""
        if self._loader is not None:
            self._loader.join(timeout)
            if self._loader.is_alive():
                return False
            self._loader = None
        return not self.is_loading

    def _previous_instance(self, instance: Optional[ExerciseInstance]) -> Optional[ExerciseInstance]:
        if instance is None or instance.session_date is None:
            return None
        try:
            return self.repository.get_previous_instance(instance.exercise, before=instance.session_date)
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching previous workout data: {e}")
            return None

    def _seed_sets(self):
        """Plan the sets of an empty instance from the previous session, or exercise defaults."""
        previous = self._previous_instance(self.instance)
        self.active_sets = self.engine.recommend_next_sets(
            self.instance.exercise, previous.sets if previous else None
        )
        if not self.active_sets:
            self.add_set()
            return
        self.logger.info(
            f"Seeded {len(self.active_sets)} sets for {self.instance.exercise_key} "
            f"from {'previous session' if previous else 'defaults'}"
        )
        self._save()

    def _load_previous_session(self):
        instance = self.instance
        previous = self._previous_instance(instance)

        self.previous_sets = previous.sets if previous else None
        self.progression_suggestion = (
            self.engine.suggest_progression(instance.exercise, self.previous_sets)
            if instance is not None and self.previous_sets
            else None
        )
        self.is_loading = False

        if self.progression_suggestion is not None:
            self.events.publish("suggestion", suggestion=self.progression_suggestion)

    # Set mutations

    def add_set(self) -> Optional[SetData]:
        """Append a set copying the last set's targets."""
        if self.instance is None:
            return None

        last = self.active_sets[-1] if self.active_sets else None
        new_set = SetData.new(
            len(self.active_sets) + 1,
            target_reps=last.target_reps if last else 10,
            target_weight=last.target_weight if last else 0.0,
        )
        self.active_sets.append(new_set)
        self._save()
        return new_set

    def remove_set(self, index: int):
        if self.instance is None or not self._valid(index):
            return

        self.active_sets.pop(index)
        renumber(self.active_sets)

        if self.current_set_index >= len(self.active_sets):
            self.current_set_index = max(0, len(self.active_sets) - 1)

        self._save()

    def update_target_values(self, index: int, weight: float, reps: int):
        if self.instance is None or not self._valid(index):
            return

        weight = clamp_weight(weight)
        reps = clamp_reps(reps, minimum=1)

        set_data = self.active_sets[index]
        set_data.target_weight = weight
        set_data.target_reps = reps
        if not set_data.completed:
            set_data.update_actuals(reps, weight)

        self._save()

    def complete_set(self, index: int, weight: float, reps: int, rpe: Optional[int] = None):
        """Record actuals for a set and start the rest timer unless it was the final set."""
        if self.instance is None or not self._valid(index):
            return

        set_data = self.active_sets[index]
        set_data.update_actuals(clamp_reps(reps), clamp_weight(weight))
        if rpe is not None:
            set_data.rpe = clamp_rpe(rpe)
        set_data.mark_completed()
        self._save()

        self.current_set_index = self._next_incomplete(index)
        self.events.publish("set_completed", index=index, set=set_data)

        if index < len(self.active_sets) - 1:
            exercise = self.instance.exercise
            self.timer.start(
                self.resolver.resolve(set_data, exercise),
                source=self.resolver.source(set_data, exercise),
                force_restart=True,
            )

    def uncomplete_set(self, index: int):
        """Clear completion; the recorded actuals are kept."""
        if self.instance is None or not self._valid(index):
            return

        set_data = self.active_sets[index]
        set_data.completed = False
        set_data.timestamp = None
        self._save()

    # Suggestions

    def apply_progression_suggestion(self, suggestion: Optional[ProgressionSuggestion] = None) -> bool:
        """Apply a suggestion (the pending one by default) to every set."""
        suggestion = suggestion or self.progression_suggestion
        if self.instance is None or suggestion is None:
            return False

        for set_data in self.active_sets:
            if suggestion.type in (ProgressionType.INCREASE_WEIGHT, ProgressionType.DELOAD):
                if suggestion.new_weight is not None:
                    set_data.target_weight = suggestion.new_weight
            elif suggestion.type == ProgressionType.INCREASE_REPS:
                if suggestion.new_reps is not None:
                    set_data.target_reps = suggestion.new_reps

            if not set_data.completed:
                set_data.update_actuals(set_data.target_reps, set_data.target_weight)

        self._save()
        self.progression_suggestion = None
        return True

    def dismiss_suggestion(self):
        self.progression_suggestion = None

    # Persistence

    def retry_save(self) -> bool:
        if not self.has_unsaved_changes:
            return True
        return self._save()

    def _save(self) -> bool:
        if self.instance is None or self.instance.workout_exercise_id is None:
            return False

        self.instance.sets = self.active_sets
        try:
            self.repository.save_sets(self.instance.workout_exercise_id, self.active_sets)
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving sets for exercise instance {self.instance.workout_exercise_id}: {e}")
            self.has_unsaved_changes = True
            return False

        self.has_unsaved_changes = False
        return True

    # Helpers

    def _valid(self, index: int) -> bool:
        return 0 <= index < len(self.active_sets)

    def _first_incomplete(self, default: int) -> int:
        return next((i for i, s in enumerate(self.active_sets) if not s.completed), default)

    def _next_incomplete(self, index: int) -> int:
        after = next((i for i in range(index + 1, len(self.active_sets)) if not self.active_sets[i].completed), None)
        if after is not None:
            return after
        return self._first_incomplete(default=index)
