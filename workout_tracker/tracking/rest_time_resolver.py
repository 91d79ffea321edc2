"""Hierarchical rest-time resolution: set override > exercise default > global default."""

import logging
from enum import Enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import config
from ..sets import SetData, exercise_key

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"
EXERCISE_PREFIX = "exercise:"


class RestTimeSource(Enum):
    """Which configuration tier supplied a rest time."""
    SET_SPECIFIC = "set_specific"
    EXERCISE_SPECIFIC = "exercise_specific"
    GLOBAL_DEFAULT = "global_default"

    @property
    def description(self) -> str:
        return {
            RestTimeSource.SET_SPECIFIC: "Set-specific",
            RestTimeSource.EXERCISE_SPECIFIC: "Exercise default",
            RestTimeSource.GLOBAL_DEFAULT: "Global default",
        }[self]


@dataclass(frozen=True)
class RestTimePreset:
    seconds: int
    label: str
    description: str


COMMON_REST_TIMES = [
    RestTimePreset(30, "30s", "Quick rest"),
    RestTimePreset(60, "1m", "Light exercises"),
    RestTimePreset(90, "1m 30s", "Moderate exercises"),
    RestTimePreset(120, "2m", "Heavy exercises"),
    RestTimePreset(180, "3m", "Compound movements"),
    RestTimePreset(300, "5m", "Max effort sets"),
]


def format_rest_time(seconds: int) -> str:
    """Format seconds as "45s", "2m" or "1m 30s"."""
    if seconds < 60:
        return f"{seconds}s"
    minutes, remainder = divmod(seconds, 60)
    if remainder == 0:
        return f"{minutes}m"
    return f"{minutes}m {remainder}s"


class InMemoryRestTimeStore:
    """Key/value store for rest-time settings held in process memory."""

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._values: Dict[str, int] = dict(initial or {})

    def get(self, key: str) -> Optional[int]:
        return self._values.get(key)

    def put(self, key: str, seconds: int):
        self._values[key] = seconds

    def delete(self, key: str):
        self._values.pop(key, None)

    def items(self) -> Dict[str, int]:
        return dict(self._values)


class DatabaseRestTimeStore(InMemoryRestTimeStore):
    """Rest-time settings persisted in the ``rest_time_settings`` table.

    Values are cached in memory; a failed write is logged and the cached value
    stays authoritative for the rest of the process.
    """

    def __init__(self, repository):
        self.repository = repository
        try:
            initial = repository.get_rest_time_settings()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load rest time settings: {e}")
            initial = {}
        super().__init__(initial)

    def put(self, key: str, seconds: int):
        super().put(key, seconds)
        try:
            self.repository.put_rest_time_setting(key, seconds)
        except SQLAlchemyError as e:
            logger.error(f"Failed to save rest time setting {key}: {e}")

    def delete(self, key: str):
        super().delete(key)
        try:
            self.repository.delete_rest_time_setting(key)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete rest time setting {key}: {e}")


class RestTimeResolver:
    """Resolves the rest duration for a set.

    Args:
        store: Settings store (in-memory by default)
        default_rest_time: Global default used until one is configured
        exercise_exists: Optional lookup used on import to skip stale exercise keys
    """

    def __init__(
        self,
        store: Optional[InMemoryRestTimeStore] = None,
        default_rest_time: Optional[int] = None,
        exercise_exists: Optional[Callable[[str], bool]] = None,
    ):
        self.store = store if store is not None else InMemoryRestTimeStore()
        self.default_rest_time = default_rest_time if default_rest_time is not None else config.DEFAULT_REST_TIME
        self.exercise_exists = exercise_exists

    def resolve(self, set_data: SetData, exercise: Any = None) -> int:
        """Rest time in seconds for a set, by strict precedence."""
        if set_data is not None and set_data.rest_time is not None:
            return set_data.rest_time

        if exercise is not None:
            exercise_rest = self.get_exercise_rest_time(exercise)
            if exercise_rest is not None:
                return exercise_rest

        return self.get_global_default()

    def source(self, set_data: SetData, exercise: Any = None) -> RestTimeSource:
        """Tier that :meth:`resolve` would use, for display."""
        if set_data is not None and set_data.rest_time is not None:
            return RestTimeSource.SET_SPECIFIC
        if exercise is not None and self.get_exercise_rest_time(exercise) is not None:
            return RestTimeSource.EXERCISE_SPECIFIC
        return RestTimeSource.GLOBAL_DEFAULT

    def get_global_default(self) -> int:
        value = self.store.get(GLOBAL_KEY)
        return value if value is not None else self.default_rest_time

    def set_global_default(self, seconds: int):
        if seconds < 0:
            raise ValueError(f"Rest time must not be negative: {seconds}")
        self.store.put(GLOBAL_KEY, int(seconds))

    def get_exercise_rest_time(self, exercise: Any) -> Optional[int]:
        value = self.store.get(EXERCISE_PREFIX + exercise_key(exercise))
        return value if value else None

    def set_exercise_rest_time(self, exercise: Any, seconds: Optional[int]):
        """Set an exercise default; None or 0 clears it."""
        key = EXERCISE_PREFIX + exercise_key(exercise)
        if not seconds:
            self.store.delete(key)
            return
        if seconds < 0:
            raise ValueError(f"Rest time must not be negative: {seconds}")
        self.store.put(key, int(seconds))

    def set_bulk_exercise_rest_times(self, exercises: Iterable[Any], seconds: Optional[int]):
        for exercise in exercises:
            self.set_exercise_rest_time(exercise, seconds)

    def export_settings(self) -> Dict[str, Any]:
        """Export the configuration as a flat, JSON-serializable dictionary."""
        exercise_settings = {
            key[len(EXERCISE_PREFIX):]: seconds
            for key, seconds in self.store.items().items()
            if key.startswith(EXERCISE_PREFIX) and seconds
        }
        return {
            "globalDefaultRestTime": self.get_global_default(),
            "exerciseRestTimes": exercise_settings,
        }

    def import_settings(self, settings: Dict[str, Any]) -> bool:
        """Import a configuration produced by :meth:`export_settings`.

        Unknown exercise keys and non-integer values are skipped. Returns True
        when an exercise table was present.
        """
        global_time = settings.get("globalDefaultRestTime")
        if isinstance(global_time, int) and not isinstance(global_time, bool) and global_time >= 0:
            self.set_global_default(global_time)

        exercise_settings = settings.get("exerciseRestTimes")
        if not isinstance(exercise_settings, dict):
            return False

        skipped: List[str] = []
        for key, seconds in exercise_settings.items():
            if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds < 0:
                skipped.append(key)
                continue
            if self.exercise_exists is not None and not self.exercise_exists(key):
                skipped.append(key)
                continue
            self.set_exercise_rest_time(key, seconds)

        if skipped:
            logger.info(f"Skipped {len(skipped)} rest time entries on import: {', '.join(map(str, skipped))}")

        return True


_resolver: Optional[RestTimeResolver] = None


def get_rest_time_resolver() -> RestTimeResolver:
    """Get or create the process-wide resolver backed by the global database."""
    global _resolver
    if _resolver is None:
        from ..db.repository import get_repository

        repository = get_repository()
        _resolver = RestTimeResolver(
            store=DatabaseRestTimeStore(repository),
            exercise_exists=repository.exercise_exists,
        )
    return _resolver


def set_rest_time_resolver(resolver: Optional[RestTimeResolver]):
    """Replace the process-wide resolver (None resets it)."""
    global _resolver
    _resolver = resolver
