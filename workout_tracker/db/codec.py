"""JSON encoding of set lists stored in the workout_exercises table."""

import json
import logging
from datetime import datetime
from typing import List, Optional

from ..sets import SetData

logger = logging.getLogger(__name__)


def set_to_dict(set_data: SetData) -> dict:
    return {
        "id": set_data.id,
        "setNumber": set_data.set_number,
        "targetReps": set_data.target_reps,
        "actualReps": set_data.actual_reps,
        "targetWeight": set_data.target_weight,
        "actualWeight": set_data.actual_weight,
        "completed": set_data.completed,
        "restTime": set_data.rest_time,
        "notes": set_data.notes,
        "timestamp": set_data.timestamp.isoformat() if set_data.timestamp else None,
        "rpe": set_data.rpe,
    }


def set_from_dict(data: dict) -> SetData:
    target_reps = int(data.get("targetReps", 10))
    target_weight = float(data.get("targetWeight", 0.0))
    timestamp = data.get("timestamp")

    kwargs = dict(
        set_number=int(data["setNumber"]),
        target_reps=target_reps,
        target_weight=target_weight,
        actual_reps=int(data.get("actualReps", target_reps)),
        actual_weight=float(data.get("actualWeight", target_weight)),
        completed=bool(data.get("completed", False)),
        rest_time=data.get("restTime"),
        notes=data.get("notes"),
        timestamp=datetime.fromisoformat(timestamp) if timestamp else None,
        rpe=data.get("rpe"),
    )
    if data.get("id"):
        kwargs["id"] = str(data["id"])
    return SetData(**kwargs)


def sets_to_json(sets: List[SetData]) -> str:
    return json.dumps([set_to_dict(s) for s in sets])


def sets_from_json(raw: Optional[str]) -> List[SetData]:
    """Decode a stored set list; unreadable data decodes to an empty list."""
    if not raw:
        return []

    try:
        items = json.loads(raw)
        return [set_from_dict(item) for item in items]
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Error decoding set list: {e}")
        return []
