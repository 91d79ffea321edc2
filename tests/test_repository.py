"""Tests for the workout store: repository, legacy upconversion and set-list codec."""

import json
import pytest
from datetime import datetime, timedelta
from sqlalchemy import text

from workout_tracker.db import Database, WorkoutExercise, WorkoutRepository
from workout_tracker.db.codec import set_from_dict, set_to_dict, sets_from_json, sets_to_json
from workout_tracker.sets import SetData

START = datetime(2024, 3, 4, 18, 0)


def completed(set_number: int, reps: int, weight: float) -> SetData:
    set_data = SetData.new(set_number, reps, weight)
    set_data.mark_completed(START)
    return set_data


class TestSetCodec:

    def test_fields_preserved(self):
        original = SetData.new(2, 8, 135)
        original.update_actuals(7, 135)
        original.mark_completed(START)
        original.rest_time = 150
        original.notes = "grindy last rep"
        original.rpe = 9

        restored = set_from_dict(set_to_dict(original))

        assert restored.id == original.id
        assert restored.set_number == 2
        assert (restored.target_reps, restored.target_weight) == (8, 135)
        assert (restored.actual_reps, restored.actual_weight) == (7, 135)
        assert restored.completed
        assert restored.timestamp == START
        assert restored.rest_time == 150
        assert restored.notes == "grindy last rep"
        assert restored.rpe == 9

    def test_wire_keys(self):
        data = set_to_dict(SetData.new(1, 10, 50))
        assert {"setNumber", "targetReps", "actualReps", "targetWeight", "actualWeight", "restTime"} <= set(data)

    def test_missing_actuals_default_to_targets(self):
        restored = set_from_dict({"setNumber": 1, "targetReps": 12, "targetWeight": 40})
        assert restored.actual_reps == 12
        assert restored.actual_weight == 40
        assert not restored.completed
        assert restored.id

    def test_unreadable_data_decodes_empty(self):
        assert sets_from_json(None) == []
        assert sets_from_json("") == []
        assert sets_from_json("not json") == []
        assert sets_from_json(json.dumps([{"targetReps": 5}])) == []

    def test_list_order_kept(self):
        sets = [SetData.new(n, 10, 100) for n in range(1, 4)]
        assert [s.id for s in sets_from_json(sets_to_json(sets))] == [s.id for s in sets]


class TestExercises:

    def setup_method(self):
        self.db = Database("sqlite:///:memory:")
        self.db.create_tables()
        self.repository = WorkoutRepository(self.db)

    def teardown_method(self):
        self.db.close()

    def test_add_is_get_or_create(self):
        first = self.repository.add_exercise("Bench Press", "chest", "barbell")
        second = self.repository.add_exercise("bench press")

        assert first.id == second.id
        assert len(self.repository.list_exercises()) == 1

    def test_lookup_is_case_insensitive(self):
        self.repository.add_exercise("Romanian Deadlift", "hamstrings", "barbell")

        assert self.repository.get_exercise("romanian deadlift").name == "Romanian Deadlift"
        assert self.repository.exercise_exists("ROMANIAN DEADLIFT")
        assert not self.repository.exercise_exists("front squat")

    def test_exercise_key(self):
        exercise = self.repository.add_exercise("  Pull Up ", "back", "bodyweight")
        assert exercise.key == "pull up"


class TestExerciseInstances:

    def setup_method(self):
        self.db = Database("sqlite:///:memory:")
        self.db.create_tables()
        self.repository = WorkoutRepository(self.db)
        self.bench = self.repository.add_exercise("Bench Press", "chest", "barbell")

    def teardown_method(self):
        self.db.close()

    def add_session(self, day: int, sets=None, **legacy) -> int:
        workout = self.repository.create_session(START + timedelta(days=day))
        return self.repository.add_exercise_to_session(workout.id, self.bench, sets=sets, **legacy)

    def test_legacy_row_upconverted_on_load(self):
        workout_exercise_id = self.add_session(0, legacy_sets=4, legacy_reps=6, legacy_weight=185)

        instance = self.repository.load_instance(workout_exercise_id)

        assert [s.set_number for s in instance.sets] == [1, 2, 3, 4]
        assert all(s.target_reps == 6 and s.target_weight == 185 for s in instance.sets)
        assert all(s.actual_reps == 6 and s.actual_weight == 185 for s in instance.sets)
        assert instance.exercise.name == "Bench Press"
        assert instance.session_date == START

        with self.db.get_session() as session:
            row = session.get(WorkoutExercise, workout_exercise_id)
            assert row.is_using_enhanced_tracking
            assert len(row.get_sets()) == 4

    def test_legacy_values_are_sanitized(self):
        workout_exercise_id = self.add_session(0, legacy_sets=0, legacy_reps=0, legacy_weight=-10)

        sets = self.repository.load_instance(workout_exercise_id).sets

        assert len(sets) == 1
        assert sets[0].target_reps == 1
        assert sets[0].target_weight == 0

    def test_save_sets(self):
        workout_exercise_id = self.add_session(0, sets=[SetData.new(1, 8, 135)])
        sets = self.repository.load_instance(workout_exercise_id).sets
        sets[0].mark_completed(START)

        self.repository.save_sets(workout_exercise_id, sets)

        assert self.repository.load_instance(workout_exercise_id).sets[0].completed

    def test_unknown_references(self):
        workout = self.repository.create_session(START)
        with pytest.raises(ValueError):
            self.repository.add_exercise_to_session(workout.id, "Unknown Lift")
        with pytest.raises(ValueError):
            self.repository.add_exercise_to_session(9999, self.bench)
        with pytest.raises(ValueError):
            self.repository.save_sets(9999, [])
        assert self.repository.load_instance(9999) is None

    def test_history_sorted_oldest_first(self):
        self.add_session(14, sets=[completed(1, 8, 145)])
        self.add_session(0, sets=[completed(1, 8, 135)])
        self.add_session(7, sets=[completed(1, 8, 140)])

        history = self.repository.get_history("bench press")

        assert [p.max_weight for p in history] == [135, 140, 145]
        assert all(p.exercise_key == "bench press" for p in history)

    def test_history_skips_untracked_and_empty_rows(self):
        self.add_session(0, sets=[completed(1, 8, 135)])
        self.add_session(7, legacy_sets=3, legacy_reps=8, legacy_weight=140)
        self.add_session(14, sets=[])

        assert len(self.repository.get_history(self.bench)) == 1

    def test_history_only_for_requested_exercise(self):
        squat = self.repository.add_exercise("Squat", "quadriceps", "barbell")
        workout = self.repository.create_session(START)
        self.repository.add_exercise_to_session(workout.id, squat, sets=[completed(1, 5, 225)])
        self.add_session(1, sets=[completed(1, 8, 135)])

        assert [p.max_weight for p in self.repository.get_history("squat")] == [225]

    def test_previous_instance_strictly_earlier(self):
        self.add_session(0, sets=[completed(1, 8, 135)])
        self.add_session(7, sets=[completed(1, 8, 140)])
        self.add_session(14, sets=[completed(1, 8, 145)])

        previous = self.repository.get_previous_instance(self.bench, before=START + timedelta(days=14))
        assert previous.sets[0].actual_weight == 140

        assert self.repository.get_previous_instance(self.bench, before=START) is None


class TestRestTimeSettings:

    def setup_method(self):
        self.db = Database("sqlite:///:memory:")
        self.db.create_tables()
        self.repository = WorkoutRepository(self.db)

    def teardown_method(self):
        self.db.close()

    def test_put_update_delete(self):
        self.repository.put_rest_time_setting("global", 90)
        self.repository.put_rest_time_setting("global", 120)
        self.repository.put_rest_time_setting("exercise:squat", 240)

        assert self.repository.get_rest_time_settings() == {"global": 120, "exercise:squat": 240}

        self.repository.delete_rest_time_setting("exercise:squat")
        assert self.repository.get_rest_time_settings() == {"global": 120}


class TestMigrations:

    def test_migrate_adds_missing_columns(self):
        db = Database("sqlite:///:memory:")
        with db.engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE workout_exercises (id INTEGER PRIMARY KEY, session_id INTEGER, "
                "exercise_id INTEGER, sets INTEGER, reps INTEGER, weight FLOAT)"
            ))

        assert db.migrate_schema() == ["is_using_enhanced_tracking", "set_data"]
        assert db.migrate_schema() == []
        db.close()
