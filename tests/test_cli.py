"""Tests for the command-line interface."""

import json

from click.testing import CliRunner

from workout_tracker import cli as cli_module
from workout_tracker.db import Database, WorkoutRepository
from workout_tracker.db import repository as repository_module
from workout_tracker.tracking import rest_time_resolver as resolver_module
from workout_tracker.tracking.rest_time_resolver import DatabaseRestTimeStore, RestTimeResolver


class TestCli:
    """Commands run against an in-memory database."""

    def setup_method(self):
        self.db = Database("sqlite:///:memory:")
        self.db.create_tables()
        self.repository = WorkoutRepository(self.db)
        self.resolver = RestTimeResolver(
            store=DatabaseRestTimeStore(self.repository),
            exercise_exists=self.repository.exercise_exists,
        )

        self._saved_repository = repository_module._repository
        repository_module._repository = self.repository
        resolver_module.set_rest_time_resolver(self.resolver)

        self.runner = CliRunner()

    def teardown_method(self):
        repository_module._repository = self._saved_repository
        resolver_module.set_rest_time_resolver(None)
        self.db.close()

    def invoke(self, *args):
        result = self.runner.invoke(cli_module.cli, list(args))
        assert result.exception is None, result.output
        return result

    def log_bench(self, date, weight, reps=8):
        self.invoke("log", "Bench Press", "--date", date, "--sets", "3", "--reps", str(reps), "--weight", str(weight))

    def test_exercise_add_and_list(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")

        result = self.invoke("exercise", "list")

        assert "Bench Press" in result.output
        assert "chest" in result.output

    def test_log_requires_known_exercise(self):
        result = self.invoke("log", "Bench Press")
        assert "Unknown exercise" in result.output

    def test_recommend_after_logging(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")
        self.log_bench("2024-03-04", 135)

        result = self.invoke("recommend", "Bench Press")

        assert "140" in result.output

    def test_recommend_without_history(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")

        result = self.invoke("recommend", "bench press")

        assert "Starting Point" in result.output
        assert "45" in result.output

    def test_predict(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")

        result = self.invoke("predict", "Bench Press", "--weight", "140", "--reps", "8")
        assert "Not enough history" in result.output

        self.log_bench("2024-03-04", 135)
        self.log_bench("2024-03-11", 135)

        result = self.invoke("predict", "Bench Press", "--weight", "140", "--reps", "8")
        assert "Success probability" in result.output

    def test_timeline(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")
        self.log_bench("2024-03-04", 135)
        self.log_bench("2024-03-11", 140)

        result = self.invoke("timeline", "Bench Press", "--target", "150")

        assert "2 weeks" in result.output

    def test_deload(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")
        self.log_bench("2024-03-04", 135, reps=10)
        self.log_bench("2024-03-11", 135, reps=9)
        self.log_bench("2024-03-18", 135, reps=8)

        result = self.invoke("deload", "Bench Press")

        assert "Deload Recommended" in result.output

    def test_records(self):
        self.invoke("exercise", "add", "Bench Press", "--muscle", "chest", "--equipment", "barbell")
        self.log_bench("2024-03-04", 135)
        self.log_bench("2024-03-11", 145)

        result = self.invoke("records", "Bench Press")

        assert "Max weight" in result.output
        assert "145" in result.output

    def test_rest_settings(self, tmp_path):
        self.invoke("exercise", "add", "Squat", "--muscle", "quadriceps", "--equipment", "barbell")
        self.invoke("rest", "set-global", "75")
        self.invoke("rest", "set-exercise", "Squat", "240")

        shown = self.invoke("rest", "show")
        assert "1m 15s" in shown.output
        assert "4m" in shown.output

        exported = self.invoke("rest", "export")
        assert json.loads(exported.output) == {
            "globalDefaultRestTime": 75,
            "exerciseRestTimes": {"squat": 240},
        }

        settings_file = tmp_path / "rest.json"
        settings_file.write_text(json.dumps({"globalDefaultRestTime": 100, "exerciseRestTimes": {"squat": 180}}))
        self.invoke("rest", "import", str(settings_file))

        assert self.resolver.get_global_default() == 100
        assert self.resolver.get_exercise_rest_time("squat") == 180

    def test_rejects_negative_rest(self):
        result = self.invoke("rest", "set-global", "--", "-5")
        assert "must not be negative" in result.output
