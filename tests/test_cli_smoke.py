"""
Minimal smoke tests for the pt-planner CLI.

Tests basic functionality:
- App runs and shows help
- Today's plan is generated and stored
- Rerolls advance the seed
- Settings, progress and session log can be updated
- Bad input exits with code 1
"""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pt_planner.cli.main import app


runner = CliRunner()

DATE = "2024-05-15"


@pytest.fixture
def store_path():
    """Path to a JSON store in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "store.json"


def _invoke(store_path: Path, *args: str):
    return runner.invoke(app, [*args, "--store-path", str(store_path)])


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "daily" in result.output.lower()

    def test_today_creates_plan(self, store_path):
        result = _invoke(store_path, "today", "--date", DATE)
        assert result.exit_code == 0
        assert store_path.exists()
        data = json.loads(store_path.read_text())
        assert "pt-daily-plan:demo-user:2024-05-15" in data

    def test_today_json_for_fresh_user(self, store_path):
        result = _invoke(store_path, "today", "--date", DATE, "--json")
        assert result.exit_code == 0
        doc = json.loads(result.output)
        assert doc["date"] == DATE
        assert doc["seed"] == "2024-05-15#0"
        assert doc["rerollCount"] == 0
        assert sorted(i["movementId"] for i in doc["items"]) == ["pushup", "squat"]

    def test_today_is_stable(self, store_path):
        first = _invoke(store_path, "today", "--date", DATE, "--json")
        second = _invoke(store_path, "today", "--date", DATE, "--json")
        assert json.loads(first.output) == json.loads(second.output)

    def test_reroll_advances_seed(self, store_path):
        _invoke(store_path, "today", "--date", DATE)
        _invoke(store_path, "reroll", "--date", DATE)
        result = _invoke(store_path, "reroll", "--date", DATE, "--json")
        assert result.exit_code == 0
        doc = json.loads(result.output)
        assert doc["rerollCount"] == 2
        assert doc["seed"] == "2024-05-15#2"

    def test_separate_users(self, store_path):
        _invoke(store_path, "today", "--date", DATE, "--user", "alice")
        data = json.loads(store_path.read_text())
        assert "pt-daily-plan:alice:2024-05-15" in data
        assert "pt-daily-plan:demo-user:2024-05-15" not in data

    def test_explain(self, store_path):
        result = _invoke(store_path, "explain", "--date", DATE)
        assert result.exit_code == 0
        assert "Pushup" in result.output
        assert "no equipment" in result.output

    def test_invalid_date(self, store_path):
        result = _invoke(store_path, "today", "--date", "15-05-2024")
        assert result.exit_code == 1
        assert "Error" in result.output


class TestSettingsCommands:
    def test_config_update(self, store_path):
        result = _invoke(store_path, "config", "--max", "3", "--suggestions")
        assert result.exit_code == 0
        data = json.loads(store_path.read_text())
        stored = json.loads(data["pt-generation-config:demo-user"])
        assert stored["daily_max_movements"] == 3
        assert stored["include_locked_as_suggestions"] is True

        plan = json.loads(_invoke(store_path, "today", "--date", DATE, "--json").output)
        assert len(plan["items"]) == 3
        assert plan["lockedSuggestions"]

    def test_config_out_of_range(self, store_path):
        result = _invoke(store_path, "config", "--max", "9")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_progress_update(self, store_path):
        result = _invoke(store_path, "progress", "leg-raise", "--step", "6", "--tier", "intermediate")
        assert result.exit_code == 0
        data = json.loads(store_path.read_text())
        progress = json.loads(data["pt:user:demo-user:progress"])
        entry = next(m for m in progress["movements"] if m["slug"] == "legraise")
        assert entry["stepNo"] == 6
        assert entry["tier"] == "INTERMEDIATE"
        # 5 + 2/3 → 5.67, replacing the default score of 0
        assert entry["score"] == pytest.approx(5.67)

    def test_progress_explicit_score_kept(self, store_path):
        _invoke(store_path, "progress", "pushup", "--step", "9", "--tier", "ADVANCED", "--score", "4.5")
        data = json.loads(store_path.read_text())
        entry = json.loads(data["pt:user:demo-user:progress"])["movements"][0]
        assert entry["score"] == 4.5

    def test_advanced_movement_not_undertrained(self, store_path):
        # step 9 ADVANCED → score 9.0; bonus (10 - 9) * 0.5 = 0.5 is not > 0.5
        result = _invoke(store_path, "progress", "pushup", "--step", "9", "--tier", "ADVANCED")
        assert result.exit_code == 0
        data = json.loads(store_path.read_text())
        entry = json.loads(data["pt:user:demo-user:progress"])["movements"][0]
        assert entry["slug"] == "pushup"
        assert entry["score"] == 9.0

        _invoke(store_path, "config", "--max", "6")
        plan = json.loads(_invoke(store_path, "today", "--date", DATE, "--json").output)
        pushup = next(i for i in plan["items"] if i["movementId"] == "pushup")
        assert pushup["stepId"] == "pushup-step9"
        assert "undertrained" not in pushup["reasonTags"]

    def test_progress_invalid_step(self, store_path):
        result = _invoke(store_path, "progress", "pushup", "--step", "11")
        assert result.exit_code == 1

    def test_equipment_update(self, store_path):
        result = _invoke(store_path, "equipment", "--pullup-bar", "--bridge-rule", "none")
        assert result.exit_code == 0
        data = json.loads(store_path.read_text())
        settings = json.loads(data["pt:user:demo-user:settings"])
        assert settings["hasPullupBar"] is True
        assert settings["hasWallSpace"] is False
        assert settings["rules"]["bridgeDependsOn"] == "none"

    def test_equipment_bad_rule(self, store_path):
        result = _invoke(store_path, "equipment", "--bridge-rule", "sometimes")
        assert result.exit_code == 1

    def test_log_session(self, store_path):
        result = _invoke(store_path, "log", "hspu", "--date", "2024-05-14")
        assert result.exit_code == 0
        data = json.loads(store_path.read_text())
        assert json.loads(data["pt:user:demo-user:last-sessions"]) == {"handstand-pushup": "2024-05-14"}

    def test_log_unknown_movement(self, store_path):
        result = _invoke(store_path, "log", "muscle-up")
        assert result.exit_code == 1
        assert "Unknown movement" in result.output

    def test_radar(self, store_path):
        result = _invoke(store_path, "radar")
        assert result.exit_code == 0
        assert "hspu" in result.output

    def test_profile_name(self, store_path):
        result = _invoke(store_path, "profile", "--name", "  Ana ")
        assert result.exit_code == 0
        assert "Ana" in result.output
        data = json.loads(store_path.read_text())
        assert json.loads(data["pt:user:demo-user:profile"])["displayName"] == "Ana"
