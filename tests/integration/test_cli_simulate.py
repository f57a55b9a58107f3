from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from hiringpanel.cli import app

ROSTER = {
    "admin": "admin",
    "reviewers": [
        {
            "id": "hm",
            "roles": [{"specialization": "BUILDER", "authority": "HIRING_MANAGER", "willing_to_interview": False}],
        },
        {
            "id": "am",
            "roles": [{"specialization": "builder", "authority": "APPLICATION_MANAGER", "queue_max": 2}],
        },
    ],
    "referrals": [{"candidate_id": "cand", "referrer_id": "friend", "specializations": ["BUILDER"]}],
    "answers": {"admin": ["y"]},
    "steps": [
        {"op": "start_interview", "args": {"caller_id": "hm", "candidate_id": "cand", "specialization": "builder"}},
        {"op": "create_or_update_task", "args": {"caller_id": "am", "interview_id": 1, "name": "castle"}},
        {"op": "finalize_tasks", "args": {"caller_id": "hm", "interview_id": 1}},
        {
            "op": "review_interview",
            "args": {"caller_id": "hm", "interview_id": 1, "approval": "y", "score": 9, "report": "great"},
        },
        {
            "op": "review_interview",
            "args": {"caller_id": "am", "interview_id": 1, "approval": "y", "score": 7, "report": "solid"},
        },
        {"op": "close_interview", "args": {"caller_id": "am", "interview_id": 1}},
        {"op": "decide_hire", "args": {"caller_id": "admin", "interview_id": 1}},
        {"op": "status_counts"},
    ],
}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_yaml(path: Path, payload: object) -> Path:
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return path


def test_simulate_replays_steps_and_dumps_store(tmp_path: Path, runner: CliRunner) -> None:
    roster = write_yaml(tmp_path / "roster.yaml", ROSTER)
    output = tmp_path / "store.json"

    result = runner.invoke(app, ["simulate", "--roster", str(roster), "--output", str(output), "--strict"])

    assert result.exit_code == 0, result.output
    assert "[7] decide_hire: ok" in result.output
    dumped = json.loads(output.read_text(encoding="utf-8"))
    [interview] = dumped["interviews"]
    assert interview["hiring_manager_id"] == "hm"
    assert interview["application_manager_id"] == "am"
    assert interview["hire_decision"] is True
    assert [task["name"] for task in dumped["tasks"]] == ["castle"]


def test_simulate_strict_fails_on_rejected_step(tmp_path: Path, runner: CliRunner) -> None:
    roster = dict(ROSTER, steps=[{"op": "finalize_tasks", "args": {"caller_id": "hm", "interview_id": 5}}])
    path = write_yaml(tmp_path / "roster.yaml", roster)

    result = runner.invoke(app, ["simulate", "--roster", str(path), "--strict"])

    assert result.exit_code == 1
    assert "CONTEXT_ERROR" in result.output


def test_simulate_rejects_unknown_operation(tmp_path: Path, runner: CliRunner) -> None:
    roster = dict(ROSTER, steps=[{"op": "drop_tables"}])
    path = write_yaml(tmp_path / "roster.yaml", roster)

    result = runner.invoke(app, ["simulate", "--roster", str(path)])

    assert result.exit_code != 0


def test_capacity_prints_reviewer_table(tmp_path: Path, runner: CliRunner) -> None:
    roster = write_yaml(tmp_path / "roster.yaml", dict(ROSTER, steps=[]))

    result = runner.invoke(app, ["capacity", "--roster", str(roster), "--reviewer", "am"])

    assert result.exit_code == 0, result.output
    assert "BUILDER" in result.output
    assert "APPLICATION_MANAGER" in result.output


def test_check_config_prints_effective_settings(tmp_path: Path, runner: CliRunner) -> None:
    config = write_yaml(tmp_path / "config.yaml", {"capacity": {"count_closed_interviews": True}})

    result = runner.invoke(app, ["check-config", "--config", str(config)])

    assert result.exit_code == 0, result.output
    settings = json.loads(result.output)
    assert settings["capacity"]["count_closed_interviews"] is True
    assert settings["lifecycle"]["max_report_length"] == 1500


def test_check_config_rejects_invalid_file(tmp_path: Path, runner: CliRunner) -> None:
    config = write_yaml(tmp_path / "config.yaml", {"capacity": {"count_closed_interviews": "sometimes"}})

    result = runner.invoke(app, ["check-config", "--config", str(config)])

    assert result.exit_code != 0
