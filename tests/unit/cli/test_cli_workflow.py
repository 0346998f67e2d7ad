"""Tests for the workflow command."""

import json
from datetime import datetime, timezone

from ctxgen.domain.constants import MESSAGE_LOG_PREFIX
from ctxgen.interface.cli.cli import EXIT_RETRY_LIMIT, cli

STAGE_TEXT = "line one\nline two"


def _ok_provider() -> list[dict]:
    return [{"name": "fake-a", "config": {"response": STAGE_TEXT}}]


def _down_provider() -> list[dict]:
    return [{"name": "fake-a", "config": {"error": "service down", "error_kind": "unavailable"}}]


def test_runs_default_stages(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(cli, ["--json", "workflow", "Build a login form"], prog_name="ctxgen")

    assert result.exit_code == 0, result.output
    obj = json.loads(result.output)
    assert obj["command"] == "workflow"
    assert obj["success"] is True
    assert obj["state"] == "completed"
    assert obj["stop_reason"] == "all_stages_done"
    assert obj["stages"] == ["CodeGenSubAgent", "QASubAgent", "DocsSubAgent"]
    assert obj["outputs"]["CodeGenSubAgent"]["code"] == STAGE_TEXT
    assert obj["outputs"]["CodeGenSubAgent"]["metadata"]["provider"] == "fake-a"
    assert obj["outputs"]["QASubAgent"] == STAGE_TEXT


def test_text_summary(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(cli, ["workflow", "Build it"], prog_name="ctxgen")

    assert result.exit_code == 0
    assert "state=completed stop_reason=all_stages_done attempts=3 retries=0" in result.output
    assert "completed: DocsSubAgent" in result.output


def test_messages_persisted(runner, write_config, project):
    write_config(_ok_provider())

    runner.invoke(cli, ["workflow", "Build it"], prog_name="ctxgen")

    today = datetime.now(timezone.utc).date().isoformat()
    log_file = project / "logs" / f"{MESSAGE_LOG_PREFIX}{today}.json"
    entries = json.loads(log_file.read_text(encoding="utf-8"))
    assert len(entries) == 5
    assert entries[0]["from"] == "CodeGenSubAgent"
    assert entries[0]["to"] == "coordinator"


def test_custom_agents_and_no_transition(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(
        cli,
        ["--json", "workflow", "p", "--agent", "Planner", "--agent", "Writer", "--no-auto-transition"],
        prog_name="ctxgen",
    )

    obj = json.loads(result.output)
    assert obj["stages"] == ["Planner"]
    assert obj["stop_reason"] == "no_transition"


def test_start_agent(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(cli, ["--json", "workflow", "p", "--start", "DocsSubAgent"], prog_name="ctxgen")

    assert json.loads(result.output)["stages"][0] == "DocsSubAgent"


def test_retry_limit_exit_code_json(runner, write_config):
    write_config(_down_provider())

    result = runner.invoke(cli, ["--json", "workflow", "p", "--retry-limit", "1"], prog_name="ctxgen")

    assert result.exit_code == EXIT_RETRY_LIMIT
    obj = json.loads(result.output)
    assert obj["state"] == "failed"
    assert obj["stop_reason"] == "retry_limit"
    assert obj["attempts"] == 2
    assert "All AI providers failed" in obj["last_error"]


def test_retry_limit_exit_code_text(runner, write_config):
    write_config(_down_provider())

    result = runner.invoke(cli, ["workflow", "p", "--retry-limit", "0"], prog_name="ctxgen")

    assert result.exit_code == EXIT_RETRY_LIMIT
    assert "state=failed" in result.output
    assert "Error: Workflow retry limit reached" in result.output


def test_retry_limit_from_config(runner, write_config):
    write_config(_down_provider(), workflow={"retry_limit": 0})

    result = runner.invoke(cli, ["--json", "workflow", "p"], prog_name="ctxgen")

    assert json.loads(result.output)["attempts"] == 1


def test_unknown_start_agent_is_an_error(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(cli, ["workflow", "p", "--start", "Planner"], prog_name="ctxgen")

    assert result.exit_code == 1
    assert "Unknown start agent 'Planner'" in result.output


def test_unknown_start_agent_json(runner, write_config):
    write_config(_ok_provider())

    result = runner.invoke(cli, ["--json", "workflow", "p", "--start", "Planner"], prog_name="ctxgen")

    assert result.exit_code == 1
    obj = json.loads(result.output)
    assert obj["exit_code"] == 1
    assert obj["stages"] == []
    assert "Configured agents: CodeGenSubAgent, QASubAgent, DocsSubAgent" in obj["error"]
