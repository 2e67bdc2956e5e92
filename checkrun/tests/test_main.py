"""Tests for the command-line entry point."""

import json

import pytest

from checkrun.src.main import EXIT_CONFIG_ERROR, main

PIPELINE = """
name: Local Check
on:
  push:
    branches: [ "main" ]
steps:
  - name: Build
    run: echo built > build.txt
  - name: Test
    run: exit 1
    continue_on_error: true
  - name: Lint
    run: test -f build.txt
"""

FATAL_PIPELINE = """
name: Broken
steps:
  - name: Build
    run: exit 2
  - name: Never
    run: touch never.txt
"""

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH", "CHECKRUN_REDIS_URL"):
        monkeypatch.delenv(name, raising=False)

@pytest.fixture
def workspace(tmp_path):
    (tmp_path / ".pipeline.yml").write_text(PIPELINE)
    return tmp_path

def test_run_succeeds_with_tolerated_failure(workspace):
    assert main(["--workspace", str(workspace), "run"]) == 0
    assert (workspace / "build.txt").exists()

def test_fatal_failure_exit_code(tmp_path):
    pipeline = tmp_path / "broken.yml"
    pipeline.write_text(FATAL_PIPELINE)

    assert main(["--workspace", str(tmp_path), "run", str(pipeline)]) == 1
    assert not (tmp_path / "never.txt").exists()

def test_branch_not_allowed_skips_run(workspace):
    assert main(["--workspace", str(workspace), "run", "--event", "push", "--branch", "feature"]) == 0
    assert not (workspace / "build.txt").exists()

def test_allowed_branch_runs(workspace):
    assert main(["--workspace", str(workspace), "run", "--event", "push", "--branch", "main"]) == 0
    assert (workspace / "build.txt").exists()

def test_event_payload_file(workspace, tmp_path_factory):
    event_path = tmp_path_factory.mktemp("event") / "event.json"
    event_path.write_text(json.dumps({"ref": "refs/heads/develop", "after": "abc"}))

    code = main([
        "--workspace", str(workspace),
        "run", "--event", "push", "--event-path", str(event_path),
    ])

    assert code == 0
    assert not (workspace / "build.txt").exists()

def test_missing_pipeline_is_config_error(tmp_path):
    assert main(["--workspace", str(tmp_path), "run"]) == EXIT_CONFIG_ERROR

def test_validate(workspace):
    assert main(["--workspace", str(workspace), "validate"]) == 0

def test_validate_invalid_pipeline(tmp_path):
    (tmp_path / ".pipeline.yml").write_text("name: Bad\nsteps:\n  - name: Build\n")
    assert main(["--workspace", str(tmp_path), "validate"]) == EXIT_CONFIG_ERROR

def test_show_config(workspace, capsys):
    assert main(["--workspace", str(workspace), "show-config"]) == 0

    config = json.loads(capsys.readouterr().out)
    assert config["name"] == "Local Check"
    assert config["on"] == {"push": {"branches": ["main"]}}
    assert [step["name"] for step in config["steps"]] == ["Build", "Test", "Lint"]

def test_missing_event_payload_is_config_error(workspace):
    code = main([
        "--workspace", str(workspace),
        "run", "--event", "push", "--event-path", str(workspace / "nope.json"),
    ])

    assert code == EXIT_CONFIG_ERROR
    assert not (workspace / "build.txt").exists()

def test_malformed_event_payload_is_config_error(workspace):
    event_path = workspace / "event.json"
    event_path.write_text("{not json")

    code = main([
        "--workspace", str(workspace),
        "run", "--event", "push", "--event-path", str(event_path),
    ])

    assert code == EXIT_CONFIG_ERROR
