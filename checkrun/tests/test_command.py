"""Tests for the subprocess command executor."""

import time

import pytest

from checkrun.src.services.command import (
    CommandTimeout,
    LaunchError,
    SubprocessExecutor,
    shell_command,
)

@pytest.fixture
def executor():
    return SubprocessExecutor()

def test_successful_command(executor):
    result = executor.run("/bin/sh", ["-c", "echo hello"])
    assert result.exit_code == 0
    assert result.succeeded
    assert result.stdout.strip() == "hello"

def test_non_zero_exit_is_returned(executor):
    result = executor.run("/bin/sh", ["-c", "echo broken >&2; exit 3"])
    assert result.exit_code == 3
    assert not result.succeeded
    assert "broken" in result.stderr

def test_missing_binary_raises_launch_error(executor):
    with pytest.raises(LaunchError, match="Failed to start"):
        executor.run("checkrun-definitely-not-installed", [])

def test_missing_working_directory_raises_launch_error(executor, tmp_path):
    with pytest.raises(LaunchError):
        executor.run("/bin/sh", ["-c", "true"], cwd=str(tmp_path / "missing"))

def test_env_is_merged_with_process_env(executor, monkeypatch):
    monkeypatch.setenv("CHECKRUN_TEST_INHERITED", "inherited")
    result = executor.run(
        "/bin/sh",
        ["-c", 'printf "%s %s" "$CHECKRUN_TEST_INHERITED" "$CHECKRUN_TEST_EXTRA"'],
        env={"CHECKRUN_TEST_EXTRA": "extra"},
    )
    assert result.stdout == "inherited extra"

def test_cwd(executor, tmp_path):
    result = executor.run("/bin/sh", ["-c", "pwd"], cwd=str(tmp_path))
    assert result.stdout.strip().endswith(tmp_path.name)

def test_timeout(executor):
    with pytest.raises(CommandTimeout) as exc_info:
        executor.run("/bin/sh", ["-c", "sleep 5"], timeout=0.2)
    assert exc_info.value.timeout == 0.2

def test_shell_command_joins_with_and():
    assert shell_command("/bin/sh", ["npm install", "npm test"]) == [
        "/bin/sh",
        "-c",
        "npm install && npm test",
    ]

def test_shell_command_stops_at_first_failure(executor):
    argv = shell_command("/bin/sh", ["exit 4", "echo unreachable"])
    result = executor.run(argv[0], argv[1:])
    assert result.exit_code == 4
    assert "unreachable" not in result.stdout

def test_timeout_kills_processes_started_by_the_step(executor, tmp_path):
    argv = shell_command("/bin/sh", ["/bin/sh -c 'sleep 2; touch late.txt'", "true"])

    with pytest.raises(CommandTimeout):
        executor.run(argv[0], argv[1:], cwd=str(tmp_path), timeout=1)

    time.sleep(2.5)
    assert not (tmp_path / "late.txt").exists()
