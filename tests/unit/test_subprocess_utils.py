"""Tests for subprocess_utils module."""

import subprocess
from unittest.mock import patch

from wsbuild.subprocess_utils import (
    ProcessResult,
    ProcessRunner,
    SubprocessRunner,
    format_command,
    get_subprocess_creation_flags,
    safe_run,
)


def test_get_subprocess_creation_flags_windows():
    """Test that Windows returns CREATE_NO_WINDOW flag."""
    with patch("sys.platform", "win32"):
        flags = get_subprocess_creation_flags()
        assert flags == subprocess.CREATE_NO_WINDOW


def test_get_subprocess_creation_flags_linux():
    """Test that Linux returns 0."""
    with patch("sys.platform", "linux"):
        flags = get_subprocess_creation_flags()
        assert flags == 0


@patch("subprocess.run")
def test_safe_run_applies_flags_on_windows(mock_run):
    """Test that safe_run applies flags on Windows."""
    with patch("sys.platform", "win32"):
        safe_run(["g++", "--version"], capture_output=True)

        call_kwargs = mock_run.call_args[1]
        assert call_kwargs["creationflags"] == subprocess.CREATE_NO_WINDOW


@patch("subprocess.run")
def test_safe_run_no_flags_on_linux(mock_run):
    """Test that safe_run doesn't apply flags on Linux."""
    with patch("sys.platform", "linux"):
        safe_run(["g++", "--version"], capture_output=True)

        call_kwargs = mock_run.call_args[1]
        assert "creationflags" not in call_kwargs
        assert call_kwargs["stdin"] == subprocess.DEVNULL


@patch("subprocess.run")
def test_safe_run_merges_custom_creationflags(mock_run):
    """Test that custom creationflags are OR'd with defaults."""
    with patch("sys.platform", "win32"):
        custom_flag = 0x00000200  # Some custom flag
        safe_run(["g++"], creationflags=custom_flag)

        expected = custom_flag | subprocess.CREATE_NO_WINDOW
        assert mock_run.call_args[1]["creationflags"] == expected


def test_format_command_quotes_whitespace():
    assert format_command(["g++", "-DNAME=hello world", "main.cpp"]) == "g++ '-DNAME=hello world' main.cpp"


def test_process_result_ok():
    assert ProcessResult(returncode=0).ok
    assert not ProcessResult(returncode=1).ok


@patch("wsbuild.subprocess_utils.safe_run")
def test_subprocess_runner_captures_output(mock_safe_run):
    """SubprocessRunner converts CompletedProcess into ProcessResult."""
    mock_safe_run.return_value = subprocess.CompletedProcess(["g++"], 1, stdout="", stderr="error: x")
    runner = SubprocessRunner(timeout=30)

    result = runner.run(["g++", "-c", "main.cpp"])

    assert result == ProcessResult(returncode=1, stdout="", stderr="error: x")
    assert mock_safe_run.call_args[1]["timeout"] == 30
    assert isinstance(runner, ProcessRunner)


@patch("wsbuild.subprocess_utils.safe_run")
def test_subprocess_runner_timeout(mock_safe_run):
    """A timed out command is reported as a failure, not raised."""
    mock_safe_run.side_effect = subprocess.TimeoutExpired(["g++"], 1)
    result = SubprocessRunner(timeout=1).run(["g++"])
    assert result.returncode == -1
    assert not result.ok
