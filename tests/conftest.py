"""Pytest configuration and fixtures for wsbuild tests.

This conftest addresses Python 3.13 compatibility issues with pytest's capture fixtures.
Python 3.13 changed how stdout/stderr are handled, causing "I/O operation on closed file"
errors during test teardown. This is a known issue: https://github.com/pytest-dev/pytest/issues/11439

It also provides a recording process runner so compiler backends and full
workspace builds can be exercised without a toolchain installed.
"""

import sys
import threading
import warnings
from pathlib import Path

import pytest

from wsbuild.subprocess_utils import ProcessResult

# Suppress ResourceWarnings from file cleanup in Python 3.13
if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)


class RecordingRunner:
    """ProcessRunner fake that records commands and creates their outputs.

    The output path is taken from the -o / /Fo / /OUT: argument, or from the
    archive name following "rcsu". Commands whose argv contains any of the
    fail_on substrings return exit code 1 and create nothing.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.fail_on = fail_on
        self.commands: list[list[str]] = []
        self._lock = threading.Lock()

    def run(self, cmd: list[str]) -> ProcessResult:
        with self._lock:
            self.commands.append(list(cmd))
        if any(needle in arg for needle in self.fail_on for arg in cmd):
            return ProcessResult(returncode=1, stdout="", stderr="error: simulated failure")

        output = _output_argument(cmd)
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(b"")
        return ProcessResult(returncode=0, stdout="", stderr="")

    def commands_for(self, executable: str) -> list[list[str]]:
        with self._lock:
            return [c for c in self.commands if Path(c[0]).name == executable]


def _output_argument(cmd: list[str]) -> Path | None:
    for index, arg in enumerate(cmd):
        if arg == "-o" and index + 1 < len(cmd):
            return Path(cmd[index + 1])
        if arg == "rcsu" and index + 1 < len(cmd):
            return Path(cmd[index + 1])
        if arg.startswith("/Fo") or arg.startswith("/OUT:"):
            return Path(arg.split(":", 1)[1] if arg.startswith("/OUT:") else arg[3:])
    return None


@pytest.fixture
def runner() -> RecordingRunner:
    """A recording process runner where every command succeeds."""
    return RecordingRunner()


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are always restored after each test.

    This prevents "I/O operation on closed file" errors in Python 3.13
    when tests raise exceptions that close stdout/stderr.
    """
    yield

    # Restore if they were closed during the test
    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__


@pytest.hookimpl(hookwrapper=True, trylast=True)
def pytest_runtest_teardown(item):  # noqa: ARG001
    """Ensure streams are restored during teardown phase."""
    yield

    if hasattr(sys.stdout, "closed") and sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if hasattr(sys.stderr, "closed") and sys.stderr.closed:
        sys.stderr = sys.__stderr__


@pytest.fixture
def make_runner():
    """Factory for recording runners with simulated failures."""
    return RecordingRunner
