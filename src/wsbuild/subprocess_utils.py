"""Subprocess utilities for platform-safe process execution.

This module provides wrappers around the subprocess module that automatically
apply platform-specific flags to prevent console window flashing on Windows,
plus the ProcessRunner interface compiler backends use to launch toolchain
executables.
"""

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (prevents console input handle inheritance)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        - If 'creationflags' is explicitly provided in kwargs,
          it will be OR'd with platform defaults to preserve custom flags.
        - If 'stdin' is explicitly provided in kwargs, it will be used as-is.
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    # Child compilers must not steal keystrokes from the parent terminal
    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return subprocess.run(cmd, **kwargs)


def format_command(cmd: list[str]) -> str:
    """Render an argument list as a copy-pasteable shell command line."""
    return shlex.join(cmd)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of an external command.

    Attributes:
        returncode: Process exit code
        stdout: Captured standard output
        stderr: Captured standard error
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class ProcessRunner(Protocol):
    """Runs an external command and captures its exit code and output."""

    def run(self, cmd: list[str]) -> ProcessResult:
        """Run cmd to completion.

        Raises:
            OSError: If the executable cannot be launched.
        """
        ...


class SubprocessRunner:
    """ProcessRunner backed by safe_run().

    Args:
        timeout: Per-command timeout in seconds (None = no limit).
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(self, cmd: list[str]) -> ProcessResult:
        logger.debug("Running: %s", format_command(cmd))
        try:
            result = safe_run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", self._timeout, cmd[0])
            return ProcessResult(returncode=-1, stderr=f"Timed out after {self._timeout}s")
        return ProcessResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
