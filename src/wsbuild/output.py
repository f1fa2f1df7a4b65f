"""
Timestamped user-facing output for wsbuild.

All output is prefixed with the elapsed time since launch in MM:SS.cc format
(minutes:seconds.centiseconds), which makes it easy to see where a workspace
build spends its time.

Example output:
    00:00.01 wsbuild v0.1.0
    00:00.02 [1/2] Loading workspace demo...
    00:00.03       Projects: liba, app
    00:01.45 [2/2] Building (Compiler=GCC, Target=Debug)...
    00:02.67       Output: /work/demo/app

Usage:
    from wsbuild.output import log, log_phase, log_detail

    log_phase(1, 2, "Loading workspace...")
    log_detail("Projects: liba, app")

Diagnostics that are not meant for the user go through the standard logging
module instead.
"""

import sys
import time
from types import TracebackType
from typing import Optional, TextIO

_start_time: Optional[float] = None
_output_stream: Optional[TextIO] = None
_verbose: bool = True


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Called automatically on first output if not called explicitly.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout at write time)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """Print verbose_only messages when verbose is True."""
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """Elapsed time in seconds since timer initialization."""
    if _start_time is None:
        init_timer(_output_stream)
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    stream = _output_stream if _output_stream is not None else sys.stdout
    stream.write(f"{format_timestamp()} {message}\n")
    stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """Log a message with timestamp."""
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a phase message.

    Format: [N/M] message
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """Log an indented detail message."""
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


def log_error(message: str) -> None:
    _print(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _print(f"WARNING: {message}")


def log_build_complete(build_time: float, success: bool) -> None:
    """Log the final build status line with the total build time."""
    status = "Build succeeded" if success else "Build failed"
    _print(f"{status} ({build_time:.2f}s)")


class TimedLogger:
    """
    Context manager that logs an operation and its duration.

    Usage:
        with TimedLogger("Loading workspace", phase=(1, 2)) as timed:
            timed.detail("Projects: 2")
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=True)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
