"""Progress callback protocol for the job scheduler.

Defines the callback interface the scheduler uses to report job state
transitions to display layers and tests.
"""

from typing import Protocol, runtime_checkable

from .models import JobState


@runtime_checkable
class JobCallback(Protocol):
    """Protocol for receiving job state updates from the scheduler.

    Called from worker threads when a job starts running and when it reaches a
    terminal state. Implementations must be thread-safe.
    """

    def on_job_update(self, job_name: str, state: JobState, detail: str) -> None:
        """Called when a job changes state.

        Args:
            job_name: Name of the job (e.g. "compile:main.cpp").
            state: New job state.
            detail: Human-readable status detail (e.g. "0.8s", an error message).
        """
        ...


class NullCallback:
    """No-op callback implementation for testing and non-interactive use."""

    def on_job_update(self, job_name: str, state: JobState, detail: str) -> None:
        """Discard update."""
        pass
