"""Data models for the dependency-aware job scheduler.

Defines the core types shared by the scheduler and the build graph:
- JobState: Enum tracking the lifecycle of a job
- JobHandle: Opaque, hashable reference returned by JobScheduler.submit()
- Job: A unit of work with its prerequisites and single-write result slot
- JobContext: Read-only view handed to a job's work function
"""

import itertools
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .scheduler import JobScheduler


class JobState(Enum):
    """State of a job in the scheduler."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """True for COMPLETED and FAILED."""
        return self in (JobState.COMPLETED, JobState.FAILED)


_job_ids = itertools.count(1)


@dataclass(frozen=True, eq=False)
class JobHandle:
    """Reference to a submitted job.

    Handles compare by identity, so they can key dictionaries and be held by
    dependents without owning the job itself.

    Attributes:
        job_id: Monotonic identifier unique within the process
        name: Human-readable job name (e.g. "compile:main.cpp")
    """

    job_id: int
    name: str
    _event: threading.Event = field(default_factory=threading.Event, repr=False)
    _scheduler: "JobScheduler | None" = field(default=None, repr=False)

    def done(self) -> bool:
        """Return True once the job has reached a terminal state."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the job completes.

        Args:
            timeout: Maximum time to wait in seconds (None = infinite)

        Returns:
            True if the job completed within the timeout.
        """
        return self._event.wait(timeout)

    def result(self) -> Any:
        """Return the job's result (None while pending or when absent)."""
        if self._scheduler is None:
            return None
        return self._scheduler.result(self)


JobWork = Callable[["JobContext"], Any]


@dataclass
class Job:
    """A single unit of work owned by the scheduler.

    Attributes:
        handle: The handle returned to the submitter
        work: Callable invoked with a JobContext; its return value becomes the result
        dependencies: Handles of jobs that must complete before this one starts
        state: Current lifecycle state
        result: Output slot (None means absent)
        error: Error detail if the work raised
        start_time: Monotonic timestamp when the work started
        end_time: Monotonic timestamp when the work finished
    """

    handle: JobHandle
    work: JobWork
    dependencies: tuple[JobHandle, ...] = ()
    state: JobState = JobState.PENDING
    result: Any = None
    error: str = ""
    start_time: float | None = None
    end_time: float | None = None

    @classmethod
    def create(cls, work: JobWork, dependencies: tuple[JobHandle, ...], name: str | None, scheduler: "JobScheduler") -> "Job":
        """Create a job with a fresh handle bound to the given scheduler."""
        job_id = next(_job_ids)
        handle = JobHandle(job_id=job_id, name=name or f"job-{job_id}", _scheduler=scheduler)
        return cls(handle=handle, work=work, dependencies=dependencies)

    @property
    def name(self) -> str:
        return self.handle.name

    def mark_started(self) -> None:
        """Record the start time and move to RUNNING."""
        self.state = JobState.RUNNING
        self.start_time = time.monotonic()

    def duration(self) -> float | None:
        """Get job duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "job_id": self.handle.job_id,
            "name": self.name,
            "dependencies": [d.job_id for d in self.dependencies],
            "state": self.state.value,
            "has_result": self.result is not None,
            "error": self.error,
            "duration": self.duration(),
        }


class JobContext:
    """View of the scheduler's result store given to a running job.

    A job reads its prerequisites' results by handle lookup instead of sharing
    mutable cells with the jobs that produce them.
    """

    def __init__(self, handle: JobHandle, dependencies: tuple[JobHandle, ...], results: dict[JobHandle, Any]) -> None:
        self.handle = handle
        self.dependencies = dependencies
        self._results = results

    def result(self, handle: JobHandle) -> Any:
        """Return the result of one of this job's dependencies.

        Raises:
            KeyError: If handle is not a declared dependency of this job.
        """
        if handle not in self.dependencies:
            raise KeyError(f"Job '{self.handle.name}' does not depend on '{handle.name}'")
        return self._results.get(handle)

    def dependency_results(self) -> list[Any]:
        """Results of every dependency, in declaration order."""
        return [self._results.get(dep) for dep in self.dependencies]
