"""Dependency-aware job scheduler.

Runs submitted jobs on a thread pool as soon as all of their prerequisites
have reached a terminal state. Submission never blocks: a job with pending
prerequisites is parked until the last one completes, at which point the
completing worker dispatches it.

Results are kept in a store keyed by JobHandle. A job reads the results of
its prerequisites through the JobContext it is called with.
"""

import logging
import multiprocessing
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable

from .callbacks import JobCallback, NullCallback
from .models import Job, JobContext, JobHandle, JobState, JobWork

logger = logging.getLogger(__name__)


class JobScheduler:
    """Executes jobs respecting their dependency DAG.

    Thread-safe: submit() may be called from any thread, including from inside
    a running job. Cycles cannot be formed because a job can only depend on
    handles that already exist.

    Usage:
        with JobScheduler(max_workers=4) as scheduler:
            a = scheduler.submit(lambda ctx: "a.o", name="compile:a.cpp")
            b = scheduler.submit(lambda ctx: ctx.result(a), dependencies=[a])
            b.wait()

    Args:
        max_workers: Number of worker threads (default: CPU count).
        callback: Receives job state transitions.
    """

    def __init__(self, max_workers: int | None = None, callback: JobCallback | None = None) -> None:
        self._max_workers = max_workers or multiprocessing.cpu_count()
        self._callback: JobCallback = callback if callback is not None else NullCallback()
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._shutdown = False

        self._jobs: dict[JobHandle, Job] = {}
        self._results: dict[JobHandle, Any] = {}
        # Number of non-terminal prerequisites per parked job
        self._waiting_on: dict[JobHandle, int] = {}
        self._dependents: dict[JobHandle, list[JobHandle]] = {}

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def submit(self, work: JobWork, dependencies: Iterable[JobHandle] = (), name: str | None = None) -> JobHandle:
        """Register a job and run it once its dependencies complete.

        Args:
            work: Callable receiving a JobContext. Its return value is the result.
            dependencies: Handles previously returned by this scheduler.
            name: Optional human-readable job name.

        Returns:
            Handle to the new job.

        Raises:
            ValueError: If a dependency was not created by this scheduler.
            RuntimeError: If the scheduler has been shut down.
        """
        deps = tuple(dependencies)
        job = Job.create(work, deps, name, self)

        with self._lock:
            if self._shutdown:
                raise RuntimeError("JobScheduler has been shut down")
            for dep in deps:
                if dep not in self._jobs:
                    raise ValueError(f"Job '{job.name}' depends on unknown job '{dep.name}'")

            self._jobs[job.handle] = job
            outstanding = 0
            for dep in deps:
                if not self._jobs[dep].state.is_terminal:
                    outstanding += 1
                    self._dependents.setdefault(dep, []).append(job.handle)

            if outstanding:
                self._waiting_on[job.handle] = outstanding
                logger.debug("Job %s parked on %d dependencies", job.name, outstanding)
            else:
                self._dispatch_locked(job)

        return job.handle

    def _ensure_executor_locked(self) -> ThreadPoolExecutor:
        if self._executor is None:
            logger.debug("Starting job pool with %d workers", self._max_workers)
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="job")
        return self._executor

    def _dispatch_locked(self, job: Job) -> None:
        self._ensure_executor_locked().submit(self._run_job, job)

    def _run_job(self, job: Job) -> None:
        """Execute a job in a worker thread and record its completion."""
        with self._lock:
            job.mark_started()
        self._notify(job.name, JobState.RUNNING, "")

        context = JobContext(job.handle, job.dependencies, self._results)
        result: Any = None
        error = ""
        try:
            result = job.work(context)
        except KeyboardInterrupt:
            self._complete(job, None, "Interrupted by user")
            raise
        except Exception as e:
            logger.error("Job %s raised: %s", job.name, e, exc_info=True)
            error = str(e) or type(e).__name__

        self._complete(job, result, error)

    def _complete(self, job: Job, result: Any, error: str) -> None:
        """Store the result, set the completion flag and release dependents."""
        with self._lock:
            if job.state.is_terminal:
                return
            job.end_time = time.monotonic()
            job.result = result
            job.error = error
            job.state = JobState.FAILED if error else JobState.COMPLETED
            self._results[job.handle] = result
            job.handle._event.set()

            released: list[Job] = []
            for dependent in self._dependents.pop(job.handle, []):
                remaining = self._waiting_on[dependent] - 1
                if remaining:
                    self._waiting_on[dependent] = remaining
                else:
                    del self._waiting_on[dependent]
                    released.append(self._jobs[dependent])

            if not self._shutdown:
                for ready in released:
                    self._dispatch_locked(ready)

        duration = job.duration() or 0.0
        self._notify(job.name, job.state, error if error else f"{duration:.1f}s")

    def _notify(self, job_name: str, state: JobState, detail: str) -> None:
        try:
            self._callback.on_job_update(job_name, state, detail)
        except KeyboardInterrupt:
            raise
        except Exception as e:
            logger.error("Job callback error: %s", e, exc_info=True)

    def result(self, handle: JobHandle) -> Any:
        """Return a job's result, or None while pending or when absent."""
        with self._lock:
            return self._results.get(handle)

    def get_job(self, handle: JobHandle) -> Job:
        """Get the job behind a handle.

        Raises:
            KeyError: If the handle is unknown to this scheduler.
        """
        with self._lock:
            if handle not in self._jobs:
                raise KeyError(f"Unknown job: {handle.name}")
            return self._jobs[handle]

    def wait_for_completion(self, handles: Iterable[JobHandle], timeout: float | None = None) -> bool:
        """Wait for all specified jobs to reach a terminal state.

        Args:
            handles: Jobs to wait for.
            timeout: Maximum time to wait in seconds (None = infinite).

        Returns:
            True if every job finished within the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for handle in handles:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not handle.wait(remaining):
                logger.warning("wait_for_completion timed out after %ss waiting on %s", timeout, handle.name)
                return False
        return True

    def wait_all(self, timeout: float | None = None) -> bool:
        """Wait for every job submitted so far, including jobs submitted while waiting."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [h for h, j in self._jobs.items() if not j.state.is_terminal]
            if not pending:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not self.wait_for_completion(pending, remaining):
                return False

    def get_statistics(self) -> dict[str, int]:
        """Get job counts by state."""
        with self._lock:
            jobs = list(self._jobs.values())
        return {
            "total_jobs": len(jobs),
            "pending": sum(1 for j in jobs if j.state == JobState.PENDING),
            "running": sum(1 for j in jobs if j.state == JobState.RUNNING),
            "completed": sum(1 for j in jobs if j.state == JobState.COMPLETED),
            "failed": sum(1 for j in jobs if j.state == JobState.FAILED),
        }

    def get_all_jobs(self) -> list[Job]:
        """Return all jobs in submission order."""
        with self._lock:
            return list(self._jobs.values())

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and tear down the worker pool.

        With wait=True, every submitted job is allowed to finish first.
        """
        if wait:
            self.wait_all()
        with self._lock:
            self._shutdown = True
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)
        logger.debug("JobScheduler shut down")

    def to_dict(self) -> dict[str, Any]:
        """Serialize scheduler state to dictionary."""
        with self._lock:
            return {"jobs": [job.to_dict() for job in self._jobs.values()]}

    def __enter__(self) -> "JobScheduler":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown(wait=exc_type is None)
