"""Dependency-aware job scheduling.

Public API:
    JobScheduler: Thread-pool executor that runs a job once all its prerequisites completed.
    JobHandle: Reference to a submitted job, used to declare dependencies and read results.
    JobContext: Read-only view of dependency results handed to each job.
    BuildProgressDisplay: Rich live display implementing JobCallback.
"""

from .callbacks import JobCallback, NullCallback
from .models import Job, JobContext, JobHandle, JobState
from .progress_display import BuildProgressDisplay
from .scheduler import JobScheduler

__all__ = [
    "BuildProgressDisplay",
    "Job",
    "JobCallback",
    "JobContext",
    "JobHandle",
    "JobScheduler",
    "JobState",
    "NullCallback",
]
