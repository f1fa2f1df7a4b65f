"""Build Context - collaborators shared by every job of a build.

BuildContext is created once per build by the caller (CLI, tests) and passed
explicitly to Workspace.build() and Project.build(). Jobs capture it when they
are submitted, so isolated schedulers and fake process runners can be used
side by side.
"""

from dataclasses import dataclass, field

from ..compilers.base import CompilerBackend
from ..compilers.registry import get_backend
from ..jobs.callbacks import JobCallback
from ..jobs.scheduler import JobScheduler
from ..subprocess_utils import ProcessRunner, SubprocessRunner
from .kinds import CompilerKind


@dataclass(frozen=True)
class BuildContext:
    """Scheduler and process runner for one build.

    Attributes:
        scheduler: Executes compile, link and aggregation jobs
        runner: Launches toolchain executables for the compiler backends
    """

    scheduler: JobScheduler
    runner: ProcessRunner = field(default_factory=SubprocessRunner)

    @classmethod
    def create(
        cls,
        max_workers: int | None = None,
        runner: ProcessRunner | None = None,
        callback: JobCallback | None = None,
    ) -> "BuildContext":
        """Create a context with its own scheduler."""
        return cls(
            scheduler=JobScheduler(max_workers=max_workers, callback=callback),
            runner=runner if runner is not None else SubprocessRunner(),
        )

    def backend(self, kind: CompilerKind | None) -> CompilerBackend | None:
        """Resolve a compiler backend bound to this context's runner."""
        return get_backend(kind, self.runner)
