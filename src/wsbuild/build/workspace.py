"""Workspace: a collection of projects plus a build matrix.

Building a workspace assembles the whole job graph:

    compile(a.cpp) ──> link(liba) ──────────────┐
    compile(main.cpp) ──> link(app) <── link(liba)
                              │                 │
                              └──> build(workspace) <┘

1. The active configuration is resolved from the build matrix.
2. Projects are topologically ordered by the project names in their library lists.
3. Each project submits its compile jobs with the workspace configuration
   combined with its local one.
4. Each project gets a link job depending on its compile jobs and on the link
   jobs of the workspace projects it references.
5. A terminal aggregation job depends on every link job and raises BuildFinished.

On-disk layout (<location>/<name>.wsworkspace):
    Name, Matrix, Projects, Selection
"""

import functools
import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any

from ..jobs.models import JobContext, JobHandle
from .build_context import BuildContext
from .build_matrix import BuildMatrix
from .configuration import Configuration
from .events import BuildEvents
from .graph import order_projects
from .kinds import ProjectKind
from .project import Project
from .serialization import ObjectWriter, SerializationError, anchor, read_objects, relative_to

logger = logging.getLogger(__name__)


class BuildState(Enum):
    """Lifecycle of a workspace build."""

    IDLE = "idle"
    GRAPH_CONSTRUCTED = "graph_constructed"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _link_job(
    context: BuildContext,
    config: Configuration,
    project_name: str,
    kind: ProjectKind,
    compile_jobs: tuple[JobHandle, ...],
    library_jobs: dict[str, JobHandle],
    job: JobContext,
) -> Path | None:
    """Body of a link job. Returns the artifact path, or None on failure.

    Linking is all-or-nothing: a project whose sources did not all compile, or
    whose workspace libraries did not all link, is not linked.
    """
    if not compile_jobs:
        logger.error("Nothing to link for %s: no compilable sources", project_name)
        return None

    objects = [job.result(handle) for handle in compile_jobs]
    failed = sum(1 for obj in objects if obj is None)
    if failed:
        logger.error("Not linking %s: %d of %d sources failed to compile", project_name, failed, len(objects))
        return None

    link_config = config.copy()
    for library_name, handle in library_jobs.items():
        artifact = job.result(handle)
        if artifact is None:
            logger.error("Not linking %s: library %s failed to build", project_name, library_name)
            return None
        if artifact.parent not in link_config.library_dirs:
            link_config.library_dirs.append(artifact.parent)

    backend = context.backend(config.compiler)
    if backend is None:
        logger.error("Failed to link %s. No compiler active!", project_name)
        return None

    return backend.link(link_config, objects, project_name, kind)


class Workspace:
    """Named collection of projects and build configuration presets.

    Args:
        location: Directory containing the workspace file.
        name: Workspace name; also the file name of the workspace file.
    """

    EXTENSION = ".wsworkspace"

    def __init__(self, location: Path, name: str = "MyWorkspace") -> None:
        self.location = Path(location)
        self.name = name
        self.projects: list[Project] = []
        self.build_matrix = BuildMatrix()
        self.events = BuildEvents()

        self.link_jobs: dict[str, JobHandle] = {}
        self.last_output: Path | None = None
        self._build_state = BuildState.IDLE
        self._state_lock = threading.Lock()

    @classmethod
    def new(cls, location: Path, name: str = "MyWorkspace") -> "Workspace":
        """Create a workspace with the default build matrix."""
        workspace = cls(location, name)
        workspace.build_matrix = BuildMatrix.default()
        return workspace

    @classmethod
    def load(cls, path: Path) -> "Workspace | None":
        """Load a workspace from its file path, or return None if it cannot be read."""
        path = Path(path)
        workspace = cls(path.parent, path.stem)
        if not workspace.deserialize():
            return None
        return workspace

    def __repr__(self) -> str:
        return f"Workspace(name={self.name!r}, projects={[p.name for p in self.projects]})"

    @property
    def file_path(self) -> Path:
        return self.location / f"{self.name}{self.EXTENSION}"

    @property
    def build_state(self) -> BuildState:
        with self._state_lock:
            return self._build_state

    def _set_state(self, state: BuildState) -> None:
        with self._state_lock:
            self._build_state = state

    # ─── Building ────────────────────────────────────────────────────────────

    def build(self, context: BuildContext) -> JobHandle | None:
        """Submit the full compile -> link -> aggregate job graph.

        Returns immediately; completion is reported through events.build_finished
        and through the returned aggregation job handle.

        Returns:
            Handle of the aggregation job, or None if the workspace has no projects.

        Raises:
            DependencyCycleError: If project library references form a cycle.
            RuntimeError: If a build of this workspace is still running.
        """
        if not self.projects:
            logger.warning("Workspace %s has no projects to build", self.name)
            return None

        with self._state_lock:
            if self._build_state in (BuildState.GRAPH_CONSTRUCTED, BuildState.RUNNING):
                raise RuntimeError(f"Workspace '{self.name}' is already building")
            self._build_state = BuildState.GRAPH_CONSTRUCTED

        try:
            ordered = order_projects(self.projects)
            logger.info("Build order: %s", " -> ".join(p.name for p in ordered))

            workspace_config = self.build_matrix.current_configuration()
            self.link_jobs = {}
            self.last_output = None
            self._submit_link_jobs(context, ordered, workspace_config)
        except BaseException:
            self._set_state(BuildState.IDLE)
            raise

        self._set_state(BuildState.RUNNING)
        return context.scheduler.submit(
            self._aggregate,
            dependencies=list(self.link_jobs.values()),
            name=f"build:{self.name}",
        )

    def _submit_link_jobs(self, context: BuildContext, ordered: list[Project], workspace_config: Configuration) -> None:
        for project in ordered:
            # Fresh copy per project so one project's settings never leak into another
            resolved = project.build(context, workspace_config.copy())
            link_config = workspace_config.copy().override(resolved)

            library_jobs = {
                library: self.link_jobs[library]
                for library in link_config.libraries
                if library in self.link_jobs
            }
            project.linker_dependencies.extend(library_jobs.values())

            self.link_jobs[project.name] = context.scheduler.submit(
                functools.partial(
                    _link_job,
                    context,
                    link_config,
                    project.name,
                    project.kind,
                    tuple(project.compiler_outputs),
                    library_jobs,
                ),
                dependencies=project.linker_dependencies,
                name=f"link:{project.name}",
            )

    def _aggregate(self, job: JobContext) -> Path | None:
        """Body of the aggregation job.

        The build succeeds when every link job produced an artifact; the reported
        output is the artifact of the last project in build order.
        """
        results = job.dependency_results()
        output_path = results[-1] if results and all(r is not None for r in results) else None
        success = output_path is not None

        self.last_output = output_path
        self._set_state(BuildState.SUCCEEDED if success else BuildState.FAILED)
        if success:
            logger.info("Done building workspace %s: %s", self.name, output_path)
        else:
            logger.error("Failed to build workspace %s", self.name)

        self.events.build_finished(self, output_path, success)
        return output_path

    # ─── Projects ────────────────────────────────────────────────────────────

    def project_by_name(self, name: str) -> Project | None:
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def new_project(self, location: Path, name: str) -> Project:
        """Create an empty project and add it to the workspace.

        Raises:
            ValueError: If a project with that name already exists.
        """
        if self.project_by_name(name) is not None:
            raise ValueError(f"Duplicate project name: {name}")
        project = Project(Path(location), name)
        self.projects.append(project)
        return project

    def add_project(self, path: Path) -> bool:
        """Add an existing project from its file path (with or without extension)."""
        path = anchor(str(path), self.location)
        if path.suffix == Project.EXTENSION:
            path = path.with_suffix("")
        if self.project_by_name(path.name) is not None:
            return False

        project = Project(path.parent, path.name)
        if not project.deserialize():
            return False
        if self.project_by_name(project.name) is not None:
            return False

        self.projects.append(project)
        self.serialize()
        return True

    def remove_project(self, name: str) -> bool:
        project = self.project_by_name(name)
        if project is None:
            return False
        self.projects.remove(project)
        self.serialize()
        return True

    def rename_project(self, name: str, new_name: str) -> bool:
        """Rename a project and its project file."""
        project = self.project_by_name(name)
        if project is None or not new_name or self.project_by_name(new_name) is not None:
            return False

        old_path = project.file_path
        new_path = project.location / f"{new_name}{Project.EXTENSION}"
        if new_path.exists():
            logger.error("Cannot rename project %s: %s already exists", name, new_path)
            return False

        project.name = new_name
        if old_path.exists():
            try:
                os.replace(old_path, project.file_path)
            except OSError as e:
                logger.error("Failed to rename %s: %s", old_path, e)
                project.name = name
                return False

        project.serialize()
        self.serialize()
        return True

    def rename(self, new_name: str) -> bool:
        """Rename the workspace and its workspace file."""
        if not new_name:
            return False
        old_path = self.file_path
        new_path = self.location / f"{new_name}{self.EXTENSION}"
        if new_path != old_path and new_path.exists():
            logger.error("Cannot rename workspace %s: %s already exists", self.name, new_path)
            return False

        old_name = self.name
        self.name = new_name
        if old_path.exists():
            try:
                os.replace(old_path, self.file_path)
            except OSError as e:
                logger.error("Failed to rename %s: %s", old_path, e)
                self.name = old_name
                return False
        return self.serialize()

    # ─── Persistence ─────────────────────────────────────────────────────────

    def serialize(self) -> bool:
        """Write the workspace file and every project file."""
        try:
            with ObjectWriter(self.file_path) as writer:
                writer.write_object("Name", self.name)
                writer.write_object("Matrix", self.build_matrix.to_dict())
                writer.write_object(
                    "Projects",
                    [relative_to(p.location / p.name, self.location) for p in self.projects],
                )
                writer.write_object("Selection", self.build_matrix.selection())
        except SerializationError as e:
            logger.error("%s", e)
            return False

        for project in self.projects:
            project.serialize()
        return True

    def deserialize(self) -> bool:
        """Load the workspace file and its projects.

        On failure the in-memory workspace is left unchanged.
        """
        objects: dict[str, Any] = {}
        try:
            read_objects(self.file_path, objects.__setitem__)
        except SerializationError as e:
            logger.error("%s", e)
            return False

        name = objects.get("Name")
        matrix = objects.get("Matrix")
        selection = objects.get("Selection")
        build_matrix = BuildMatrix.from_dict(
            matrix if isinstance(matrix, dict) else {},
            selection if isinstance(selection, dict) else None,
        )

        projects: list[Project] = []
        entries = objects.get("Projects")
        for entry in entries if isinstance(entries, list) else []:
            project_path = anchor(str(entry), self.location)
            project = Project(project_path.parent, project_path.name)
            if not project.deserialize():
                logger.warning("Project %s could not be loaded", project_path)
            projects.append(project)

        if isinstance(name, str):
            self.name = name
        self.build_matrix = build_matrix
        self.projects = projects
        return True
