"""
Command-line interface for wsbuild.

This module provides the `wsbuild` CLI tool for creating, editing and
building workspaces.
"""

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console

from wsbuild import __version__
from wsbuild.build.build_context import BuildContext
from wsbuild.build.graph import DependencyCycleError
from wsbuild.build.kinds import ProjectKind
from wsbuild.build.project import Project
from wsbuild.build.workspace import Workspace
from wsbuild.jobs.progress_display import BuildProgressDisplay
from wsbuild.output import (
    TimedLogger,
    log,
    log_build_complete,
    log_detail,
    log_error,
    log_header,
    log_phase,
    log_warning,
    set_verbose,
)

logger = logging.getLogger(__name__)


@dataclass
class InitArgs:
    """Arguments for the init command."""

    directory: Path
    name: str = "MyWorkspace"


@dataclass
class NewProjectArgs:
    """Arguments for the new-project command."""

    workspace: Path
    directory: Path
    name: str
    kind: ProjectKind = ProjectKind.APPLICATION


@dataclass
class AddFileArgs:
    """Arguments for the add-file command."""

    project: Path
    file: Path
    filter_name: str = ""


@dataclass
class ShowArgs:
    """Arguments for the show command."""

    workspace: Path


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    workspace: Path
    select: list[str] = field(default_factory=list)
    jobs: Optional[int] = None
    verbose: bool = False
    no_tui: bool = False


def _workspace_file(path: Path) -> Path:
    """Accept either a workspace file or a directory holding exactly one."""
    if path.is_dir():
        candidates = sorted(path.glob(f"*{Workspace.EXTENSION}"))
        if len(candidates) == 1:
            return candidates[0]
        raise FileNotFoundError(f"Expected one {Workspace.EXTENSION} file in {path}, found {len(candidates)}")
    if path.suffix != Workspace.EXTENSION:
        path = path.with_name(path.name + Workspace.EXTENSION)
    if not path.exists():
        raise FileNotFoundError(f"Workspace file not found: {path}")
    return path


def _load_workspace(path: Path) -> Workspace:
    workspace = Workspace.load(_workspace_file(path))
    if workspace is None:
        raise ValueError(f"Could not read workspace {path}")
    return workspace


def _jobs_from_environment() -> Optional[int]:
    value = os.environ.get("WSBUILD_JOBS")
    if not value:
        return None
    try:
        jobs = int(value)
    except ValueError:
        logger.warning("Ignoring invalid WSBUILD_JOBS=%r", value)
        return None
    return jobs if jobs > 0 else None


def _use_live_display(no_tui: bool) -> bool:
    if no_tui or os.environ.get("WSBUILD_NO_TUI") == "1":
        return False
    return sys.stdout.isatty()


def init_command(args: InitArgs) -> int:
    """Create a workspace with the default build matrix.

    Examples:
        wsbuild init demo
        wsbuild init demo --name Demo
    """
    workspace = Workspace.new(args.directory.resolve(), args.name)
    if workspace.file_path.exists():
        log_error(f"Workspace already exists: {workspace.file_path}")
        return 1
    if not workspace.serialize():
        log_error(f"Could not write {workspace.file_path}")
        return 1
    log(f"Created workspace {workspace.name}: {workspace.file_path}")
    return 0


def new_project_command(args: NewProjectArgs) -> int:
    """Create an empty project and add it to a workspace."""
    workspace = _load_workspace(args.workspace)
    try:
        project = workspace.new_project(args.directory.resolve(), args.name)
    except ValueError as e:
        log_error(str(e))
        return 1
    project.kind = args.kind
    if not workspace.serialize():
        log_error(f"Could not write {workspace.file_path}")
        return 1
    log(f"Created {project.kind} project {project.name}: {project.file_path}")
    return 0


def add_file_command(args: AddFileArgs) -> int:
    """Add an existing file to a project, creating the filter if needed."""
    project_path = args.project.resolve()
    if project_path.suffix == Project.EXTENSION:
        project_path = project_path.with_suffix("")
    project = Project(project_path.parent, project_path.name)
    if not project.deserialize():
        log_error(f"Could not read project {args.project}")
        return 1

    if project.file_filter_by_name(args.filter_name) is None:
        project.new_file_filter(args.filter_name)
    if not project.add_file(args.file.resolve(), args.filter_name):
        log_error(f"{args.file} is already part of {project.name}")
        return 1
    log(f"Added {args.file} to {project.name}")
    return 0


def show_command(args: ShowArgs) -> int:
    """Print the workspace matrix, projects and files."""
    workspace = _load_workspace(args.workspace)
    log(f"Workspace {workspace.name} ({workspace.file_path})")

    for column in workspace.build_matrix.columns:
        presets = ", ".join(
            f"[{name}]" if name == column.current else name for name in column.configurations
        )
        log_detail(f"{column.name}: {presets}")

    for project in workspace.projects:
        log(f"Project {project.name} ({project.kind})")
        for file_filter in project.file_filters:
            prefix = f"{file_filter.name}/" if file_filter.name else ""
            for path in file_filter.files:
                log_detail(f"{prefix}{path.name}")
        if project.local_configuration.libraries:
            log_detail(f"Libraries: {', '.join(project.local_configuration.libraries)}")
    return 0


def build_command(args: BuildArgs) -> int:
    """Build every project of a workspace.

    Examples:
        wsbuild build demo                         # Build with the saved selection
        wsbuild build demo --select Target=Release # Override a matrix column
        wsbuild build demo -j 4 --no-tui           # Four workers, plain output
    """
    set_verbose(args.verbose)
    log_header("wsbuild", __version__)

    with TimedLogger("Loading workspace", phase=(1, 2)) as timed:
        workspace = _load_workspace(args.workspace)
        for selection in args.select:
            column, _, preset = selection.partition("=")
            try:
                workspace.build_matrix.select(column, preset)
            except KeyError as e:
                log_error(str(e.args[0]))
                return 1
        timed.detail(f"Projects: {', '.join(p.name for p in workspace.projects) or '(none)'}")

    selection_text = ", ".join(f"{c}={p}" for c, p in workspace.build_matrix.selection().items())
    log_phase(2, 2, f"Building ({selection_text})...")

    display = BuildProgressDisplay(Console(), workspace.name) if _use_live_display(args.no_tui) else None
    jobs = args.jobs if args.jobs is not None else _jobs_from_environment()
    context = BuildContext.create(max_workers=jobs, callback=display)

    start_time = time.time()
    if display is not None:
        display.start()
    try:
        handle = workspace.build(context)
        if handle is not None:
            handle.wait()
    except DependencyCycleError as e:
        log_error(str(e))
        return 1
    finally:
        if display is not None:
            display.stop()
        context.scheduler.shutdown()

    if handle is None:
        log_warning("Nothing to build")
        return 0

    output_path = handle.result()
    success = output_path is not None
    if success:
        log_detail(f"Output: {output_path}")
    log_build_complete(time.time() - start_time, success)
    return 0 if success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wsbuild",
        description="wsbuild - workspace build system for C/C++ projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"wsbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Init command
    init_parser = subparsers.add_parser("init", help="Create a new workspace")
    init_parser.add_argument("directory", type=Path, help="Workspace directory")
    init_parser.add_argument("--name", default="MyWorkspace", help="Workspace name (default: MyWorkspace)")

    # New project command
    project_parser = subparsers.add_parser("new-project", help="Add a new project to a workspace")
    project_parser.add_argument("workspace", type=Path, help="Workspace file or directory")
    project_parser.add_argument("directory", type=Path, help="Project directory")
    project_parser.add_argument("name", help="Project name")
    project_parser.add_argument(
        "--kind",
        choices=[kind.value for kind in ProjectKind],
        default=ProjectKind.APPLICATION.value,
        help="Artifact kind (default: Application)",
    )

    # Add file command
    file_parser = subparsers.add_parser("add-file", help="Add a file to a project")
    file_parser.add_argument("project", type=Path, help="Project file")
    file_parser.add_argument("file", type=Path, help="File to add")
    file_parser.add_argument("--filter", dest="filter_name", default="", help="File filter name")

    # Show command
    show_parser = subparsers.add_parser("show", help="Show a workspace")
    show_parser.add_argument("workspace", type=Path, help="Workspace file or directory")

    # Build command
    build_parser = subparsers.add_parser("build", help="Build a workspace")
    build_parser.add_argument("workspace", type=Path, help="Workspace file or directory")
    build_parser.add_argument(
        "-s",
        "--select",
        action="append",
        default=[],
        metavar="COLUMN=PRESET",
        help="Select a build matrix preset (repeatable)",
    )
    build_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Number of worker threads (default: $WSBUILD_JOBS or CPU count)",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )
    build_parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Disable the live job display",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """wsbuild - workspace build system for C/C++ projects."""
    parser = _build_parser()
    parsed_args = parser.parse_args(argv)

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if getattr(parsed_args, "verbose", False) else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if parsed_args.command == "init":
            code = init_command(InitArgs(directory=parsed_args.directory, name=parsed_args.name))
        elif parsed_args.command == "new-project":
            code = new_project_command(
                NewProjectArgs(
                    workspace=parsed_args.workspace,
                    directory=parsed_args.directory,
                    name=parsed_args.name,
                    kind=ProjectKind(parsed_args.kind),
                )
            )
        elif parsed_args.command == "add-file":
            code = add_file_command(
                AddFileArgs(project=parsed_args.project, file=parsed_args.file, filter_name=parsed_args.filter_name)
            )
        elif parsed_args.command == "show":
            code = show_command(ShowArgs(workspace=parsed_args.workspace))
        else:
            code = build_command(
                BuildArgs(
                    workspace=parsed_args.workspace,
                    select=parsed_args.select,
                    jobs=parsed_args.jobs,
                    verbose=parsed_args.verbose,
                    no_tui=parsed_args.no_tui,
                )
            )
    except (FileNotFoundError, ValueError) as e:
        log_error(str(e))
        code = 1
    except KeyboardInterrupt:
        log_warning("Interrupted")
        code = 130  # Standard exit code for SIGINT

    sys.exit(code)


if __name__ == "__main__":
    main()
