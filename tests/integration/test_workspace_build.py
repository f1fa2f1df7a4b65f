"""Integration tests: full workspace builds through the scheduler.

A recording process runner stands in for the toolchain, creating every output
file a command names, so the complete compile -> link -> aggregate graph runs
without a compiler installed.
"""

import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from wsbuild.build.build_context import BuildContext
from wsbuild.build.graph import DependencyCycleError
from wsbuild.build.kinds import ProjectKind
from wsbuild.build.workspace import BuildState, Workspace
from wsbuild.jobs.models import JobState

pytestmark = pytest.mark.integration


class _FinishedListener:
    def __init__(self) -> None:
        self.calls: list[tuple[Workspace, Path | None, bool]] = []
        self.event = threading.Event()

    def __call__(self, workspace, output_path, success) -> None:
        self.calls.append((workspace, output_path, success))
        self.event.set()


@pytest.fixture(autouse=True)
def _linux_platform():
    with patch("sys.platform", "linux"):
        yield


def _workspace(tmp_path: Path) -> Workspace:
    return Workspace.new(tmp_path, "Demo")


def _add_project(workspace, tmp_path, name, kind, sources=(), libraries=()):
    project = workspace.new_project(tmp_path / name, name)
    project.kind = kind
    for source in sources:
        project.add_file(tmp_path / name / source)
    project.local_configuration.libraries.extend(libraries)
    return project


def _build(workspace, runner, max_workers=4):
    listener = _FinishedListener()
    workspace.events.subscribe(listener)
    context = BuildContext.create(max_workers=max_workers, runner=runner)
    try:
        handle = workspace.build(context)
        assert handle is not None
        assert handle.wait(timeout=10)
        assert listener.event.wait(timeout=10)
    finally:
        context.scheduler.shutdown()
    return handle, listener, context


class TestSuccessfulBuild:
    def test_library_and_application(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "liba", ProjectKind.STATIC_LIBRARY, ["a.cpp"])
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"], ["liba"])

        handle, listener, context = _build(workspace, runner)

        expected = tmp_path / "app" / "app"
        assert handle.result() == expected
        assert listener.calls == [(workspace, expected, True)]
        assert workspace.build_state == BuildState.SUCCEEDED
        assert workspace.last_output == expected

        archive = runner.commands_for("ar")
        assert len(archive) == 1
        assert archive[0][2] == str(tmp_path / "liba" / "libliba.a")

        link = runner.commands_for("g++")[-1]
        assert "-lliba" in link
        assert f"-L{tmp_path / 'liba'}" in link
        assert link.index("-lliba") > link.index("-o")

    def test_graph_shape(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        liba = _add_project(workspace, tmp_path, "liba", ProjectKind.STATIC_LIBRARY, ["a.cpp"])
        app = _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"], ["liba"])

        handle, _, context = _build(workspace, runner)
        scheduler = context.scheduler

        link_liba = scheduler.get_job(workspace.link_jobs["liba"])
        link_app = scheduler.get_job(workspace.link_jobs["app"])
        aggregate = scheduler.get_job(handle)

        assert link_liba.dependencies == tuple(liba.compiler_outputs)
        assert set(link_app.dependencies) == set(app.compiler_outputs) | {workspace.link_jobs["liba"]}
        assert aggregate.dependencies == (workspace.link_jobs["liba"], workspace.link_jobs["app"])
        assert aggregate.name == "build:Demo"
        assert link_liba.end_time <= link_app.start_time

    def test_chain_links_in_dependency_order(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "A", ProjectKind.APPLICATION, ["a.cpp"], ["B"])
        _add_project(workspace, tmp_path, "B", ProjectKind.STATIC_LIBRARY, ["b.cpp"], ["C"])
        _add_project(workspace, tmp_path, "C", ProjectKind.STATIC_LIBRARY, ["c.cpp"])

        handle, listener, context = _build(workspace, runner)

        jobs = {name: context.scheduler.get_job(h) for name, h in workspace.link_jobs.items()}
        assert list(workspace.link_jobs) == ["C", "B", "A"]
        assert jobs["C"].end_time <= jobs["B"].start_time
        assert jobs["B"].end_time <= jobs["A"].start_time
        assert handle.result() == tmp_path / "A" / "A"
        assert listener.calls[0][2] is True

    def test_release_selection_reaches_compiler(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"])
        workspace.build_matrix.select("Target", "Release")

        _build(workspace, runner)

        compile_cmd = runner.commands_for("g++")[0]
        assert "-O2" in compile_cmd

    def test_sibling_settings_do_not_leak(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        first = _add_project(workspace, tmp_path, "first", ProjectKind.APPLICATION, ["one.cpp"])
        first.local_configuration.defines.append("FIRST_ONLY")
        _add_project(workspace, tmp_path, "second", ProjectKind.APPLICATION, ["two.cpp"])

        _build(workspace, runner)

        second_compile = [c for c in runner.commands_for("g++") if str(tmp_path / "second" / "two.cpp") in c]
        assert len(second_compile) == 1
        assert "-DFIRST_ONLY" not in second_compile[0]

    def test_file_moved_to_named_filter_compiles_once(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        project = _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"])
        project.new_file_filter("src")
        project.add_file(tmp_path / "app" / "main.cpp", "src")

        handle, _, _ = _build(workspace, runner)

        source = str(tmp_path / "app" / "main.cpp")
        compiles = [c for c in runner.commands_for("g++") if source in c]
        assert len(compiles) == 1
        link = runner.commands_for("g++")[-1]
        assert sum(1 for arg in link if arg.endswith("main.cpp.o")) == 1
        assert handle.result() == tmp_path / "app" / "app"

    def test_rebuild_after_finish(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"])
        _build(workspace, runner)
        handle, listener, _ = _build(workspace, runner)
        assert handle.result() == tmp_path / "app" / "app"
        assert listener.calls[0][2] is True


class TestFailedBuild:
    def test_compile_failure_skips_link(self, tmp_path, make_runner):
        runner = make_runner(fail_on=("broken.cpp",))
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["broken.cpp", "main.cpp"])

        handle, listener, context = _build(workspace, runner)

        assert handle.result() is None
        assert listener.calls == [(workspace, None, False)]
        assert workspace.build_state == BuildState.FAILED
        # Two compiles ran, the link never did
        assert all(cmd[1] == "-c" for cmd in runner.commands_for("g++"))
        assert context.scheduler.get_job(handle).state == JobState.COMPLETED

    def test_failed_library_blocks_dependent_link(self, tmp_path, make_runner):
        runner = make_runner(fail_on=("a.cpp",))
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "liba", ProjectKind.STATIC_LIBRARY, ["a.cpp"])
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"], ["liba"])

        handle, listener, _ = _build(workspace, runner)

        assert handle.result() is None
        assert listener.calls[0][2] is False
        assert runner.commands_for("ar") == []
        assert all(cmd[1] == "-c" for cmd in runner.commands_for("g++"))

    def test_unspecified_kind_fails(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "thing", ProjectKind.UNSPECIFIED, ["main.cpp"])

        handle, listener, _ = _build(workspace, runner)

        assert handle.result() is None
        assert listener.calls[0][1:] == (None, False)

    def test_project_without_sources_fails(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "empty", ProjectKind.APPLICATION, ["notes.txt"])

        handle, listener, _ = _build(workspace, runner)

        assert handle.result() is None
        assert runner.commands == []
        assert listener.calls[0][2] is False

    def test_no_compiler_selected(self, tmp_path, runner):
        workspace = Workspace(tmp_path, "Bare")
        _add_project(workspace, tmp_path, "app", ProjectKind.APPLICATION, ["main.cpp"])

        handle, listener, _ = _build(workspace, runner)

        assert handle.result() is None
        assert runner.commands == []
        assert listener.calls[0][2] is False

    def test_cycle_raises_before_any_job(self, tmp_path, runner):
        workspace = _workspace(tmp_path)
        _add_project(workspace, tmp_path, "A", ProjectKind.STATIC_LIBRARY, ["a.cpp"], ["B"])
        _add_project(workspace, tmp_path, "B", ProjectKind.STATIC_LIBRARY, ["b.cpp"], ["A"])
        context = BuildContext.create(max_workers=2, runner=runner)
        try:
            with pytest.raises(DependencyCycleError):
                workspace.build(context)
            assert context.scheduler.get_all_jobs() == []
        finally:
            context.scheduler.shutdown()
        assert workspace.build_state == BuildState.IDLE
