"""Rich-based live progress display for workspace builds.

Renders one line per job showing its current state, with a spinner while it
runs and the elapsed time or error once it finishes:

    compile:main.cpp      Running   ⠹ 1.2s
    link:liba             Done      ✓ 0.3s
    compile:util.cpp      Failed    ✗ compiler crashed

Thread-safe: scheduler worker threads call on_job_update() concurrently
while the display renders in the main thread.
"""

import threading
import time
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .models import JobState

_SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")


class _JobDisplayState:
    """Internal state for a single job's display line."""

    __slots__ = ("name", "state", "detail", "elapsed", "start_time")

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = JobState.PENDING
        self.detail: str = ""
        self.elapsed: float = 0.0
        self.start_time: float | None = None


class BuildProgressDisplay:
    """Live job table using Rich.

    Implements JobCallback so it can be handed straight to a JobScheduler.

    Args:
        console: Rich Console instance for rendering. If None, creates a new one.
        workspace_name: Workspace name for the header line.
        refresh_per_second: Display refresh rate.
    """

    def __init__(self, console: Console | None, workspace_name: str, refresh_per_second: int = 10) -> None:
        self._console = console if console is not None else Console()
        self._workspace_name = workspace_name
        self._refresh_per_second = refresh_per_second
        self._states: dict[str, _JobDisplayState] = {}
        self._order: list[str] = []
        self._lock = threading.Lock()
        self._live: Live | None = None

    def on_job_update(self, job_name: str, state: JobState, detail: str) -> None:
        """Update the display state for a job. Thread-safe."""
        with self._lock:
            job_state = self._states.get(job_name)
            if job_state is None:
                job_state = _JobDisplayState(job_name)
                self._states[job_name] = job_state
                self._order.append(job_name)

            if job_state.start_time is None and state != JobState.PENDING:
                job_state.start_time = time.monotonic()

            job_state.state = state
            job_state.detail = detail
            if job_state.start_time is not None:
                job_state.elapsed = time.monotonic() - job_state.start_time

        if self._live is not None:
            self._live.update(self._render_display())

    def start(self) -> None:
        """Start the live display."""
        self._live = Live(
            self._render_display(),
            console=self._console,
            refresh_per_second=self._refresh_per_second,
            transient=False,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display after a final render."""
        if self._live is not None:
            self._live.update(self._render_display())
            self._live.stop()
            self._live = None

    def _render_display(self) -> Group:
        header = Text(f"\nBuilding workspace {self._workspace_name}...\n", style="bold")
        return Group(header, self._render_table(), self._render_footer())

    def _render_table(self) -> Table:
        table = Table(show_header=False, show_edge=False, show_lines=False, box=None, padding=(0, 1), expand=False)
        table.add_column("Job", style="bold", no_wrap=True, min_width=28)
        table.add_column("State", no_wrap=True, min_width=10)
        table.add_column("Status", no_wrap=True, min_width=30)

        with self._lock:
            for name in self._order:
                state = self._states[name]
                table.add_row(self._format_name(state), self._format_state(state), self._format_status(state))
        return table

    def _render_footer(self) -> Text:
        with self._lock:
            total = len(self._states)
            done_count = sum(1 for s in self._states.values() if s.state == JobState.COMPLETED)
            failed_count = sum(1 for s in self._states.values() if s.state == JobState.FAILED)
            running_count = sum(1 for s in self._states.values() if s.state == JobState.RUNNING)

        parts = [f"{total} jobs"]
        if running_count > 0:
            parts.append(f"{running_count} running")
        if done_count > 0:
            parts.append(f"{done_count} done")
        if failed_count > 0:
            parts.append(f"{failed_count} failed")
        return Text(f"\n  {', '.join(parts)}", style="dim")

    def _format_name(self, state: _JobDisplayState) -> Text:
        styles = {
            JobState.COMPLETED: "green",
            JobState.FAILED: "red",
            JobState.PENDING: "dim",
            JobState.RUNNING: "bold cyan",
        }
        return Text(state.name, style=styles[state.state])

    def _format_state(self, state: _JobDisplayState) -> Text:
        labels = {
            JobState.PENDING: ("Waiting", "dim"),
            JobState.RUNNING: ("Running", "magenta"),
            JobState.COMPLETED: ("Done", "green"),
            JobState.FAILED: ("Failed", "red bold"),
        }
        label, style = labels[state.state]
        return Text(label, style=style)

    def _format_status(self, state: _JobDisplayState) -> Text:
        if state.state == JobState.PENDING:
            return Text("")
        if state.state == JobState.RUNNING:
            spinner = _SPINNER_FRAMES[int(time.monotonic() * 8) % len(_SPINNER_FRAMES)]
            return Text(f"{spinner} {state.elapsed:.1f}s", style="magenta")
        if state.state == JobState.COMPLETED:
            return Text(f"✓ {state.detail}", style="green")
        return Text(f"✗ {state.detail or 'Error'}", style="red")

    def get_snapshot(self) -> list[dict[str, Any]]:
        """Get a snapshot of current display states for testing."""
        with self._lock:
            return [
                {
                    "name": self._states[name].name,
                    "state": self._states[name].state,
                    "detail": self._states[name].detail,
                    "elapsed": self._states[name].elapsed,
                }
                for name in self._order
            ]

    def __enter__(self) -> "BuildProgressDisplay":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()
