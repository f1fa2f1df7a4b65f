"""Build notifications.

BuildFinished is the single event a build emits. It fires from the worker
thread that runs the aggregation job, so listeners must be thread-safe.
"""

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)

BuildFinishedListener = Callable[["Workspace", "Path | None", bool], None]


class BuildEvents:
    """Listener registry for build notifications."""

    def __init__(self) -> None:
        self._listeners: list[BuildFinishedListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: BuildFinishedListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: BuildFinishedListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def build_finished(self, workspace: "Workspace", output_path: Path | None, success: bool) -> None:
        """Notify every listener that a workspace build finished.

        A failing listener is logged and does not prevent the others from running.
        """
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(workspace, output_path, success)
            except KeyboardInterrupt:
                raise
            except Exception as e:
                logger.error("BuildFinished listener error: %s", e, exc_info=True)
