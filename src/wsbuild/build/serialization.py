"""Object-tree persistence for projects and workspaces.

Files are JSON documents whose top-level keys are named root objects. Each
object's value is a string, a list of strings, or a nested table (dict).

Usage:
    with ObjectWriter(path) as writer:
        writer.write_object("Name", "app")
        writer.write_object("Files", ["main.cpp"])

    read_objects(path, lambda name, value: print(name, value))
"""

import json
import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Any, Callable

logger = logging.getLogger(__name__)

ObjectValue = Any
ObjectCallback = Callable[[str, ObjectValue], None]


class SerializationError(Exception):
    """Raised when an object file cannot be read or written."""

    pass


class ObjectWriter:
    """Collects named root objects and writes them to disk on close.

    The file is written to a temporary sibling and renamed into place, so a
    failed write never truncates an existing file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._objects: dict[str, ObjectValue] = {}

    def write_object(self, name: str, value: ObjectValue) -> None:
        """Add a named root object. Writing a name twice keeps the last value."""
        self._objects[name] = value

    def close(self) -> None:
        """Write all objects to the file.

        Raises:
            SerializationError: If the file cannot be written.
        """
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._objects, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.path)
        except OSError as e:
            raise SerializationError(f"Failed to write {self.path}: {e}") from e

    def __enter__(self) -> "ObjectWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()


def load_objects(path: Path) -> dict[str, ObjectValue]:
    """Read every named root object of a file.

    Raises:
        SerializationError: If the file is missing, unreadable or not an object tree.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SerializationError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise SerializationError(f"Failed to read {path}: root is not a table")
    return data


def read_objects(path: Path, callback: ObjectCallback) -> None:
    """Invoke callback(name, value) for each named root object, in file order.

    Raises:
        SerializationError: If the file cannot be read.
    """
    for name, value in load_objects(path).items():
        callback(name, value)


def relative_to(path: Path, location: Path) -> str:
    """Express path relative to location, using forward slashes."""
    return Path(os.path.relpath(path, location)).as_posix()


def anchor(value: str, location: Path) -> Path:
    """Re-anchor a stored path to absolute form under location."""
    path = Path(value)
    if not path.is_absolute():
        path = location / path
    return Path(os.path.normpath(path))
