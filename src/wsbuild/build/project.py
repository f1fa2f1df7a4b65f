"""Project: a named collection of source files that links into one artifact.

Source files are grouped into file filters for organization only. Building a
project submits one compile job per compilable source file; linking is done
by the owning workspace, which knows about the other projects.

On-disk layout (<location>/<name>.wsproject):
    Name, Kind, FileFilters, Files, IncludeDirs, LibraryDirs, Defines, Libraries
Paths are stored relative to the project location.
"""

import functools
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..compilers.base import HEADER_EXTENSIONS, is_compilable
from ..jobs.models import JobContext, JobHandle
from .build_context import BuildContext
from .configuration import Configuration
from .kinds import ProjectKind
from .serialization import ObjectWriter, SerializationError, anchor, read_objects, relative_to

logger = logging.getLogger(__name__)


@dataclass
class FileFilter:
    """Organizational group of files. Carries no build semantics.

    Attributes:
        name: Filter name; "" is the anonymous filter
        path: Grouping path relative to the project location
        files: Absolute file paths
    """

    name: str
    path: str = ""
    files: list[Path] = field(default_factory=list)


def alphabetic_key(text: str) -> list[tuple[str, bool]]:
    """Case-insensitive sort key; on ties lowercase sorts before uppercase."""
    return [(ch.lower(), ch.isupper()) for ch in text]


def _compile_job(context: BuildContext, config: Configuration, source_path: Path, job: JobContext) -> Path | None:
    """Body of a compile job. Returns the object file path, or None on failure."""
    if config.compiler is None:
        logger.error("Failed to compile %s. No compiler active!", source_path)
        return None

    backend = context.backend(config.compiler)
    if backend is None:
        logger.error("Failed to compile %s. Compiler %s unavailable", source_path, config.compiler.value)
        return None

    return backend.compile(config, source_path)


class Project:
    """A buildable unit producing one application or library.

    Args:
        location: Directory containing the project file.
        name: Project name; also the file name of the project file.
    """

    EXTENSION = ".wsproject"

    def __init__(self, location: Path, name: str = "MyProject") -> None:
        self.location = Path(location)
        self.name = name
        self.kind = ProjectKind.UNSPECIFIED
        self.local_configuration = Configuration()
        self.file_filters: list[FileFilter] = [FileFilter("")]

        # Filled by build()
        self.compiler_outputs: list[JobHandle] = []
        self.linker_dependencies: list[JobHandle] = []

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, kind={self.kind.value}, location={str(self.location)!r})"

    @property
    def file_path(self) -> Path:
        return self.location / f"{self.name}{self.EXTENSION}"

    # ─── Building ────────────────────────────────────────────────────────────

    def resolve_configuration(self, base: Configuration | None = None) -> Configuration:
        """Combine a base configuration with this project's local settings.

        Local settings win. Objects and artifacts default to the project location.
        """
        config = base.copy() if base is not None else Configuration()
        config.override(self.local_configuration)
        if config.output_dir is None:
            config.output_dir = self.location
        return config

    def build(self, context: BuildContext, base: Configuration | None = None) -> Configuration:
        """Submit one compile job per compilable source file.

        Jobs are recorded in compiler_outputs in file order. Non-source files are
        skipped. Each job captures its own copy of the resolved configuration, so
        later edits to the project do not affect submitted jobs.

        Args:
            context: Scheduler and process runner for this build.
            base: Workspace configuration to combine with the local one.

        Returns:
            The resolved configuration the compile jobs were submitted with.
        """
        config = self.resolve_configuration(base)
        self.compiler_outputs = []
        self.linker_dependencies = []

        submitted: set[Path] = set()
        for file_filter in self.file_filters:
            for source_path in file_filter.files:
                if not is_compilable(source_path) or source_path in submitted:
                    continue
                submitted.add(source_path)
                handle = context.scheduler.submit(
                    functools.partial(_compile_job, context, config.copy(), source_path),
                    name=f"compile:{self.name}/{source_path.name}",
                )
                self.compiler_outputs.append(handle)
                self.linker_dependencies.append(handle)

        logger.debug("Project %s: %d compile jobs submitted", self.name, len(self.compiler_outputs))
        return config.copy()

    # ─── Persistence ─────────────────────────────────────────────────────────

    def serialize(self) -> bool:
        """Write the project file. Returns False on failure."""
        try:
            with ObjectWriter(self.file_path) as writer:
                for name, value in self.to_objects():
                    writer.write_object(name, value)
        except SerializationError as e:
            logger.error("%s", e)
            return False
        return True

    def to_objects(self) -> list[tuple[str, Any]]:
        """Named root objects describing this project, in file order."""
        objects: list[tuple[str, Any]] = [("Name", self.name), ("Kind", self.kind.value)]
        config = self.local_configuration

        named_filters = {}
        for file_filter in self.file_filters:
            if not file_filter.name:
                continue
            table: dict[str, Any] = {}
            if file_filter.path:
                table["Path"] = file_filter.path
            if file_filter.files:
                table["Files"] = [relative_to(f, self.location) for f in file_filter.files]
            named_filters[file_filter.name] = table
        if named_filters:
            objects.append(("FileFilters", named_filters))

        anonymous = self.file_filter_by_name("")
        if anonymous is not None and anonymous.files:
            objects.append(("Files", [relative_to(f, self.location) for f in anonymous.files]))
        if config.include_dirs:
            objects.append(("IncludeDirs", [relative_to(d, self.location) for d in config.include_dirs]))
        if config.library_dirs:
            objects.append(("LibraryDirs", [relative_to(d, self.location) for d in config.library_dirs]))
        if config.defines:
            objects.append(("Defines", list(config.defines)))
        if config.libraries:
            objects.append(("Libraries", list(config.libraries)))
        return objects

    def deserialize(self) -> bool:
        """Load the project file.

        On failure the in-memory project is left unchanged.
        """
        staging = Project(self.location, self.name)
        try:
            read_objects(self.file_path, staging._object_callback)
        except SerializationError as e:
            logger.error("%s", e)
            return False

        staging._drop_files_assigned_elsewhere()
        staging.sort_file_filters()

        self.name = staging.name
        self.kind = staging.kind
        self.local_configuration = staging.local_configuration
        self.file_filters = staging.file_filters
        return True

    def _object_callback(self, name: str, value: Any) -> None:
        if name == "Name" and isinstance(value, str):
            self.name = value
        elif name == "Kind" and isinstance(value, str):
            self.kind = ProjectKind.parse(value)
        elif name == "FileFilters" and isinstance(value, dict):
            for filter_name, table in value.items():
                if not isinstance(table, dict):
                    continue
                file_filter = self.file_filter_by_name(filter_name)
                if file_filter is None:
                    file_filter = FileFilter(filter_name)
                    self.file_filters.append(file_filter)
                file_filter.path = str(table.get("Path", ""))
                file_filter.files.extend(self._anchor_all(table.get("Files")))
        elif name == "Files":
            anonymous = self.file_filter_by_name("")
            if anonymous is None:
                anonymous = FileFilter("")
                self.file_filters.append(anonymous)
            anonymous.files.extend(self._anchor_all(value))
        elif name == "IncludeDirs":
            self.local_configuration.include_dirs.extend(self._anchor_all(value))
        elif name == "LibraryDirs":
            self.local_configuration.library_dirs.extend(self._anchor_all(value))
        elif name == "Defines" and isinstance(value, list):
            self.local_configuration.defines.extend(str(v) for v in value)
        elif name == "Libraries" and isinstance(value, list):
            self.local_configuration.libraries.extend(str(v) for v in value)

    def _anchor_all(self, values: Any) -> list[Path]:
        if not isinstance(values, list):
            return []
        return [anchor(str(v), self.location) for v in values]

    def _drop_files_assigned_elsewhere(self) -> None:
        """Remove files from the anonymous filter that a named filter also holds."""
        anonymous = self.file_filter_by_name("")
        if anonymous is None:
            return
        assigned = {f for ff in self.file_filters if ff.name for f in ff.files}
        anonymous.files = [f for f in anonymous.files if f not in assigned]

    # ─── File filters ────────────────────────────────────────────────────────

    def sort_file_filters(self) -> None:
        """Sort files within each filter and the filters themselves by name."""
        for file_filter in self.file_filters:
            file_filter.files.sort(key=lambda p: alphabetic_key(p.name))
        self.file_filters.sort(key=lambda ff: alphabetic_key(ff.name))

    def file_filter_by_name(self, name: str) -> FileFilter | None:
        for file_filter in self.file_filters:
            if file_filter.name == name:
                return file_filter
        return None

    def new_file_filter(self, name: str, path: str = "") -> FileFilter | None:
        """Create a file filter. Returns None if one with that name exists."""
        if self.file_filter_by_name(name) is not None:
            return None
        file_filter = FileFilter(name, path)
        self.file_filters.append(file_filter)
        self.sort_file_filters()
        self.serialize()
        return file_filter

    def remove_file_filter(self, name: str) -> bool:
        """Remove a named filter. The anonymous filter cannot be removed."""
        file_filter = self.file_filter_by_name(name)
        if not name or file_filter is None:
            return False
        self.file_filters.remove(file_filter)
        self.sort_file_filters()
        self.serialize()
        return True

    def rename_file_filter(self, name: str, new_name: str) -> bool:
        file_filter = self.file_filter_by_name(name)
        if not name or not new_name or file_filter is None or self.file_filter_by_name(new_name) is not None:
            return False
        file_filter.name = new_name
        self.sort_file_filters()
        self.serialize()
        return True

    # ─── Files ───────────────────────────────────────────────────────────────

    def file_in_file_filter(self, path: Path, filter_name: str = "") -> Path | None:
        """Return the stored path if the file belongs to the filter."""
        file_filter = self.file_filter_by_name(filter_name)
        if file_filter is None:
            return None
        path = self._absolute(path)
        for f in file_filter.files:
            if f == path:
                return f
        return None

    def add_file(self, path: Path, filter_name: str = "") -> bool:
        """Add an existing file to a filter.

        A file assigned to a named filter leaves the anonymous filter, and a
        file held by a named filter cannot be added to the anonymous one.
        """
        if not self._can_add(path, filter_name):
            return False
        path = self._absolute(path)
        if filter_name:
            anonymous = self.file_filter_by_name("")
            if anonymous is not None and path in anonymous.files:
                anonymous.files.remove(path)
        self.file_filter_by_name(filter_name).files.append(path)
        self.sort_file_filters()
        self.serialize()
        return True

    def new_file(self, path: Path, filter_name: str = "") -> bool:
        """Create an empty file on disk and add it to a filter."""
        if not self._can_add(path, filter_name):
            return False
        path = self._absolute(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"")
        except OSError as e:
            logger.error("Failed to create %s: %s", path, e)
            return False
        return self.add_file(path, filter_name)

    def _can_add(self, path: Path, filter_name: str) -> bool:
        if self.file_filter_by_name(filter_name) is None or self.file_in_file_filter(path, filter_name) is not None:
            return False
        if not filter_name:
            path = self._absolute(path)
            return not any(path in ff.files for ff in self.file_filters if ff.name)
        return True

    def remove_file(self, path: Path, filter_name: str = "") -> bool:
        file_filter = self.file_filter_by_name(filter_name)
        stored = self.file_in_file_filter(path, filter_name)
        if file_filter is None or stored is None:
            return False
        file_filter.files.remove(stored)
        self.sort_file_filters()
        self.serialize()
        return True

    def rename_file(self, path: Path, filter_name: str, new_name: str) -> bool:
        """Rename a file in place, on disk if it exists.

        Refused when the new name is already taken on disk or in the filter.
        """
        file_filter = self.file_filter_by_name(filter_name)
        stored = self.file_in_file_filter(path, filter_name)
        if file_filter is None or stored is None:
            return False
        new_path = stored.with_name(new_name)
        if new_path in file_filter.files or new_path.exists():
            logger.error("Cannot rename %s: %s already exists", stored, new_path)
            return False
        if stored.exists():
            try:
                os.replace(stored, new_path)
            except OSError as e:
                logger.error("Failed to rename %s: %s", stored, e)
                return False
        file_filter.files[file_filter.files.index(stored)] = new_path
        self.sort_file_filters()
        self.serialize()
        return True

    def find_source_folders(self) -> list[Path]:
        """Distinct directories holding C/C++ sources or headers, in filter order."""
        folders: list[Path] = []
        for file_filter in self.file_filters:
            for f in file_filter.files:
                if not (is_compilable(f) or f.suffix in HEADER_EXTENSIONS):
                    continue
                if f.parent not in folders:
                    folders.append(f.parent)
        return folders

    def all_files(self) -> list[Path]:
        """Every file of every filter, in filter order."""
        return [f for file_filter in self.file_filters for f in file_filter.files]

    def _absolute(self, path: Path) -> Path:
        return anchor(str(path), self.location)
