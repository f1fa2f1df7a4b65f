"""Build Configuration.

A Configuration is the resolved set of compiler and linker options for a
build. Configurations are layered: the workspace build matrix produces one,
each project carries a local one, and the two are combined with a sparse,
right-biased override.

A field is "set" when it is not None (scalars) or not empty (lists). Only set
fields of the source are copied by override(); everything else in the target
is left alone.
"""

import copy
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from .kinds import Architecture, CompilerKind, Optimization

logger = logging.getLogger(__name__)


@dataclass
class Configuration:
    """Compiler and linker options.

    Attributes:
        compiler: Selected compiler backend, or None when no backend is bound
        architecture: Target architecture
        optimization: Optimization level
        defines: Preprocessor defines, e.g. "DEBUG" or "NAME=value"
        include_dirs: Header search directories
        library_dirs: Library search directories
        libraries: Library names to link, including names of other projects
        output_dir: Directory receiving object files and linked artifacts
        verbose: Ask the toolchain for verbose output
    """

    compiler: CompilerKind | None = None
    architecture: Architecture | None = None
    optimization: Optimization | None = None
    defines: list[str] = field(default_factory=list)
    include_dirs: list[Path] = field(default_factory=list)
    library_dirs: list[Path] = field(default_factory=list)
    libraries: list[str] = field(default_factory=list)
    output_dir: Path | None = None
    verbose: bool | None = None

    def override(self, other: "Configuration") -> "Configuration":
        """Copy every field that is set on other into self.

        Args:
            other: Configuration whose set fields win

        Returns:
            self, to allow chaining.
        """
        for f in fields(self):
            value = getattr(other, f.name)
            if _is_set(value):
                setattr(self, f.name, copy.copy(value))
        return self

    def copy(self) -> "Configuration":
        """Return an independent copy (lists are not shared)."""
        return Configuration(
            compiler=self.compiler,
            architecture=self.architecture,
            optimization=self.optimization,
            defines=list(self.defines),
            include_dirs=list(self.include_dirs),
            library_dirs=list(self.library_dirs),
            libraries=list(self.libraries),
            output_dir=self.output_dir,
            verbose=self.verbose,
        )

    @property
    def is_verbose(self) -> bool:
        return bool(self.verbose)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the preset fields stored in a build matrix (only those that are set)."""
        data: dict[str, Any] = {}
        if self.compiler is not None:
            data["Compiler"] = self.compiler.value
        if self.architecture is not None:
            data["Architecture"] = self.architecture.value
        if self.optimization is not None:
            data["Optimization"] = self.optimization.value
        if self.verbose is not None:
            data["Verbose"] = self.verbose
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Configuration":
        """Deserialize preset fields.

        Unrecognized values are logged and left unset.
        """
        config = cls()
        for key, attr, enum_type in (
            ("Compiler", "compiler", CompilerKind),
            ("Architecture", "architecture", Architecture),
            ("Optimization", "optimization", Optimization),
        ):
            value = data.get(key)
            if not isinstance(value, str):
                continue
            try:
                setattr(config, attr, enum_type(value))
            except ValueError:
                logger.warning("Unrecognized %s '%s'", key.lower(), value)
        if isinstance(data.get("Verbose"), bool):
            config.verbose = data["Verbose"]
        return config


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, list):
        return len(value) > 0
    return True
