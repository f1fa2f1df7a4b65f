"""Compiler backend interface.

A CompilerBackend turns a Configuration into toolchain command lines and runs
them through a ProcessRunner. Concrete backends only describe their commands
and output naming; running, output-directory creation and failure reporting
are shared here.

Contract:
    - compile() and link() never raise. Failures are logged and reported as None.
    - compiler_output_path() and linker_output_path() are pure functions of their
      arguments, because paths are handed to dependents before the command runs.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from ..build.configuration import Configuration
from ..build.kinds import ProjectKind
from ..subprocess_utils import ProcessRunner, format_command

logger = logging.getLogger(__name__)

LANGUAGE_C = "c"
LANGUAGE_CXX = "c++"
LANGUAGE_ASSEMBLY = "assembler"
LANGUAGE_ASSEMBLY_CPP = "assembler-with-cpp"

ASSEMBLY_LANGUAGES = (LANGUAGE_ASSEMBLY, LANGUAGE_ASSEMBLY_CPP)

# Extension -> source language. Case matters: ".S" runs through the C preprocessor.
SOURCE_LANGUAGES: dict[str, str] = {
    ".c": LANGUAGE_C,
    ".cc": LANGUAGE_CXX,
    ".cpp": LANGUAGE_CXX,
    ".cxx": LANGUAGE_CXX,
    ".c++": LANGUAGE_CXX,
    ".s": LANGUAGE_ASSEMBLY,
    ".S": LANGUAGE_ASSEMBLY_CPP,
    ".asm": LANGUAGE_ASSEMBLY,
}

HEADER_EXTENSIONS = (".h", ".hh", ".hpp", ".hxx", ".h++")


def source_language(source_path: Path) -> str | None:
    """Return the source language of a file, or None when not recognized."""
    return SOURCE_LANGUAGES.get(source_path.suffix)


def is_compilable(source_path: Path) -> bool:
    """True for files a compile job should be created for."""
    return source_path.suffix in SOURCE_LANGUAGES


def object_subdir(source_path: Path) -> str:
    """Stable short digest of a source's directory.

    Keeps objects of same-named sources in different directories apart.
    """
    return hashlib.sha1(str(source_path.parent).encode("utf-8")).hexdigest()[:8]


class CompilerBackend(ABC):
    """Base class for toolchain backends.

    Args:
        runner: Process-launch collaborator used for every external command.
    """

    def __init__(self, runner: ProcessRunner) -> None:
        self._runner = runner

    @abstractmethod
    def name(self) -> str:
        """Display name of the backend, e.g. "GCC"."""

    @abstractmethod
    def make_compiler_command(self, config: Configuration, source_path: Path) -> list[str] | None:
        """Build the argument list that compiles source_path, or None if this toolchain cannot."""

    @abstractmethod
    def make_linker_command(
        self,
        config: Configuration,
        object_paths: Sequence[Path],
        output_name: str,
        kind: ProjectKind,
    ) -> list[str] | None:
        """Build the argument list producing the artifact, or None if kind cannot be linked."""

    @abstractmethod
    def compiler_output_path(self, config: Configuration, source_path: Path) -> Path:
        """Object file path for a source file."""

    @abstractmethod
    def linker_output_path(self, config: Configuration, output_name: str, kind: ProjectKind) -> Path:
        """Artifact path for a project."""

    def compile(self, config: Configuration, source_path: Path) -> Path | None:
        """Compile one source file.

        Returns:
            The object file path, or None if compilation failed.
        """
        if config.compiler is None:
            logger.error("Failed to compile %s. No compiler active!", source_path)
            return None

        output_path = self.compiler_output_path(config, source_path)
        cmd = self.make_compiler_command(config, source_path)
        if cmd is None:
            logger.error("Cannot compile %s with %s", source_path.name, self.name())
            return None

        if self._execute(cmd, output_path, f"Compilation of {source_path.name}"):
            return output_path
        return None

    def link(
        self,
        config: Configuration,
        object_paths: Sequence[Path],
        output_name: str,
        kind: ProjectKind,
    ) -> Path | None:
        """Link object files into an application or library.

        Returns:
            The artifact path, or None if linking failed.
        """
        if config.compiler is None:
            logger.error("Failed to link %s. No compiler active!", output_name)
            return None

        cmd = self.make_linker_command(config, object_paths, output_name, kind)
        if cmd is None:
            logger.error("Cannot link %s: project kind %s has no linker command", output_name, kind.value)
            return None

        output_path = self.linker_output_path(config, output_name, kind)
        if self._execute(cmd, output_path, f"Linking of {output_name}"):
            return output_path
        return None

    def _execute(self, cmd: list[str], output_path: Path, what: str) -> bool:
        logger.info("%s: %s", what, format_command(cmd))
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            result = self._runner.run(cmd)
        except KeyboardInterrupt:
            raise
        except OSError as e:
            logger.error("%s failed to start %s: %s", what, cmd[0], e)
            return False

        if not result.ok:
            logger.error("%s failed with exit code %d", what, result.returncode)
            if result.stderr:
                logger.error("%s", result.stderr.rstrip())
            return False

        if result.stderr:
            # Warnings
            logger.warning("%s", result.stderr.rstrip())
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
