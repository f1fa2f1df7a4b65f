"""GCC-family compiler backends.

Compilation Strategy:
    - One driver invocation per source file with -c and an explicit -x language
    - Defines and include directories passed as separate argv entries, so values
      with whitespace reach the compiler as a single token
    - Object files go to <output_dir>/obj/<dir digest>/<file name>.o

Linking Strategy:
    - Applications and shared libraries link through the driver
    - Static libraries are built with the archiver (ar rcsu), no linker flags
"""

import sys
from pathlib import Path
from typing import Sequence

from ..build.configuration import Configuration
from ..build.kinds import Architecture, Optimization, ProjectKind
from .base import CompilerBackend, object_subdir, source_language

_OPTIMIZATION_FLAGS: dict[Optimization, str] = {
    Optimization.NONE: "-O0",
    Optimization.SIZE: "-Os",
    Optimization.SPEED: "-O2",
    Optimization.FULL: "-O3",
}

# ARM targets are selected by the cross toolchain itself
_ARCHITECTURE_FLAGS: dict[Architecture, str] = {
    Architecture.X86: "-m32",
    Architecture.X86_64: "-m64",
}


class GCCBackend(CompilerBackend):
    """Backend for the GNU toolchain (g++ and ar)."""

    driver = "g++"
    archiver = "ar"

    def name(self) -> str:
        return "GCC"

    def make_compiler_command(self, config: Configuration, source_path: Path) -> list[str]:
        cmd = [self.driver, "-c"]
        cmd.extend(["-x", source_language(source_path) or "none"])
        cmd.extend(self._architecture_flags(config))

        if config.optimization is not None:
            cmd.append(_OPTIMIZATION_FLAGS[config.optimization])

        cmd.extend(f"-D{define}" for define in config.defines)
        cmd.extend(f"-I{include_dir}" for include_dir in config.include_dirs)

        if config.is_verbose:
            cmd.append("-v")

        cmd.extend(["-o", str(self.compiler_output_path(config, source_path))])
        cmd.append(str(source_path))
        return cmd

    def make_linker_command(
        self,
        config: Configuration,
        object_paths: Sequence[Path],
        output_name: str,
        kind: ProjectKind,
    ) -> list[str] | None:
        output_path = str(self.linker_output_path(config, output_name, kind))

        if kind == ProjectKind.STATIC_LIBRARY:
            # r: insert or replace, c: create silently, s: write index, u: only newer
            return [self.archiver, "rcsu", output_path, *(str(p) for p in object_paths)]

        if kind not in (ProjectKind.APPLICATION, ProjectKind.DYNAMIC_LIBRARY):
            return None

        cmd = [self.driver]
        if kind == ProjectKind.DYNAMIC_LIBRARY:
            cmd.append("-shared")
        cmd.extend(self._architecture_flags(config))
        if config.is_verbose:
            cmd.append("-v")
        cmd.extend(f"-L{library_dir}" for library_dir in config.library_dirs)
        cmd.extend(["-o", output_path])
        cmd.extend(str(p) for p in object_paths)
        # Libraries after objects so static archives resolve their symbols
        cmd.extend(f"-l{library}" for library in config.libraries)
        return cmd

    def compiler_output_path(self, config: Configuration, source_path: Path) -> Path:
        output_dir = config.output_dir if config.output_dir is not None else source_path.parent
        return output_dir / "obj" / object_subdir(source_path) / f"{source_path.name}.o"

    def linker_output_path(self, config: Configuration, output_name: str, kind: ProjectKind) -> Path:
        output_dir = config.output_dir if config.output_dir is not None else Path.cwd()
        if kind == ProjectKind.STATIC_LIBRARY:
            return output_dir / f"lib{output_name}.a"
        if kind == ProjectKind.DYNAMIC_LIBRARY:
            if sys.platform == "win32":
                return output_dir / f"{output_name}.dll"
            if sys.platform == "darwin":
                return output_dir / f"lib{output_name}.dylib"
            return output_dir / f"lib{output_name}.so"
        if kind == ProjectKind.APPLICATION and sys.platform == "win32":
            return output_dir / f"{output_name}.exe"
        return output_dir / output_name

    def _architecture_flags(self, config: Configuration) -> list[str]:
        if config.architecture in _ARCHITECTURE_FLAGS:
            return [_ARCHITECTURE_FLAGS[config.architecture]]
        return []


class ClangBackend(GCCBackend):
    """Backend for the LLVM toolchain, command-compatible with GCC."""

    driver = "clang++"
    archiver = "llvm-ar"

    def name(self) -> str:
        return "Clang"
