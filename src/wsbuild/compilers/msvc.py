"""Microsoft Visual C++ backend (cl, ml/ml64, link, lib).

Only selectable on Windows; the command synthesis itself is platform
independent so it can be inspected anywhere.

MASM sources (.asm) go to ml or ml64 depending on the target architecture.
GNU assembly (.s, .S) has no MSVC assembler and is refused.
"""

from pathlib import Path
from typing import Sequence

from ..build.configuration import Configuration
from ..build.kinds import Architecture, Optimization, ProjectKind
from .base import ASSEMBLY_LANGUAGES, LANGUAGE_C, LANGUAGE_CXX, CompilerBackend, object_subdir, source_language

_OPTIMIZATION_FLAGS: dict[Optimization, str] = {
    Optimization.NONE: "/Od",
    Optimization.SIZE: "/O1",
    Optimization.SPEED: "/O2",
    Optimization.FULL: "/Ox",
}

_MACHINE_FLAGS: dict[Architecture, str] = {
    Architecture.X86: "/MACHINE:X86",
    Architecture.X86_64: "/MACHINE:X64",
    Architecture.ARM: "/MACHINE:ARM",
    Architecture.ARM64: "/MACHINE:ARM64",
}

# MASM flavors; no architecture selected means a 64-bit host toolchain
_ASSEMBLERS: dict[Architecture | None, str] = {
    None: "ml64",
    Architecture.X86: "ml",
    Architecture.X86_64: "ml64",
}


class MSVCBackend(CompilerBackend):
    """Backend for the MSVC toolchain."""

    compiler = "cl"
    linker = "link"
    librarian = "lib"

    def name(self) -> str:
        return "MSVC"

    def make_compiler_command(self, config: Configuration, source_path: Path) -> list[str] | None:
        language = source_language(source_path)
        if language in ASSEMBLY_LANGUAGES:
            return self._make_assembler_command(config, source_path)

        cmd = [self.compiler, "/nologo", "/c"]
        if language == LANGUAGE_C:
            cmd.append(f"/Tc{source_path}")
        elif language == LANGUAGE_CXX:
            cmd.append(f"/Tp{source_path}")

        if config.optimization is not None:
            cmd.append(_OPTIMIZATION_FLAGS[config.optimization])

        cmd.extend(f"/D{define}" for define in config.defines)
        cmd.extend(f"/I{include_dir}" for include_dir in config.include_dirs)

        if config.is_verbose:
            cmd.append("/Bt")

        cmd.append(f"/Fo{self.compiler_output_path(config, source_path)}")
        if language is None:
            cmd.append(str(source_path))
        return cmd

    def _make_assembler_command(self, config: Configuration, source_path: Path) -> list[str] | None:
        assembler = _ASSEMBLERS.get(config.architecture)
        if source_path.suffix != ".asm" or assembler is None:
            return None

        cmd = [assembler, "/nologo", "/c"]
        cmd.extend(f"/D{define}" for define in config.defines)
        cmd.extend(f"/I{include_dir}" for include_dir in config.include_dirs)
        cmd.append(f"/Fo{self.compiler_output_path(config, source_path)}")
        cmd.append(str(source_path))
        return cmd

    def make_linker_command(
        self,
        config: Configuration,
        object_paths: Sequence[Path],
        output_name: str,
        kind: ProjectKind,
    ) -> list[str] | None:
        output_path = self.linker_output_path(config, output_name, kind)

        if kind == ProjectKind.STATIC_LIBRARY:
            return [self.librarian, "/nologo", f"/OUT:{output_path}", *(str(p) for p in object_paths)]

        if kind not in (ProjectKind.APPLICATION, ProjectKind.DYNAMIC_LIBRARY):
            return None

        cmd = [self.linker, "/nologo"]
        if kind == ProjectKind.DYNAMIC_LIBRARY:
            cmd.append("/DLL")
        if config.architecture is not None:
            cmd.append(_MACHINE_FLAGS[config.architecture])
        if config.is_verbose:
            cmd.append("/VERBOSE")
        cmd.append(f"/OUT:{output_path}")
        cmd.extend(f"/LIBPATH:{library_dir}" for library_dir in config.library_dirs)
        cmd.extend(str(p) for p in object_paths)
        cmd.extend(f"{library}.lib" for library in config.libraries)
        return cmd

    def compiler_output_path(self, config: Configuration, source_path: Path) -> Path:
        output_dir = config.output_dir if config.output_dir is not None else source_path.parent
        return output_dir / "obj" / object_subdir(source_path) / f"{source_path.name}.obj"

    def linker_output_path(self, config: Configuration, output_name: str, kind: ProjectKind) -> Path:
        output_dir = config.output_dir if config.output_dir is not None else Path.cwd()
        if kind == ProjectKind.STATIC_LIBRARY:
            return output_dir / f"{output_name}.lib"
        if kind == ProjectKind.DYNAMIC_LIBRARY:
            return output_dir / f"{output_name}.dll"
        return output_dir / f"{output_name}.exe"
