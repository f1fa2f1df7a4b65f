"""Enumerations shared by configurations, projects and compiler backends.

Each enum's value is the exact string written to project and workspace files.
"""

from enum import Enum


class ProjectKind(Enum):
    """Kind of artifact a project links into."""

    APPLICATION = "Application"
    STATIC_LIBRARY = "StaticLibrary"
    DYNAMIC_LIBRARY = "DynamicLibrary"
    UNSPECIFIED = "Unspecified"

    @classmethod
    def parse(cls, value: str) -> "ProjectKind":
        """Parse a persisted kind, falling back to UNSPECIFIED."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNSPECIFIED

    def __str__(self) -> str:
        return self.value


class CompilerKind(Enum):
    """Selector for a compiler backend, stored in Configuration."""

    GCC = "GCC"
    CLANG = "Clang"
    MSVC = "MSVC"

    def __str__(self) -> str:
        return self.value


class Architecture(Enum):
    """Target architecture."""

    X86 = "x86"
    X86_64 = "x86_64"
    ARM = "ARM"
    ARM64 = "ARM64"

    def __str__(self) -> str:
        return self.value


class Optimization(Enum):
    """Optimization level."""

    NONE = "None"
    SIZE = "Size"
    SPEED = "Speed"
    FULL = "Full"

    def __str__(self) -> str:
        return self.value
