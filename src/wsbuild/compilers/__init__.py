"""
Compiler backends for wsbuild.

This package provides:
- CompilerBackend: compile/link command synthesis and execution
- GCCBackend / ClangBackend: GNU and LLVM toolchains
- MSVCBackend: Microsoft toolchain (Windows only)
- get_backend(): resolve the CompilerKind stored in a Configuration
"""

from .base import CompilerBackend, is_compilable, source_language
from .gcc import ClangBackend, GCCBackend
from .msvc import MSVCBackend
from .registry import available_compilers, get_backend, is_available

__all__ = [
    "ClangBackend",
    "CompilerBackend",
    "GCCBackend",
    "MSVCBackend",
    "available_compilers",
    "get_backend",
    "is_available",
    "is_compilable",
    "source_language",
]
