"""Fixed registry mapping CompilerKind tags to backend classes."""

import logging
import sys

from ..build.kinds import CompilerKind
from ..subprocess_utils import ProcessRunner
from .base import CompilerBackend
from .gcc import ClangBackend, GCCBackend
from .msvc import MSVCBackend

logger = logging.getLogger(__name__)

BACKENDS: dict[CompilerKind, type[CompilerBackend]] = {
    CompilerKind.GCC: GCCBackend,
    CompilerKind.CLANG: ClangBackend,
    CompilerKind.MSVC: MSVCBackend,
}

# Kinds usable only on specific platforms (sys.platform values)
_PLATFORM_ONLY: dict[CompilerKind, str] = {
    CompilerKind.MSVC: "win32",
}


def is_available(kind: CompilerKind) -> bool:
    """Whether a backend can be selected on the running platform."""
    required = _PLATFORM_ONLY.get(kind)
    return required is None or sys.platform == required


def available_compilers() -> list[CompilerKind]:
    """Compiler kinds selectable on the running platform, in registry order."""
    return [kind for kind in BACKENDS if is_available(kind)]


def get_backend(kind: CompilerKind | None, runner: ProcessRunner) -> CompilerBackend | None:
    """Instantiate the backend for a kind.

    Returns:
        A backend bound to runner, or None when kind is unset or not available here.
    """
    if kind is None:
        return None
    if not is_available(kind):
        logger.error("Compiler %s is not available on %s", kind.value, sys.platform)
        return None
    return BACKENDS[kind](runner)
