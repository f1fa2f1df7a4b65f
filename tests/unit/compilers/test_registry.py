"""Unit tests for the compiler backend registry."""

from unittest.mock import patch

from wsbuild.build.kinds import CompilerKind
from wsbuild.compilers.gcc import ClangBackend, GCCBackend
from wsbuild.compilers.msvc import MSVCBackend
from wsbuild.compilers.registry import available_compilers, get_backend, is_available


def test_unset_kind_has_no_backend(runner):
    assert get_backend(None, runner) is None


def test_gcc_and_clang_everywhere(runner):
    with patch("sys.platform", "linux"):
        assert isinstance(get_backend(CompilerKind.GCC, runner), GCCBackend)
        assert isinstance(get_backend(CompilerKind.CLANG, runner), ClangBackend)


def test_msvc_only_on_windows(runner):
    with patch("sys.platform", "linux"):
        assert not is_available(CompilerKind.MSVC)
        assert get_backend(CompilerKind.MSVC, runner) is None
        assert available_compilers() == [CompilerKind.GCC, CompilerKind.CLANG]
    with patch("sys.platform", "win32"):
        assert isinstance(get_backend(CompilerKind.MSVC, runner), MSVCBackend)
        assert CompilerKind.MSVC in available_compilers()
