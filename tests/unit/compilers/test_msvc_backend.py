"""Unit tests for the MSVC backend command synthesis."""

from pathlib import Path

from wsbuild.build.configuration import Configuration
from wsbuild.build.kinds import Architecture, CompilerKind, Optimization, ProjectKind
from wsbuild.compilers.msvc import MSVCBackend


def _config(tmp_path: Path, **kwargs) -> Configuration:
    return Configuration(compiler=CompilerKind.MSVC, output_dir=tmp_path / "out", **kwargs)


class TestMSVCCompileCommand:
    def test_cpp_source(self, tmp_path, runner):
        backend = MSVCBackend(runner)
        source = tmp_path / "main.cpp"
        config = _config(tmp_path, optimization=Optimization.FULL, defines=["DEBUG"], include_dirs=[tmp_path / "inc"])
        cmd = backend.make_compiler_command(config, source)
        assert cmd == [
            "cl",
            "/nologo",
            "/c",
            f"/Tp{source}",
            "/Ox",
            "/DDEBUG",
            f"/I{tmp_path / 'inc'}",
            f"/Fo{backend.compiler_output_path(config, source)}",
        ]

    def test_c_source(self, tmp_path, runner):
        cmd = MSVCBackend(runner).make_compiler_command(_config(tmp_path), tmp_path / "a.c")
        assert f"/Tc{tmp_path / 'a.c'}" in cmd

    def test_object_suffix(self, tmp_path, runner):
        path = MSVCBackend(runner).compiler_output_path(_config(tmp_path), tmp_path / "a.c")
        assert path.name == "a.c.obj"


class TestMSVCLinkCommand:
    def test_static_library_uses_lib(self, tmp_path, runner):
        cmd = MSVCBackend(runner).make_linker_command(_config(tmp_path), [tmp_path / "a.obj"], "liba", ProjectKind.STATIC_LIBRARY)
        assert cmd == ["lib", "/nologo", f"/OUT:{tmp_path / 'out' / 'liba.lib'}", str(tmp_path / "a.obj")]

    def test_dll(self, tmp_path, runner):
        config = _config(tmp_path, architecture=Architecture.X86_64, library_dirs=[tmp_path / "lib"], libraries=["liba"])
        cmd = MSVCBackend(runner).make_linker_command(config, [tmp_path / "a.obj"], "x", ProjectKind.DYNAMIC_LIBRARY)
        assert cmd == [
            "link",
            "/nologo",
            "/DLL",
            "/MACHINE:X64",
            f"/OUT:{tmp_path / 'out' / 'x.dll'}",
            f"/LIBPATH:{tmp_path / 'lib'}",
            str(tmp_path / "a.obj"),
            "liba.lib",
        ]

    def test_application_output(self, tmp_path, runner):
        path = MSVCBackend(runner).linker_output_path(_config(tmp_path), "app", ProjectKind.APPLICATION)
        assert path == tmp_path / "out" / "app.exe"

    def test_unspecified_kind(self, tmp_path, runner):
        assert MSVCBackend(runner).make_linker_command(_config(tmp_path), [], "x", ProjectKind.UNSPECIFIED) is None


class TestMSVCAssembly:
    def test_masm_source_uses_ml64(self, tmp_path, runner):
        backend = MSVCBackend(runner)
        source = tmp_path / "start.asm"
        config = _config(tmp_path, architecture=Architecture.X86_64, defines=["VALUE=42"], include_dirs=[tmp_path / "inc"])
        cmd = backend.make_compiler_command(config, source)
        assert cmd == [
            "ml64",
            "/nologo",
            "/c",
            "/DVALUE=42",
            f"/I{tmp_path / 'inc'}",
            f"/Fo{backend.compiler_output_path(config, source)}",
            str(source),
        ]

    def test_x86_uses_ml(self, tmp_path, runner):
        cmd = MSVCBackend(runner).make_compiler_command(_config(tmp_path, architecture=Architecture.X86), tmp_path / "a.asm")
        assert cmd[0] == "ml"

    def test_gnu_assembly_has_no_command(self, tmp_path, runner):
        backend = MSVCBackend(runner)
        assert backend.make_compiler_command(_config(tmp_path), tmp_path / "start.S") is None
        assert backend.make_compiler_command(_config(tmp_path), tmp_path / "start.s") is None

    def test_arm_masm_has_no_command(self, tmp_path, runner):
        config = _config(tmp_path, architecture=Architecture.ARM64)
        assert MSVCBackend(runner).make_compiler_command(config, tmp_path / "a.asm") is None

    def test_compile_refused_source_does_not_run(self, tmp_path, runner):
        assert MSVCBackend(runner).compile(_config(tmp_path), tmp_path / "start.S") is None
        assert runner.commands == []
