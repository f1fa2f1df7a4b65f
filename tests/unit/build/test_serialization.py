"""Unit tests for object-tree file persistence."""

import json
from pathlib import Path

import pytest

from wsbuild.build.serialization import (
    ObjectWriter,
    SerializationError,
    anchor,
    load_objects,
    read_objects,
    relative_to,
)


class TestObjectWriter:
    def test_writes_objects_in_order(self, tmp_path):
        path = tmp_path / "p.wsproject"
        with ObjectWriter(path) as writer:
            writer.write_object("Name", "app")
            writer.write_object("Files", ["main.cpp"])
            writer.write_object("FileFilters", {"src": {"Files": ["a.cpp"]}})

        seen = []
        read_objects(path, lambda name, value: seen.append((name, value)))
        assert seen == [("Name", "app"), ("Files", ["main.cpp"]), ("FileFilters", {"src": {"Files": ["a.cpp"]}})]
        assert not path.with_name(path.name + ".tmp").exists()

    def test_exception_inside_block_writes_nothing(self, tmp_path):
        path = tmp_path / "p.wsproject"
        path.write_text('{"Name": "old"}', encoding="utf-8")
        with pytest.raises(RuntimeError):
            with ObjectWriter(path) as writer:
                writer.write_object("Name", "new")
                raise RuntimeError("abort")
        assert load_objects(path) == {"Name": "old"}

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "w.wsworkspace"
        with ObjectWriter(path) as writer:
            writer.write_object("Name", "w")
        assert path.exists()


class TestLoadObjects:
    def test_missing_file(self, tmp_path):
        with pytest.raises(SerializationError, match="Failed to read"):
            load_objects(tmp_path / "missing.wsproject")

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.wsproject"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SerializationError):
            load_objects(path)

    def test_root_must_be_table(self, tmp_path):
        path = tmp_path / "list.wsproject"
        path.write_text(json.dumps(["a"]), encoding="utf-8")
        with pytest.raises(SerializationError, match="not a table"):
            load_objects(path)


class TestPaths:
    def test_relative_to_uses_forward_slashes(self, tmp_path):
        assert relative_to(tmp_path / "src" / "main.cpp", tmp_path) == "src/main.cpp"

    def test_relative_to_parent(self, tmp_path):
        assert relative_to(tmp_path / "lib", tmp_path / "app") == "../lib"

    def test_anchor_relative(self, tmp_path):
        assert anchor("src/../src/main.cpp", tmp_path) == tmp_path / "src" / "main.cpp"

    def test_anchor_absolute_kept(self, tmp_path):
        absolute = str(Path(tmp_path / "x.cpp"))
        assert anchor(absolute, tmp_path / "elsewhere") == tmp_path / "x.cpp"
