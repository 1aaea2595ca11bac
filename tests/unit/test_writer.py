"""Tests for idempotent file writing."""

from pathlib import Path

from testweaver.generators.writer import write_if_changed


class TestWriteIfChanged:
    def test_creates_parents(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "x.spec.ts"
        assert write_if_changed(path, "one\n")
        assert path.read_text(encoding="utf-8") == "one\n"

    def test_same_content_is_not_rewritten(self, tmp_path: Path) -> None:
        path = tmp_path / "x.spec.ts"
        write_if_changed(path, "one\n")
        mtime = path.stat().st_mtime_ns
        assert not write_if_changed(path, "one\n")
        assert path.stat().st_mtime_ns == mtime

    def test_changed_content_is_rewritten(self, tmp_path: Path) -> None:
        path = tmp_path / "x.spec.ts"
        write_if_changed(path, "one\n")
        assert write_if_changed(path, "two\n")
        assert path.read_text(encoding="utf-8") == "two\n"

    def test_utf8_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "x.test.py"
        write_if_changed(path, "name = \"Zoë\"\n")
        assert path.read_bytes() == "name = \"Zoë\"\n".encode()
