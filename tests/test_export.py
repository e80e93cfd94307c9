"""
Tests for exporting migrated files

Run with: pytest tests/test_export.py -v
"""

import os
import stat

import pytest

from migrator.engine import MigratedFile
from migrator.errors import ExportError
from migrator.export import DirectorySink, MemorySink, export

FILES = [
    MigratedFile("20260101000000-1-bsc-0xabc-accounts.json", '{\n  "address": "0x1"\n}'),
    MigratedFile("20260101000000-2-eth-0xabc-accounts.json", "[]"),
]


class TestMemorySink:

    def test_pass_through(self):
        sink = MemorySink()
        assert export(FILES, sink) == 2
        assert sink.files == {f.filename: f.text for f in FILES}

    def test_refuses_duplicate_name(self):
        sink = MemorySink()
        sink.write("a.json", "first")
        with pytest.raises(ExportError):
            sink.write("a.json", "second")
        assert sink.files == {"a.json": "first"}


class TestDirectorySink:

    def test_writes_files(self, tmp_path):
        out = tmp_path / "out"
        assert export(FILES, DirectorySink(out)) == 2
        for f in FILES:
            assert (out / f.filename).read_text(encoding="utf-8") == f.text

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_owner_only_permissions(self, tmp_path):
        DirectorySink(tmp_path).write("a.json", "{}")
        assert stat.S_IMODE((tmp_path / "a.json").stat().st_mode) == 0o600

    def test_refuses_overwrite(self, tmp_path):
        (tmp_path / "a.json").write_text("original")
        with pytest.raises(ExportError):
            DirectorySink(tmp_path).write("a.json", "new")
        assert (tmp_path / "a.json").read_text() == "original"

    def test_overwrite_allowed(self, tmp_path):
        (tmp_path / "a.json").write_text("original")
        DirectorySink(tmp_path, overwrite=True).write("a.json", "new")
        assert (tmp_path / "a.json").read_text() == "new"

    def test_rejects_paths(self, tmp_path):
        with pytest.raises(ExportError):
            DirectorySink(tmp_path).write("../escape.json", "{}")
        assert not (tmp_path.parent / "escape.json").exists()


class TestPartialFailure:

    def test_continues_after_failed_write(self, tmp_path):
        (tmp_path / FILES[0].filename).write_text("already here")
        written = export(FILES, DirectorySink(tmp_path))
        assert written == 1
        assert (tmp_path / FILES[0].filename).read_text() == "already here"
        assert (tmp_path / FILES[1].filename).exists()

    def test_nothing_to_export(self):
        assert export([], MemorySink()) == 0
