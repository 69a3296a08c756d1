"""Tests for upload disk storage helpers."""

import os
import time
from pathlib import Path

import pytest

from app.core.storage import PartWriter, generate_stored_name, remove_partial_files, safe_extension


class TestSafeExtension:
    """Tests for extension extraction from client filenames."""

    @pytest.mark.parametrize(
        ("original", "expected"),
        [
            ("homework.pdf", ".pdf"),
            ("Report.DOCX", ".DOCX"),
            ("archive.tar.gz", ".gz"),
            ("../../etc/passwd", ""),
            ("no_extension", ""),
            (".pdf", ""),
            ("", ""),
            ("weird.p d f", ""),
            ("作业.pdf", ".pdf"),
            ("تقرير.PDF", ".PDF"),
            ("C:\\Users\\kid\\essay.docx", ".docx"),
            ("rapport.pdé", ""),
        ],
    )
    def test_extension(self, original: str, expected: str) -> None:
        assert safe_extension(original) == expected


class TestGenerateStoredName:
    """Tests for stored filename generation."""

    def test_shape(self) -> None:
        name = generate_stored_name("assignment-file", "homework.pdf", timestamp_ms=1700000000000, random_suffix=42)
        assert name == "assignment-file-1700000000000-42.pdf"

    def test_without_extension(self) -> None:
        name = generate_stored_name("resource", "README", timestamp_ms=1, random_suffix=2)
        assert name == "resource-1-2"

    def test_defaults_are_current_time_and_random(self) -> None:
        before = time.time_ns() // 1_000_000
        field, stamp, suffix = generate_stored_name("f", "a.pdf").removesuffix(".pdf").split("-")
        after = time.time_ns() // 1_000_000

        assert field == "f"
        assert before <= int(stamp) <= after
        assert 0 <= int(suffix) < 1_000_000_000

    def test_names_do_not_repeat(self) -> None:
        names = {generate_stored_name("assignment-file", "report.docx") for _ in range(500)}
        assert len(names) == 500


class TestPartWriter:
    """Tests for the temp-file-then-rename writer."""

    def test_commit_promotes_temp_file(self, tmp_path: Path) -> None:
        writer = PartWriter(tmp_path, "a-1-2.pdf").open()
        writer.write(b"hello ")
        writer.write(b"world")

        assert writer.temp_path.exists()
        assert not writer.final_path.exists()

        path = writer.commit()

        assert path == tmp_path / "a-1-2.pdf"
        assert path.read_bytes() == b"hello world"
        assert writer.size == 11
        assert not writer.temp_path.exists()

    def test_temp_file_is_hidden(self, tmp_path: Path) -> None:
        writer = PartWriter(tmp_path, "a-1-2.pdf").open()
        assert writer.temp_path.name == ".a-1-2.pdf.part"
        writer.abort()

    def test_abort_removes_temp_file(self, tmp_path: Path) -> None:
        writer = PartWriter(tmp_path, "a-1-2.pdf").open()
        writer.write(b"partial")

        writer.abort()

        assert list(tmp_path.iterdir()) == []

    def test_abort_after_commit_keeps_file(self, tmp_path: Path) -> None:
        writer = PartWriter(tmp_path, "a-1-2.pdf").open()
        writer.write(b"done")
        writer.commit()

        writer.abort()

        assert (tmp_path / "a-1-2.pdf").read_bytes() == b"done"

    def test_write_requires_open(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            PartWriter(tmp_path, "a.pdf").write(b"x")

    def test_open_missing_directory_raises_oserror(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            PartWriter(tmp_path / "missing", "a.pdf").open()


class TestRemovePartialFiles:
    """Tests for orphaned part file cleanup."""

    def test_removes_only_old_part_files(self, tmp_path: Path) -> None:
        old_part = tmp_path / ".a-1-2.pdf.part"
        fresh_part = tmp_path / ".b-3-4.pdf.part"
        stored = tmp_path / "c-5-6.pdf"
        for path in (old_part, fresh_part, stored):
            path.write_bytes(b"x")
        an_hour_ago = time.time() - 3600
        os.utime(old_part, (an_hour_ago, an_hour_ago))

        removed = remove_partial_files(tmp_path, older_than=60)

        assert removed == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == [".b-3-4.pdf.part", "c-5-6.pdf"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert remove_partial_files(tmp_path / "missing") == 0
