"""Tests for lock-aware artifact writing."""

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tusk.safe_write import is_locked, safe_write


class TestIsLocked:
    """Tests for lock marker detection."""

    def test_missing_file_is_not_locked(self, tmp_path: Path) -> None:
        assert not is_locked(tmp_path / "nope.sql")

    def test_marker_on_first_line(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("-- @lock\nSELECT 1;\n")
        assert is_locked(path)

    def test_marker_on_second_line(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("-- hand edited\n-- @lock\nSELECT 1;\n")
        assert is_locked(path)

    def test_marker_on_third_line_is_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("-- one\n-- two\n-- @lock\n")
        assert not is_locked(path)

    def test_marker_inside_text(self, tmp_path: Path) -> None:
        path = tmp_path / "a.sql"
        path.write_text("SELECT '@lock';\n")
        assert is_locked(path)


class TestSafeWrite:
    """Tests for safe_write."""

    def test_creates_file_and_parents(self, tmp_path: Path) -> None:
        path = tmp_path / "deep" / "dir" / "out.sql"
        assert safe_write(path, "SELECT 1;\n") is True
        assert path.read_text() == "SELECT 1;\n"

    def test_overwrites_unlocked_file(self, tmp_path: Path) -> None:
        path = tmp_path / "out.sql"
        path.write_text("old\n")
        assert safe_write(path, "new\n") is True
        assert path.read_text() == "new\n"

    def test_locked_file_is_untouched(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "out.sql"
        original = "-- @lock\nSELECT 'hand edited';\n"
        path.write_text(original)

        with caplog.at_level(logging.WARNING):
            assert safe_write(path, "generated\n") is False

        assert path.read_bytes() == original.encode()
        assert "@lock protected" in caplog.text

    def test_force_overwrites_locked_file(self, tmp_path: Path) -> None:
        path = tmp_path / "out.sql"
        path.write_text("-- @lock\nold\n")
        assert safe_write(path, "new\n", force=True) is True
        assert path.read_text() == "new\n"

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        safe_write(tmp_path / "out.sql", "x\n")
        assert [p.name for p in tmp_path.iterdir()] == ["out.sql"]

    def test_new_file_is_world_readable(self, tmp_path: Path) -> None:
        path = tmp_path / "out.sql"
        safe_write(path, "x\n")
        assert path.stat().st_mode & 0o777 == 0o644

    def test_existing_mode_is_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "out.sql"
        path.write_text("old\n")
        os.chmod(path, 0o600)
        safe_write(path, "new\n")
        assert path.stat().st_mode & 0o777 == 0o600

    def test_failed_rename_keeps_old_content(self, tmp_path: Path) -> None:
        path = tmp_path / "out.sql"
        path.write_text("old\n")

        with patch("tusk.safe_write.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                safe_write(path, "new\n")

        assert path.read_text() == "old\n"
        assert [p.name for p in tmp_path.iterdir()] == ["out.sql"]
