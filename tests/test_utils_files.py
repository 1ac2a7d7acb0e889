"""Tests for file utilities."""

from __future__ import annotations

from pathlib import Path

import pytest

from findex.utils.files import (
    format_size,
    normalize_rel_path,
    parent_of,
    resolve_within,
    split_extension,
)


class TestSplitExtension:
    """Tests for split_extension."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("report.pdf", "pdf"),
            ("Photo.JPG", "jpg"),
            ("archive.tar.gz", "gz"),
            ("README", ""),
            (".bashrc", ""),
            ("trailing.", ""),
        ],
    )
    def test_split_extension(self, name: str, expected: str) -> None:
        assert split_extension(name) == expected


class TestNormalizeRelPath:
    """Tests for normalize_rel_path."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, ""),
            ("", ""),
            ("/", ""),
            ("/a/b/", "a/b"),
            ("a//b", "a/b"),
            ("./a/./b", "a/b"),
            ("a\\b", "a/b"),
        ],
    )
    def test_normalize(self, raw: str | None, expected: str) -> None:
        assert normalize_rel_path(raw) == expected

    def test_parent_of(self) -> None:
        assert parent_of("a/b/c.txt") == "a/b"
        assert parent_of("top.txt") == ""


class TestFormatSize:
    """Tests for format_size."""

    def test_bytes(self) -> None:
        assert format_size(0) == "0 B"
        assert format_size(1023) == "1023 B"

    def test_binary_units(self) -> None:
        assert format_size(1024) == "1.00 KB"
        assert format_size(1536 * 1024) == "1.50 MB"
        assert format_size(3 * 1024**3) == "3.00 GB"
        assert format_size(2 * 1024**4) == "2.00 TB"


class TestResolveWithin:
    """Tests for resolve_within."""

    def test_inside_root(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "f.txt").write_text("x")
        resolved = resolve_within(tmp_path, "a/f.txt")
        assert resolved == (tmp_path / "a" / "f.txt").resolve()

    def test_escape_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret.txt").write_text("x")
        assert resolve_within(root, "../secret.txt") is None

    def test_symlink_escape_rejected(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        root.mkdir()
        outside = tmp_path / "outside.txt"
        outside.write_text("x")
        (root / "link.txt").symlink_to(outside)
        assert resolve_within(root, "link.txt") is None
