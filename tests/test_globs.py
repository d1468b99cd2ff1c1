"""Tests for the glob helpers."""

import pytest

from modbundle.globs import glob_matches, load_ignore_filter, matches_any

pytestmark = pytest.mark.short


@pytest.mark.parametrize(
    "name,pattern,expected",
    [
        ("lib", "li?", True),
        ("@luigi-project/core", "@luigi-project/**", True),
        ("dist/lib.js.map", "**/*.map", True),
        ("dist/lib.js.map", "*.map", False),
        ("index.js.map", "*.map", True),
        ("foo/lib", "lib", False),
        ("foo/lib", "**/lib", True),
        ("dist/lib.js", "*.map", False),
        ("dist/themes/base.css", "dist/themes/**", True),
        ("other/dist/themes/base.css", "/dist/themes/**", False),
    ],
)
def test_glob_matches(name, pattern, expected):
    assert glob_matches(name, pattern) is expected


def test_matches_any():
    assert matches_any("index.js.map", ["*.css", "*.map"])
    assert not matches_any("index.js", ["*.css", "*.map"])
    assert not matches_any("index.js", [])


def test_load_ignore_filter(tmp_path):
    path = tmp_path / ".gitignore"
    path.write_text("# build output\n*.log\n!keep.log\n")

    ignore = load_ignore_filter(path)

    assert ignore.is_ignored(b"debug.log") is True
    assert ignore.is_ignored(b"keep.log") is False
    assert ignore.is_ignored(b"index.js") is None
    assert load_ignore_filter(tmp_path / "missing") is None
