"""Tests for the cached output entities."""

from pathlib import Path

import pytest

from modbundle.model.entries import CacheEntry, Fragment

pytestmark = pytest.mark.short


class TestCacheEntry:
    def test_bundled_output(self):
        chunk = CacheEntry(code="chunk", last_modified=1)
        entry = CacheEntry(code="bundle", last_modified=1, chunks={"lib-abcd1234": chunk})

        assert not entry.is_passthrough
        assert entry.to_output() == {
            "code": "bundle",
            "lastModified": 1,
            "chunks": {"lib-abcd1234": {"code": "chunk"}},
        }

    def test_passthrough_output(self):
        entry = CacheEntry(code="raw", last_modified=2, path=Path("/pkg/theme.css"))

        assert entry.is_passthrough
        assert entry.to_output() == {
            "code": "raw",
            "lastModified": 2,
            "path": "/pkg/theme.css",
        }

    def test_entries_are_immutable(self):
        entry = CacheEntry(code="x", last_modified=0)

        with pytest.raises(AttributeError):
            entry.code = "y"


class TestFragment:
    def test_code_fragment(self):
        fragment = Fragment(name="lib-abcd1234", file_name="lib-abcd1234.js", code="x")

        assert fragment.specifier == "lib-abcd1234"
        assert fragment.content == "x"

    def test_raw_asset(self):
        fragment = Fragment(name="style.css", file_name="lib/style.css", raw_asset=b".a{}")

        assert fragment.specifier == "lib/style.css"
        assert fragment.content == ".a{}"
