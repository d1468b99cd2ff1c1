"""Tests for the shared engine state."""

import threading
from pathlib import Path

import pytest

from modbundle.context import EngineContext
from modbundle.model.entries import CacheEntry

pytestmark = pytest.mark.short

ORIGIN = Path("/node_modules/lib/index.js")


def entry(code):
    return CacheEntry(code=code, last_modified=0)


class TestEngineContext:
    def test_lock_per_specifier(self, context):
        assert context.lock_for("lib") is context.lock_for("lib")
        assert context.lock_for("lib") is not context.lock_for("other")

    def test_locks_are_created_once_under_contention(self, context):
        locks = []
        threads = [
            threading.Thread(target=lambda: locks.append(context.lock_for("lib")))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(lock) for lock in locks}) == 1

    def test_chunks_are_indexed_and_cached(self, context):
        context.register_chunk("lib-aaaa1111", entry("a"), ORIGIN)

        assert context.is_chunk("lib-aaaa1111")
        assert context.cache["lib-aaaa1111"].code == "a"
        assert list(context.chunks_of(ORIGIN)) == [("lib-aaaa1111", ORIGIN)]

    def test_discard_chunks_of_one_origin(self, context):
        other = Path("/node_modules/other/index.js")
        context.register_chunk("lib-aaaa1111", entry("a"), ORIGIN)
        context.register_chunk("other-bbbb2222", entry("b"), other)
        context.cache["lib"] = entry("main")

        assert context.discard_chunks_of(ORIGIN) == ["lib-aaaa1111"]
        assert context.chunk_index == {"other-bbbb2222": other}
        assert set(context.cache) == {"other-bbbb2222", "lib"}

    def test_forget(self, context):
        context.negative.add("missing")
        context.register_chunk("lib-aaaa1111", entry("a"), ORIGIN)

        context.forget("missing")
        context.forget("lib-aaaa1111")

        assert context.negative == set()
        assert context.cache == {}
        assert context.chunk_index == {}

    def test_clear(self):
        context = EngineContext()
        context.negative.add("missing")
        context.cache["lib"] = entry("x")
        context.register_chunk("lib-aaaa1111", entry("a"), ORIGIN)

        context.clear()

        assert not context.negative and not context.cache and not context.chunk_index

    def test_clear_releases_idle_locks(self, context):
        idle = context.lock_for("lib")
        busy = context.lock_for("other")

        with busy:
            context.clear()
            assert set(context._locks) == {"other"}
            assert context.lock_for("other") is busy

        assert context.lock_for("lib") is not idle

    def test_forget_releases_the_lock(self, context):
        lock = context.lock_for("lib")

        context.forget("lib")

        assert context.lock_for("lib") is not lock
        assert set(context._locks) == {"lib"}
