"""
Shared state of one engine instance.

The output cache, the negative resolution set and the chunk index live here
instead of in module globals, so a server (or a test) constructs one context
and hands it to every component. Nothing is persisted; the state lives as
long as the context.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from modbundle.model.entries import CacheEntry

logger = logging.getLogger(__name__)


class EngineContext:
    """
    Cache store, negative resolution set and chunk index of one engine.

    Invariant: every key of ``chunk_index`` is also a key of ``cache``.
    Use ``register_chunk``/``discard_chunks_of`` to keep it that way.
    """

    def __init__(self):
        self.cache: Dict[str, CacheEntry] = {}
        self.negative: Set[str] = set()
        self.chunk_index: Dict[str, Path] = {}

        # one lock per specifier, created on demand
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_lock = threading.Lock()

    def lock_for(self, specifier: str) -> threading.Lock:
        """
        Get or create the lock serializing builds of one specifier.

        Two concurrent requests for the same specifier run the pipeline only
        once: the second waits and then sees the cached entry.
        """
        with self._locks_lock:
            if specifier not in self._locks:
                self._locks[specifier] = threading.Lock()
            return self._locks[specifier]

    def is_chunk(self, specifier: str) -> bool:
        return specifier in self.chunk_index

    def register_chunk(self, specifier: str, entry: CacheEntry, origin: Path) -> None:
        self.cache[specifier] = entry
        self.chunk_index[specifier] = origin

    def chunks_of(self, origin: Path) -> Iterator[Tuple[str, Path]]:
        for name, path in list(self.chunk_index.items()):
            if path == origin:
                yield name, path

    def discard_chunks_of(self, origin: Path) -> list:
        """Drop every chunk registered for the entry module at ``origin``."""
        discarded = [name for name, _ in self.chunks_of(origin)]
        for name in discarded:
            del self.chunk_index[name]
            self.cache.pop(name, None)
        if discarded:
            logger.debug(f"Discarded stale chunks of {origin}: {', '.join(discarded)}")
        return discarded

    def forget(self, specifier: str) -> None:
        """Remove everything known about one specifier."""
        self.negative.discard(specifier)
        self.cache.pop(specifier, None)
        origin: Optional[Path] = self.chunk_index.pop(specifier, None)
        if origin is not None:
            logger.debug(f"Forgot chunk {specifier} of {origin}")
        self._prune_locks([specifier])

    def clear(self) -> None:
        """Reset the whole state, e.g. after dependencies were reinstalled."""
        self.cache.clear()
        self.negative.clear()
        self.chunk_index.clear()
        self._prune_locks()

    def _prune_locks(self, specifiers: Optional[Iterable[str]] = None) -> None:
        # locks of builds still in flight stay, their waiters hold a reference
        with self._locks_lock:
            for specifier in list(self._locks if specifiers is None else specifiers):
                lock = self._locks.get(specifier)
                if lock is not None and not lock.locked():
                    del self._locks[specifier]
