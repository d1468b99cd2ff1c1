"""
Glob matching on module names and package relative paths.

Wildcards follow gitignore (via dulwich.ignore), but a glob always matches
the whole name: a pattern without a slash is anchored, so ``*.map`` matches
``index.js.map`` and not ``dist/index.js.map`` (use ``**/*.map`` for that).
Ignore files found in a package keep plain gitignore semantics.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Union

from dulwich.ignore import IgnoreFilter, Pattern, read_ignore_patterns


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Pattern:
    if "/" not in pattern.rstrip("/"):
        pattern = "/" + pattern
    return Pattern(pattern.encode("utf-8"))


def glob_matches(name: str, pattern: str) -> bool:
    """Check a module name or relative path against one glob."""
    return _compile(pattern).match(name.encode("utf-8"))


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(glob_matches(name, pattern) for pattern in patterns)


def load_ignore_filter(path: Union[str, Path]) -> Optional[IgnoreFilter]:
    """Read an ignore file into a filter; None if it doesn't exist."""
    if not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        patterns: List[bytes] = list(read_ignore_patterns(f))
    return IgnoreFilter(patterns)
