"""
Pipeline diagnostics and how they are reported.

Stages and the module graph report warnings as Diagnostic objects. A fixed
set of categories is noise for third-party code (circular dependencies,
mixed export styles, ...) and is dropped; everything else is logged.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from modbundle.constants import SKIPPED_WARNINGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    file: str
    line: int
    column: int


@dataclass(frozen=True)
class Diagnostic:
    """A warning raised while building a bundle."""

    code: str
    message: str
    loc: Optional[Location] = None
    frame: Optional[str] = None

    def format(self) -> str:
        if self.loc is not None:
            return f"{self.loc.file} ({self.loc.line}:{self.loc.column}) {self.message}"
        return f"{self.message} [{self.code}]"


def code_frame(source: str, line: int, column: int, context: int = 2) -> str:
    """Render the lines around ``line`` (1-based) with a caret under ``column``."""
    lines = source.splitlines()
    if not 0 < line <= len(lines):
        return ""
    first = max(1, line - context)
    last = min(len(lines), line + context)
    width = len(str(last))
    out = []
    for number in range(first, last + 1):
        out.append(f"{number:>{width}}: {lines[number - 1]}")
        if number == line:
            out.append(" " * (width + 2 + column) + "^")
    return "\n".join(out)


class DiagnosticReporter:
    """Callable warning sink: filters skipped categories and logs the rest."""

    def __init__(self, skipped: FrozenSet[str] = SKIPPED_WARNINGS):
        self.skipped = frozenset(skipped)
        self.reported = []

    def __call__(self, diagnostic: Diagnostic) -> None:
        if diagnostic.code in self.skipped:
            return
        self.reported.append(diagnostic)
        logger.warning(diagnostic.format())
        if diagnostic.loc is not None and diagnostic.frame:
            logger.warning(diagnostic.frame)
