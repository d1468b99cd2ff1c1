"""
Cached output entities.

A CacheEntry is what the cache manager hands back to the middleware. It is
immutable: a changed source replaces the entry as a whole, so a reader never
observes a half-written entry.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union


@dataclass(frozen=True)
class CacheEntry:
    """
    Cached output of one specifier.

    Attributes:
        code: Bundled code, or the raw file contents for passthrough entries
        last_modified: Source modification time (``st_mtime_ns``) at cache write
        path: Source file path, only set for passthrough (non-bundled) entries
        chunks: Split fragments produced together with this entry
    """

    code: str
    last_modified: int
    path: Optional[Path] = None
    chunks: Mapping[str, "CacheEntry"] = field(default_factory=dict)

    @property
    def is_passthrough(self) -> bool:
        return self.path is not None

    def to_output(self) -> Dict[str, Any]:
        """Render the output object handed to the consuming middleware."""
        output: Dict[str, Any] = {
            "code": self.code,
            "lastModified": self.last_modified,
        }
        if self.path is not None:
            output["path"] = str(self.path)
        if self.chunks:
            output["chunks"] = {
                name: {"code": chunk.code} for name, chunk in self.chunks.items()
            }
        return output


@dataclass(frozen=True)
class Fragment:
    """One output file of a pipeline run: either code or a raw asset."""

    name: str
    file_name: str
    code: Optional[str] = None
    raw_asset: Optional[Union[str, bytes]] = None

    @property
    def specifier(self) -> str:
        """The specifier under which this fragment is addressable."""
        if self.code is not None and self.file_name.endswith(".js"):
            return self.file_name[: -len(".js")]
        return self.file_name

    @property
    def content(self) -> str:
        if self.code is not None:
            return self.code
        if isinstance(self.raw_asset, bytes):
            return self.raw_asset.decode("utf-8", errors="replace")
        return self.raw_asset or ""
