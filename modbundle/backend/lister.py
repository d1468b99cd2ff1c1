"""
Resource listing of an npm package.

Lists every file of a resolved package (honouring its ignore files) as
package-relative specifiers, e.g. ``chart.js/dist/chart.umd.js``.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from dulwich.ignore import IgnoreFilter

from modbundle.backend.resolver import Resolver
from modbundle.constants import IGNORE_FILES, MANIFEST_FILE
from modbundle.exceptions import PackageNotFoundError
from modbundle.globs import load_ignore_filter, matches_any
from modbundle.model.options import ResolveOptions

logger = logging.getLogger(__name__)

# (directory relative to the package root, filter of that directory)
_ScopedFilter = Tuple[str, IgnoreFilter]


def _is_ignored(rel_path: str, filters: Sequence[_ScopedFilter]) -> bool:
    """Evaluate ignore filters, the deepest directory having the last word."""
    status = None
    for base, ignore_filter in filters:
        scoped = rel_path[len(base) + 1 :] if base else rel_path
        verdict = ignore_filter.is_ignored(scoped.encode("utf-8"))
        if verdict is not None:
            status = verdict
    return bool(status)


def walk_package(root: Path, ignore_files: Iterable[str] = IGNORE_FILES) -> List[str]:
    """
    Walk a package directory and return the relative paths of its files.

    Ignore files are read in every directory; their patterns apply to the
    directory they live in and below.
    """
    root = Path(root)
    ignore_files = tuple(ignore_files)
    files: List[str] = []
    scoped_filters = {}

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir

        filters = list(scoped_filters.get(rel_dir, []))
        for name in ignore_files:
            ignore_filter = load_ignore_filter(Path(dirpath) / name)
            if ignore_filter is not None:
                filters.append((rel_dir, ignore_filter))

        def rel(name: str) -> str:
            return f"{rel_dir}/{name}" if rel_dir else name

        dirnames[:] = sorted(
            d for d in dirnames if not _is_ignored(rel(d) + "/", filters)
        )
        for d in dirnames:
            scoped_filters[rel(d)] = filters

        for name in sorted(filenames):
            if not _is_ignored(rel(name), filters):
                files.append(rel(name))

    return sorted(files)


class ResourceLister:
    """
    Enumerates the files of an npm package.

    Usage:
        lister = ResourceLister(resolver)
        resources = lister.list("chart.js", options, ignore=["**/*.map"])
    """

    def __init__(self, resolver: Resolver, ignore_files: Iterable[str] = IGNORE_FILES):
        self.resolver = resolver
        self.ignore_files = tuple(ignore_files)

    def list(
        self,
        package_name: str,
        options: ResolveOptions,
        ignore: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """
        List all resources of a package filtered by ignore globs.

        Args:
            package_name: Name of the npm package (e.g. "chart.js")
            options: Working directory and extra search paths
            ignore: Globs (relative to the package root) to exclude

        Returns:
            Sorted list of specifiers "<package_name>/<relative path>"

        Raises:
            PackageNotFoundError: If the package manifest cannot be resolved
        """
        manifest_path = self.resolver.resolve_path(
            f"{package_name}/{MANIFEST_FILE}", options
        )
        if manifest_path is None:
            raise PackageNotFoundError(package_name)

        package_root = Path(manifest_path).parent
        logger.debug(f"Listing resources of {package_name} in {package_root}")

        resources = []
        for rel_path in walk_package(package_root, self.ignore_files):
            if ignore and matches_any(rel_path, ignore):
                continue
            resources.append(f"{package_name}/{rel_path}")
        return resources
