"""
Standard package resolution (the lookup ``require.resolve`` performs).

Given a bare specifier like ``chart.js/auto`` and a list of search roots,
every root and its ancestors are searched for ``node_modules/<package>``.
Inside a package the ``exports`` map is authoritative when present;
otherwise the subpath is resolved as a file (with the usual extensions) or
as a directory (package.json entry field, then ``index``).

Results are real paths: packages installed by pnpm are symlinks into a
content-addressed store and nested dependencies are only found relative to
the store location.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Tuple

from modbundle.constants import (
    MANIFEST_FILE,
    REQUIRE_CONDITIONS,
    RESOLVE_EXTENSIONS,
)
from modbundle.model.manifest import PackageManifest

logger = logging.getLogger(__name__)


def split_specifier(specifier: str) -> Tuple[str, str]:
    """
    Split a bare specifier into package name and subpath.

    Examples:
        chart.js/auto -> ("chart.js", "auto")
        @scope/pkg/a/b -> ("@scope/pkg", "a/b")
        lodash -> ("lodash", "")
    """
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


def is_bare(specifier: str) -> bool:
    return not (
        specifier.startswith(".")
        or specifier.startswith("/")
        or specifier.startswith("\0")
        or os.path.isabs(specifier)
    )


def node_modules_dirs(root: Path) -> Iterator[Path]:
    """Yield the node_modules directories visible from ``root``, nearest first."""
    root = Path(root).absolute()
    for directory in (root, *root.parents):
        if directory.name == "node_modules":
            continue
        yield directory / "node_modules"


def load_manifest(package_dir: Path) -> Optional[PackageManifest]:
    manifest_path = package_dir / MANIFEST_FILE
    if not manifest_path.is_file():
        return None
    try:
        return PackageManifest.from_path(manifest_path)
    except (OSError, ValueError) as e:
        logger.debug(f"Ignoring unreadable manifest {manifest_path}: {e}")
        return None


def resolve_file(path: Path) -> Optional[Path]:
    if path.is_file():
        return path
    for ext in RESOLVE_EXTENSIONS:
        candidate = path.with_name(path.name + ext)
        if candidate.is_file():
            return candidate
    return None


def resolve_index(path: Path) -> Optional[Path]:
    for ext in RESOLVE_EXTENSIONS:
        candidate = path / f"index{ext}"
        if candidate.is_file():
            return candidate
    return None


def resolve_directory(path: Path, main_fields: Sequence[str]) -> Optional[Path]:
    """Resolve a directory via its package.json entry field or its index file."""
    if not path.is_dir():
        return None
    manifest = load_manifest(path)
    if manifest is not None:
        entry = manifest.entry_for(main_fields)
        if entry:
            target = path / entry
            found = resolve_file(target) or resolve_index(target)
            if found is not None:
                return found
    return resolve_index(path)


def resolve_path(path: Path, main_fields: Sequence[str]) -> Optional[Path]:
    """Resolve a concrete filesystem path as a file, then as a directory."""
    return resolve_file(path) or resolve_directory(path, main_fields)


def _pick_condition(target, conditions: Sequence[str]) -> Optional[str]:
    if isinstance(target, str):
        return target
    if isinstance(target, list):
        for item in target:
            picked = _pick_condition(item, conditions)
            if picked is not None:
                return picked
        return None
    if isinstance(target, dict):
        for condition in conditions:
            if condition in target:
                picked = _pick_condition(target[condition], conditions)
                if picked is not None:
                    return picked
    return None


def resolve_exports(
    package_dir: Path, exports, subpath: str, conditions: Sequence[str]
) -> Optional[Path]:
    """
    Resolve a subpath through a package "exports" map.

    Supports the string/array sugar for ".", conditional objects and
    subpath patterns containing a single ``*``.
    """
    key = f"./{subpath}" if subpath else "."

    if not isinstance(exports, dict) or not any(k.startswith(".") for k in exports):
        exports = {".": exports}

    target = exports.get(key)
    star = None
    if target is None:
        for pattern, value in exports.items():
            if "*" not in pattern:
                continue
            prefix, _, suffix = pattern.partition("*")
            if (
                key.startswith(prefix)
                and key.endswith(suffix)
                and len(key) >= len(prefix) + len(suffix)
            ):
                star = key[len(prefix) : len(key) - len(suffix)]
                target = value
                break

    picked = _pick_condition(target, conditions)
    if picked is None:
        return None
    if star is not None:
        picked = picked.replace("*", star)

    candidate = package_dir / picked
    return candidate if candidate.is_file() else None


def resolve_in_package(
    package_dir: Path,
    subpath: str,
    main_fields: Sequence[str],
    conditions: Sequence[str],
) -> Optional[Path]:
    # manifests are always reachable, also the ones of nested entry folders
    if subpath == MANIFEST_FILE or subpath.endswith(f"/{MANIFEST_FILE}"):
        manifest_path = package_dir / subpath
        return manifest_path if manifest_path.is_file() else None

    manifest = load_manifest(package_dir)
    if manifest is not None and manifest.exports is not None:
        found = resolve_exports(package_dir, manifest.exports, subpath, conditions)
        if found is not None:
            return found
        logger.debug(f"Subpath '{subpath or '.'}' not exported by {package_dir}")
        return None

    if subpath:
        return resolve_path(package_dir / subpath, main_fields)
    return resolve_directory(package_dir, main_fields)


def node_resolve(
    specifier: str,
    roots: Iterable[Path],
    main_fields: Sequence[str] = ("main",),
    conditions: Sequence[str] = REQUIRE_CONDITIONS,
) -> Optional[Path]:
    """
    Resolve a bare specifier from the given search roots.

    Args:
        specifier: Bare module specifier (package name, optionally with subpath)
        roots: Search roots; each root and its ancestors are searched
        main_fields: package.json fields consulted for a directory entry
        conditions: Conditions honoured in an "exports" map

    Returns:
        Real path of the resolved file, or None
    """
    if not is_bare(specifier):
        path = Path(specifier)
        if path.is_absolute():
            found = resolve_path(path, main_fields)
            return found.resolve() if found is not None else None
        return None

    name, subpath = split_specifier(specifier)
    for root in roots:
        for node_modules in node_modules_dirs(root):
            package_dir = node_modules / name
            if not package_dir.is_dir():
                continue
            found = resolve_in_package(package_dir, subpath, main_fields, conditions)
            if found is not None:
                return found.resolve()
    return None


def default_search_roots() -> list:
    """Search roots of an unscoped lookup: the process cwd and NODE_PATH."""
    roots = [Path.cwd()]
    node_path = os.environ.get("NODE_PATH", "")
    roots.extend(Path(p) for p in node_path.split(os.pathsep) if p.strip())
    return roots
