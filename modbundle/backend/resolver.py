"""
Module resolution: bare specifier -> file on disk.

Resolution Process (first success wins):
1. Relative specifiers and known-unresolvable ones are rejected right away
2. Specifiers prefixed with the consuming project's own package name are
   project-local resources (``<name>/path`` -> ``<cwd>/path.js``)
3. The target package's package.json is read and its entry fields are
   consulted in the configured order (browser, module, main by default)
4. Standard package resolution from the working directory and the extra
   search paths, then an unscoped lookup from the process defaults
5. Whatever is still unresolved is recorded in the negative cache

The outcome is a ``returns`` Result, so callers can tell an unresolved
specifier from an I/O failure instead of just seeing ``None``.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from returns.result import Failure, Result, Success

from modbundle.backend.node_resolve import default_search_roots, node_resolve, resolve_file
from modbundle.constants import DEFAULT_MAIN_FIELDS, MANIFEST_FILE
from modbundle.context import EngineContext
from modbundle.exceptions import ModuleNotResolved, ResolutionError, ResolutionIOError
from modbundle.model.manifest import PackageManifest
from modbundle.model.options import ResolveOptions

logger = logging.getLogger(__name__)

ResolveResult = Result[Path, ResolutionError]


class Resolver:
    """
    Maps module specifiers to filesystem paths.

    The negative cache is part of the shared EngineContext, so every
    component working on the same context benefits from earlier misses.

    Usage:
        resolver = Resolver(EngineContext())
        result = resolver.resolve("chart.js/auto", ResolveOptions(working_dir=cwd))
        path = result.value_or(None)
    """

    def __init__(self, context: EngineContext):
        self.context = context

    def resolve(self, specifier: str, options: ResolveOptions) -> ResolveResult:
        """
        Resolve a specifier.

        Args:
            specifier: Bare module specifier (e.g. "chart.js/auto")
            options: Working directory, extra search paths and field order

        Returns:
            Success(path), Failure(ModuleNotResolved) or Failure(ResolutionIOError)
        """
        if specifier.startswith("."):
            return Failure(ModuleNotResolved(specifier, "relative"))
        if specifier in self.context.negative:
            return Failure(ModuleNotResolved(specifier, "negative-cache"))

        try:
            app_name = self._app_name(options.working_dir)
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read the project manifest in {options.working_dir}: {e}")
            return Failure(ResolutionIOError(specifier, e))

        main_fields = options.main_fields or DEFAULT_MAIN_FIELDS
        logger.debug(f"Resolving {specifier} [{', '.join(main_fields)}]...")

        # special handling for project-local resources
        if app_name and specifier.startswith(f"{app_name}/"):
            path = options.working_dir / f"{specifier[len(app_name) + 1:]}.js"
            logger.debug(f"  => project resource at {path}")
            return Success(path)

        path = self._lookup(specifier, options, main_fields)
        if path is None:
            self.context.negative.add(specifier)
            logger.debug("  => not found!")
            return Failure(ModuleNotResolved(specifier))

        logger.debug(f"  => found at {path}")
        return Success(path)

    def resolve_path(self, specifier: str, options: ResolveOptions) -> Optional[Path]:
        """Like resolve(), unwrapped to the path or None."""
        return self.resolve(specifier, options).value_or(None)

    def _app_name(self, working_dir: Path) -> Optional[str]:
        manifest_path = Path(working_dir) / MANIFEST_FILE
        if not manifest_path.is_file():
            return None
        return PackageManifest.from_path(manifest_path).name

    def _lookup(
        self, specifier: str, options: ResolveOptions, main_fields: Sequence[str]
    ) -> Optional[Path]:
        """Search the filesystem (steps 3 and 4)."""
        path = self._from_manifest_fields(specifier, options, main_fields)
        if path is None:
            path = self._from_package_lookup(specifier, options)
        return path

    def _from_manifest_fields(
        self, specifier: str, options: ResolveOptions, main_fields: Sequence[str]
    ) -> Optional[Path]:
        try:
            manifest_specifier = f"{specifier}/{MANIFEST_FILE}"
            manifest_path = node_resolve(
                manifest_specifier, options.search_roots
            ) or node_resolve(manifest_specifier, default_search_roots())
            if manifest_path is None:
                return None

            manifest = PackageManifest.from_path(manifest_path)
            entry = manifest.entry_for(main_fields)
            if entry is None:
                return None

            candidate = resolve_file(manifest_path.parent / entry)
            if candidate is None:
                logger.debug(f"  => {entry} of {manifest_path} doesn't exist")
            return candidate
        except Exception as e:
            logger.debug(f"  => reading the manifest of {specifier} failed: {e}")
            return None

    def _from_package_lookup(
        self, specifier: str, options: ResolveOptions
    ) -> Optional[Path]:
        try:
            # necessary for pnpm and linked packages: lookup from cwd and the extra paths
            path = node_resolve(specifier, options.search_roots)
            if path is None:
                path = node_resolve(specifier, default_search_roots())
            return path
        except Exception as e:
            logger.debug(f"  => package lookup of {specifier} failed: {e}")
            return None
