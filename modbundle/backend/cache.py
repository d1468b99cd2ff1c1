"""
Output cache management ("getResource").

The cache manager decides per request whether to serve cached output, run
the bundling pipeline or pass the raw file through:

1. Chunk names registered by an earlier bundle are served from the cache
2. Everything else is resolved; unresolved names may still be cached
   fragments (e.g. raw assets emitted next to a bundle)
3. A fresh cache entry (same source mtime) is returned as is
4. Skipped, non-JS and native loader modules are passed through
5. All others are bundled, with one retry using the CommonJS-first field order
6. Split fragments are registered as chunks of the entry module

Entries are keyed by specifier and replaced as a whole, never edited.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from modbundle.backend.classifier import NativeFormatClassifier
from modbundle.backend.resolver import Resolver
from modbundle.constants import FALLBACK_MAIN_FIELDS, JS_EXTENSIONS
from modbundle.context import EngineContext
from modbundle.globs import matches_any
from modbundle.model.entries import CacheEntry, Fragment
from modbundle.model.options import ResolveOptions
from modbundle.pipeline.orchestrator import Orchestrator
from modbundle.pipeline.stages import DynamicImportStage

logger = logging.getLogger(__name__)


def fallback_main_fields(main_fields: Sequence[str]) -> Tuple[str, ...]:
    """Swap the priority of "module" and "main" in a main field order."""
    fields = list(main_fields)
    if "module" in fields and "main" in fields:
        i, j = fields.index("module"), fields.index("main")
        fields[i], fields[j] = fields[j], fields[i]
        return tuple(fields)
    return FALLBACK_MAIN_FIELDS


class CacheManager:
    """
    Serves resources from the engine's output cache.

    Usage:
        manager = CacheManager(context, resolver)
        entry = manager.get_resource("chart.js/auto", options)
        if entry is not None:
            serve(entry.to_output())
    """

    def __init__(
        self,
        context: EngineContext,
        resolver: Resolver,
        classifier: Optional[NativeFormatClassifier] = None,
        orchestrator: Optional[Orchestrator] = None,
    ):
        self.context = context
        self.resolver = resolver
        self.classifier = classifier or NativeFormatClassifier()
        self.orchestrator = orchestrator or Orchestrator(resolver)

    def get_resource(
        self,
        module_name: str,
        options: Optional[ResolveOptions] = None,
        skip_cache: bool = False,
        debug: bool = False,
        keep_dynamic_imports: Union[bool, Sequence[str]] = True,
        skip_transform: Union[bool, Sequence[str]] = False,
    ) -> Optional[CacheEntry]:
        """
        Look up a resource, bundling it if necessary.

        Args:
            module_name: Specifier of the module or of a chunk (e.g. "chart.js/auto")
            options: Working directory, extra search paths and main field order
            skip_cache: Rebuild even if the cached entry is fresh
            debug: Report the number of chunks of a split bundle
            keep_dynamic_imports: Keep computed dynamic imports (all or listed packages)
            skip_transform: Pass through all modules or the ones matching a glob

        Returns:
            The CacheEntry, or None if the resource is not available
        """
        options = options or ResolveOptions()
        with self.context.lock_for(module_name):
            try:
                return self._get_resource(
                    module_name,
                    options,
                    skip_cache,
                    debug,
                    keep_dynamic_imports,
                    skip_transform,
                )
            except OSError as e:
                logger.error(f"Couldn't read {module_name}: {e}")
                return None

    def _get_resource(
        self,
        module_name: str,
        options: ResolveOptions,
        skip_cache: bool,
        debug: bool,
        keep_dynamic_imports: Union[bool, Sequence[str]],
        skip_transform: Union[bool, Sequence[str]],
    ) -> Optional[CacheEntry]:
        # in case of chunks, the origin module is looked up instead
        path = self.context.chunk_index.get(module_name)
        is_chunk = path is not None
        if not is_chunk:
            path = self.resolver.resolve(module_name, options).value_or(None)
            if path is None:
                return self.context.cache.get(module_name)

        if not path.exists():
            logger.error(f"Bundle {module_name} doesn't exist at the resolved path {path}!")
            return None

        cached = self.context.cache.get(module_name)
        if is_chunk:
            return cached

        last_modified = path.stat().st_mtime_ns
        if cached is not None and not skip_cache and cached.last_modified == last_modified:
            return cached

        if self.should_passthrough(module_name, path, skip_transform):
            self.context.discard_chunks_of(path)
            entry = CacheEntry(
                code=path.read_text(encoding="utf-8", errors="replace"),
                last_modified=last_modified,
                path=path,
            )
            self.context.cache[module_name] = entry
            return entry

        fragments = self._bundle(module_name, options, keep_dynamic_imports)
        if fragments is None:
            return None
        return self._store(module_name, path, last_modified, fragments, debug)

    def should_passthrough(
        self,
        module_name: str,
        path: Path,
        skip_transform: Union[bool, Sequence[str]],
    ) -> bool:
        """Check whether a module is served untransformed."""
        if isinstance(skip_transform, bool):
            skip = skip_transform
        else:
            skip = matches_any(module_name, skip_transform)
        if skip:
            logger.debug(f"Skipping transformation of {module_name}")
            return True
        # only non-UI5 JS modules are transformed
        return path.suffix.lower() not in JS_EXTENSIONS or self.classifier.is_native(path)

    def _bundle(
        self,
        module_name: str,
        options: ResolveOptions,
        keep_dynamic_imports: Union[bool, Sequence[str]],
    ) -> Optional[List[Fragment]]:
        try:
            return self.orchestrator.create_bundle(
                module_name,
                options,
                post_stages=[DynamicImportStage(module_name, keep_dynamic_imports)],
            )
        except Exception as e:
            logger.warning(
                f'Failed to bundle "{module_name}" using ES modules, '
                "falling back to CommonJS modules..."
            )
            logger.debug(e)

        try:
            return self.orchestrator.create_bundle(
                module_name,
                options.with_main_fields(fallback_main_fields(options.main_fields)),
                post_stages=[DynamicImportStage(module_name, keep_dynamic_imports)],
            )
        except Exception as e:
            logger.error(f"Couldn't bundle {module_name}: {e}")
            return None

    def _store(
        self,
        module_name: str,
        path: Path,
        last_modified: int,
        fragments: List[Fragment],
        debug: bool,
    ) -> CacheEntry:
        primary, *others = fragments
        if others and debug:
            logger.info(f"The bundle for {module_name} has {len(fragments)} chunks!")

        # chunks of the previous build of this module are stale now
        self.context.discard_chunks_of(path)

        chunks = {}
        for fragment in others:
            chunk = CacheEntry(code=fragment.content, last_modified=last_modified)
            chunks[fragment.specifier] = chunk
            self.context.register_chunk(fragment.specifier, chunk, path)

        entry = CacheEntry(code=primary.content, last_modified=last_modified, chunks=chunks)
        self.context.cache[module_name] = entry
        return entry
