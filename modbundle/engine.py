"""
The module engine: one context shared by all components.

Usage:
    engine = ModuleEngine()
    options = engine.options(cwd=project_dir)
    entry = engine.get_resource("chart.js/auto", options)
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from modbundle.backend.cache import CacheManager
from modbundle.backend.classifier import NativeFormatClassifier
from modbundle.backend.lister import ResourceLister
from modbundle.backend.resolver import Resolver
from modbundle.config import ConfigAccessor, get_default_main_fields, get_default_search_paths
from modbundle.context import EngineContext
from modbundle.model.entries import CacheEntry, Fragment
from modbundle.model.options import ResolveOptions
from modbundle.model.settings import BundleSettings
from modbundle.pipeline.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


class ModuleEngine:
    """Wires resolver, classifier, orchestrator, cache manager and lister."""

    def __init__(
        self,
        context: Optional[EngineContext] = None,
        settings: Optional[BundleSettings] = None,
        config: Optional[ConfigAccessor] = None,
    ):
        self.context = context or EngineContext()
        self.settings = settings or BundleSettings()
        self.config = config
        self.resolver = Resolver(self.context)
        self.classifier = NativeFormatClassifier()
        self.orchestrator = Orchestrator(self.resolver)
        self.cache = CacheManager(
            self.context, self.resolver, self.classifier, self.orchestrator
        )
        self.lister = ResourceLister(self.resolver)

    def options(
        self,
        cwd: Optional[Union[str, Path]] = None,
        dep_paths: Iterable[Union[str, Path]] = (),
    ) -> ResolveOptions:
        """
        Build resolve options from the arguments, the settings and the user config.

        Search roots are ordered: explicit dep paths, settings, user config.
        """
        config = self.config or ConfigAccessor()
        search_paths: List[Path] = [Path(p) for p in dep_paths]
        search_paths += list(self.settings.extra_search_paths)
        search_paths += get_default_search_paths(config)
        return ResolveOptions(
            working_dir=Path(cwd) if cwd is not None else Path.cwd(),
            extra_search_paths=tuple(dict.fromkeys(search_paths)),
            main_fields=get_default_main_fields(config),
        )

    def resolve_module(self, module_name: str, options: ResolveOptions) -> Optional[Path]:
        return self.resolver.resolve_path(module_name, options)

    def is_native(self, path: Union[str, Path]) -> bool:
        return self.classifier.is_native(path)

    def create_bundle(self, module_name: str, options: ResolveOptions) -> List[Fragment]:
        return self.orchestrator.create_bundle(module_name, options)

    def get_resource(
        self, module_name: str, options: ResolveOptions
    ) -> Optional[CacheEntry]:
        """Get a resource with the flags of the engine settings."""
        return self.cache.get_resource(
            module_name,
            options,
            skip_cache=self.settings.skip_cache,
            debug=self.settings.debug,
            keep_dynamic_imports=self.settings.keep_dynamic_imports,
            skip_transform=self.settings.skip_transform,
        )

    def list_resources(
        self,
        package_name: str,
        options: ResolveOptions,
        ignore: Optional[Sequence[str]] = None,
    ) -> List[str]:
        if ignore is None:
            ignore = self.settings.ignore
        return self.lister.list(package_name, options, ignore=ignore)
