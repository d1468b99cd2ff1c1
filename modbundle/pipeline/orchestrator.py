"""
Pipeline orchestration ("createBundle").

Builds the stage chain for one entry module and drives the module graph
through it. The chain order is fixed; callers only contribute pre- and
post-stages.
"""

import logging
from typing import Callable, List, Optional, Sequence

from modbundle.backend.resolver import Resolver
from modbundle.model.entries import Fragment
from modbundle.model.options import ResolveOptions
from modbundle.pipeline.diagnostics import DiagnosticReporter
from modbundle.pipeline.graph import ModuleGraph
from modbundle.pipeline.stages import (
    AmdStage,
    BuildContext,
    CommonJsInteropStage,
    EngineResolveStage,
    EsModuleMarkerStage,
    JsonStage,
    LoggerStage,
    NodeResolveStage,
    PolyfillStage,
    ReplaceStage,
    SkipAssetsStage,
    Stage,
)

logger = logging.getLogger(__name__)

# bundler(entry, build) -> fragments; replaceable for tests
Bundler = Callable[[str, BuildContext], List[Fragment]]


def graph_bundler(entry: str, build: BuildContext) -> List[Fragment]:
    return ModuleGraph(build).bundle(entry)


class Orchestrator:
    """
    Turns an entry specifier into output fragments.

    Usage:
        orchestrator = Orchestrator(resolver)
        fragments = orchestrator.create_bundle("chart.js/auto", options)
    """

    def __init__(
        self,
        resolver: Resolver,
        bundler: Bundler = graph_bundler,
        reporter_factory: Callable[[], Callable] = DiagnosticReporter,
    ):
        self.resolver = resolver
        self.bundler = bundler
        self.reporter_factory = reporter_factory

    def build_stages(
        self,
        options: ResolveOptions,
        pre_stages: Optional[Sequence[Stage]] = None,
        post_stages: Optional[Sequence[Stage]] = None,
    ) -> List[Stage]:
        """Assemble the stage chain in its fixed order."""
        if pre_stages is None:
            pre_stages = [LoggerStage()]
        return [
            *pre_stages,
            ReplaceStage(),
            EsModuleMarkerStage(),
            SkipAssetsStage(),
            CommonJsInteropStage(),
            AmdStage(),
            PolyfillStage(),
            JsonStage(),
            NodeResolveStage(options.main_fields, options.search_roots),
            EngineResolveStage(lambda specifier: self.resolver.resolve_path(specifier, options)),
            *(post_stages or []),
        ]

    def create_bundle(
        self,
        entry: str,
        options: ResolveOptions,
        pre_stages: Optional[Sequence[Stage]] = None,
        post_stages: Optional[Sequence[Stage]] = None,
    ) -> List[Fragment]:
        """
        Bundle one entry module.

        Args:
            entry: Entry specifier (e.g. "chart.js/auto")
            options: Resolution context incl. the main field order to use
            pre_stages: Stages running before the built-in ones (default: logger)
            post_stages: Stages running after the built-in ones

        Returns:
            Fragments, the entry fragment (``<entry>.js``) first

        Raises:
            BundleError: If the bundle cannot be built
        """
        stages = self.build_stages(options, pre_stages, post_stages)
        build = BuildContext(stages, on_warning=self.reporter_factory())
        logger.debug(
            f"Bundling {entry} with main fields [{', '.join(options.main_fields)}]"
        )
        return self.bundler(entry, build)
