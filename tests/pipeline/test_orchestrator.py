"""Tests for the stage chain assembly of Orchestrator.create_bundle()."""

from unittest.mock import MagicMock

import pytest

from modbundle.constants import FALLBACK_MAIN_FIELDS
from modbundle.exceptions import BundleError
from modbundle.model.entries import Fragment
from modbundle.pipeline.diagnostics import Diagnostic
from modbundle.pipeline.orchestrator import Orchestrator
from modbundle.pipeline.stages import (
    AmdStage,
    CommonJsInteropStage,
    DynamicImportStage,
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

pytestmark = pytest.mark.short

BUILT_IN = [
    ReplaceStage,
    EsModuleMarkerStage,
    SkipAssetsStage,
    CommonJsInteropStage,
    AmdStage,
    PolyfillStage,
    JsonStage,
    NodeResolveStage,
    EngineResolveStage,
]


@pytest.fixture
def bundler():
    return MagicMock(return_value=[Fragment(name="lib", file_name="lib.js", code="x")])


class TestBuildStages:
    def test_fixed_order_with_default_logger(self, resolver, options):
        stages = Orchestrator(resolver).build_stages(options)

        assert [type(s) for s in stages] == [LoggerStage] + BUILT_IN

    def test_pre_and_post_stages(self, resolver, options):
        pre, post = Stage(), DynamicImportStage("lib")

        stages = Orchestrator(resolver).build_stages(options, [pre], [post])

        assert stages[0] is pre
        assert stages[-1] is post
        assert [type(s) for s in stages[1:-1]] == BUILT_IN

    def test_empty_pre_stages_drop_the_logger(self, resolver, options):
        stages = Orchestrator(resolver).build_stages(options, pre_stages=[])

        assert [type(s) for s in stages] == BUILT_IN

    def test_main_fields_reach_node_resolution(self, resolver, options):
        stages = Orchestrator(resolver).build_stages(
            options.with_main_fields(FALLBACK_MAIN_FIELDS)
        )

        node_resolve = next(s for s in stages if isinstance(s, NodeResolveStage))
        assert node_resolve.main_fields == FALLBACK_MAIN_FIELDS
        assert node_resolve.roots == options.search_roots

    def test_engine_resolution_uses_the_resolver(self, resolver, options, project, make_package):
        package = make_package(project, "dep", {"index.js": ""})
        stages = Orchestrator(resolver).build_stages(options)
        engine_resolve = next(s for s in stages if isinstance(s, EngineResolveStage))

        found = engine_resolve.resolve_id("dep", None, None)

        assert found == str((package / "index.js").resolve())


class TestCreateBundle:
    def test_bundler_receives_entry_and_stages(self, resolver, options, bundler):
        post = DynamicImportStage("lib")

        fragments = Orchestrator(resolver, bundler=bundler).create_bundle(
            "lib", options, post_stages=[post]
        )

        assert fragments[0].name == "lib"
        entry, build = bundler.call_args.args
        assert entry == "lib"
        assert build.stages[-1] is post

    def test_each_run_gets_a_fresh_reporter(self, resolver, options, bundler):
        factory = MagicMock()
        orchestrator = Orchestrator(resolver, bundler=bundler, reporter_factory=factory)

        orchestrator.create_bundle("lib", options)
        orchestrator.create_bundle("lib", options)

        assert factory.call_count == 2

    def test_warnings_are_filtered(self, resolver, options, capture_logs):
        def bundler(entry, build):
            build.warn(Diagnostic("CIRCULAR_DEPENDENCY", "Circular dependency: a -> a"))
            build.warn(Diagnostic("UNRESOLVED_IMPORT", "'x' could not be resolved"))
            return []

        Orchestrator(resolver, bundler=bundler).create_bundle("lib", options)

        logs = capture_logs.getvalue()
        assert "Circular dependency" not in logs
        assert "'x' could not be resolved [UNRESOLVED_IMPORT]" in logs

    def test_bundle_errors_propagate(self, resolver, options):
        bundler = MagicMock(side_effect=BundleError("lib", "broken"))

        with pytest.raises(BundleError):
            Orchestrator(resolver, bundler=bundler).create_bundle("lib", options)
