"""
Tests for Resolver.

These tests verify the resolution order:
- Relative specifiers and the negative cache short-circuit
- Project-local resources of the consuming project
- package.json entry fields in the configured order
- Standard package lookup from the working directory and extra roots
"""

from unittest.mock import patch

import pytest
from returns.result import Failure, Success

from modbundle.exceptions import ModuleNotResolved, ResolutionIOError
from modbundle.model.options import ResolveOptions

pytestmark = pytest.mark.short


@pytest.fixture
def fielded_package(project, make_package):
    return make_package(
        project,
        "fielded",
        {
            "dist/browser.js": "// browser",
            "esm/index.js": "export default 1;",
            "cjs/index.js": "module.exports = 1;",
        },
        {"browser": "dist/browser.js", "module": "esm/index.js", "main": "cjs/index.js"},
    )


class TestResolver:
    """Tests for Resolver.resolve()."""

    def test_relative_specifier_is_rejected(self, resolver, options):
        result = resolver.resolve("./local", options)

        assert isinstance(result, Failure)
        assert isinstance(result.failure(), ModuleNotResolved)
        assert result.failure().reason == "relative"
        assert "./local" not in resolver.context.negative

    def test_project_local_resource(self, resolver, options, project):
        result = resolver.resolve("my-app/controller/Main", options)

        assert isinstance(result, Success)
        assert result.unwrap() == project / "controller/Main.js"

    def test_browser_field_wins_by_default(self, resolver, options, fielded_package):
        path = resolver.resolve_path("fielded", options)

        assert path == (fielded_package / "dist/browser.js").resolve()

    def test_custom_main_field_order(self, resolver, options, fielded_package):
        path = resolver.resolve_path(
            "fielded", options.with_main_fields(["module", "main"])
        )

        assert path == (fielded_package / "esm/index.js").resolve()

    def test_missing_field_target_falls_back_to_package_lookup(
        self, resolver, options, project, make_package
    ):
        package = make_package(
            project,
            "broken-browser",
            {"lib/main.js": "module.exports = {};"},
            {"browser": "missing.js", "main": "lib/main.js"},
        )

        path = resolver.resolve_path("broken-browser", options)

        assert path == (package / "lib/main.js").resolve()

    def test_subpath_with_extension_probing(
        self, resolver, options, project, make_package
    ):
        package = make_package(project, "chart.js", {"auto/auto.js": "", "auto.js": ""})

        path = resolver.resolve_path("chart.js/auto", options)

        assert path == (package / "auto.js").resolve()

    def test_exports_map(self, resolver, options, project, make_package):
        package = make_package(
            project,
            "exported",
            {"cjs.js": "", "esm.mjs": "", "feature.js": ""},
            {
                "exports": {
                    ".": {"import": "./esm.mjs", "require": "./cjs.js"},
                    "./feature": "./feature.js",
                }
            },
        )

        assert resolver.resolve_path("exported", options) == (package / "cjs.js").resolve()
        assert (
            resolver.resolve_path("exported/feature", options)
            == (package / "feature.js").resolve()
        )

    def test_extra_search_paths(self, resolver, project, tmp_path, make_package):
        libs = tmp_path / "libs"
        package = make_package(libs, "shared", {"index.js": ""})
        options = ResolveOptions(working_dir=project, extra_search_paths=[libs])

        path = resolver.resolve_path("shared", options)

        assert path == (package / "index.js").resolve()

    def test_nested_manifest_lookup(self, resolver, options, project, make_package):
        package = make_package(project, "scoped-entries", {"sub/index.js": ""})
        (package / "sub" / "package.json").write_text('{"main": "index.js"}')

        path = resolver.resolve_path("scoped-entries/sub", options)

        assert path == (package / "sub/index.js").resolve()

    def test_unresolved_is_negatively_cached(self, resolver, options):
        with patch.object(resolver, "_lookup", wraps=resolver._lookup) as lookup:
            first = resolver.resolve("does-not-exist", options)
            second = resolver.resolve("does-not-exist", options)

        assert lookup.call_count == 1
        assert first.failure().reason == "not-found"
        assert second.failure().reason == "negative-cache"
        assert "does-not-exist" in resolver.context.negative

    def test_unreadable_project_manifest(self, resolver, options, project):
        (project / "package.json").write_text("{ not json")

        result = resolver.resolve("anything", options)

        assert isinstance(result, Failure)
        assert isinstance(result.failure(), ResolutionIOError)
        assert "anything" not in resolver.context.negative

    def test_project_without_manifest(self, resolver, project, make_package):
        (project / "package.json").unlink()
        package = make_package(project, "plain", {"index.js": ""})

        path = resolver.resolve_path("plain", ResolveOptions(working_dir=project))

        assert path == (package / "index.js").resolve()

    def test_verbose_logging(self, resolver, options, capture_logs):
        resolver.resolve("nowhere", options)

        output = capture_logs.getvalue()
        assert "Resolving nowhere [browser, module, main]..." in output
        assert "=> not found!" in output
