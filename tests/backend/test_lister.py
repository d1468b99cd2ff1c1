"""Tests for ResourceLister and the ignore-file aware package walk."""

import pytest

from modbundle.backend.lister import ResourceLister, walk_package
from modbundle.exceptions import PackageNotFoundError

pytestmark = pytest.mark.short


@pytest.fixture
def lister(resolver):
    return ResourceLister(resolver)


@pytest.fixture
def examplepkg(project, make_package):
    return make_package(
        project,
        "examplepkg",
        {
            "index.js": "module.exports = {};",
            "index.js.map": "{}",
            "dist/lib.js": "",
            "dist/lib.js.map": "{}",
            "dist/themes/base.css": "",
        },
    )


class TestResourceLister:
    def test_ignore_globs(self, lister, options, examplepkg):
        resources = lister.list("examplepkg", options, ignore=["**/*.map"])

        assert resources == [
            "examplepkg/dist/lib.js",
            "examplepkg/dist/themes/base.css",
            "examplepkg/index.js",
            "examplepkg/package.json",
        ]

    def test_without_ignore_globs(self, lister, options, examplepkg):
        resources = lister.list("examplepkg", options)

        assert "examplepkg/index.js.map" in resources
        assert "examplepkg/dist/lib.js.map" in resources
        assert len(resources) == 6

    def test_file_matching_any_glob_is_excluded(self, lister, options, examplepkg):
        resources = lister.list("examplepkg", options, ignore=["**/*.map", "dist/themes/**"])

        assert "examplepkg/dist/themes/base.css" not in resources
        assert "examplepkg/dist/lib.js" in resources

    def test_glob_without_slash_matches_whole_path(self, lister, options, examplepkg):
        resources = lister.list("examplepkg", options, ignore=["*.map"])

        assert "examplepkg/index.js.map" not in resources
        assert "examplepkg/dist/lib.js.map" in resources

    def test_package_not_found(self, lister, options):
        with pytest.raises(PackageNotFoundError, match="NPM package nope not found"):
            lister.list("nope", options)

    def test_ignore_file_at_package_root(self, lister, options, examplepkg):
        (examplepkg / ".gitignore").write_text("dist/\n")

        resources = lister.list("examplepkg", options)

        assert not any(r.startswith("examplepkg/dist/") for r in resources)
        assert "examplepkg/.gitignore" in resources


class TestWalkPackage:
    def test_nested_ignore_file_overrides_parent(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "keep.log").write_text("")
        (tmp_path / "a" / "drop.log").write_text("")
        (tmp_path / "top.log").write_text("")
        (tmp_path / ".ignore").write_text("*.log\n")
        (tmp_path / "a" / ".ignore").write_text("!keep.log\n")

        assert walk_package(tmp_path) == [".ignore", "a/.ignore", "a/keep.log"]

    def test_nested_patterns_are_relative_to_their_directory(self, tmp_path):
        (tmp_path / "sub" / "build").mkdir(parents=True)
        (tmp_path / "sub" / "build" / "out.js").write_text("")
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "out.js").write_text("")
        (tmp_path / "sub" / ".gitignore").write_text("/build\n")

        assert walk_package(tmp_path) == ["build/out.js", "sub/.gitignore"]
