"""Tests for the package.json model."""

import json

import pytest
from pydantic import ValidationError

from modbundle.model.manifest import PackageManifest

pytestmark = pytest.mark.short


def write_manifest(tmp_path, data):
    path = tmp_path / "package.json"
    path.write_text(json.dumps(data))
    return path


class TestPackageManifest:
    def test_entry_for_follows_field_order(self, tmp_path):
        manifest = PackageManifest.from_path(
            write_manifest(tmp_path, {"name": "dual", "module": "esm.js", "main": "cjs.js"})
        )

        assert manifest.entry_for(("browser", "module", "main")) == "esm.js"
        assert manifest.entry_for(("main", "module")) == "cjs.js"
        assert manifest.entry_for(("browser",)) is None

    def test_browser_replacement_map_is_skipped(self, tmp_path):
        manifest = PackageManifest.from_path(
            write_manifest(tmp_path, {"browser": {"./node.js": False}, "main": "m.js"})
        )

        assert manifest.entry_for(("browser", "main")) == "m.js"

    def test_custom_fields(self, tmp_path):
        manifest = PackageManifest.from_path(
            write_manifest(tmp_path, {"ui5": "dist/ui5.js", "main": "m.js"})
        )

        assert manifest.entry_for(("ui5", "main")) == "dist/ui5.js"

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ValueError, match="does not contain a JSON object"):
            PackageManifest.from_path(write_manifest(tmp_path, ["a"]))

    def test_invalid_field_type(self, tmp_path):
        with pytest.raises(ValidationError):
            PackageManifest.from_path(write_manifest(tmp_path, {"main": 1}))
