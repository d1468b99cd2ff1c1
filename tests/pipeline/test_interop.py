"""Tests for the ES module and AMD conversions."""

import pytest

from modbundle.exceptions import SourceParseError
from modbundle.pipeline.interop import amd_to_commonjs, esm_to_commonjs

pytestmark = pytest.mark.short


class TestEsModules:
    def test_plain_commonjs_is_untouched(self):
        assert esm_to_commonjs("module.exports = 1;", "/m.js") is None

    def test_imports(self):
        code = esm_to_commonjs(
            'import a, { b as c, d } from "lib";\n'
            'import * as ns from "./ns.js";\n'
            'import "side-effect";\n'
            "console.log(a, c, d, ns);\n",
            "/m.js",
        )

        assert 'var __m0__ = require("lib");' in code
        assert "var a = __interopDefault(__m0__);" in code
        assert "var c = __m0__.b;" in code
        assert "var d = __m0__.d;" in code
        assert 'var ns = __interopNamespace(__m1__);' in code
        assert 'require("side-effect");' in code
        assert "console.log(a, c, d, ns);" in code

    def test_named_exports_become_getters(self):
        code = esm_to_commonjs(
            "export const x = 1, { y, z: w } = {};\n"
            "export function f() {}\n"
            "export class K {}\n"
            "let v = 2;\n"
            "export { v as value };\n",
            "/m.js",
        )

        assert code.startswith('"use strict";\nObject.defineProperty(exports, "__esModule"')
        exported = [("x", "x"), ("y", "y"), ("w", "w"), ("f", "f"), ("K", "K"), ("value", "v")]
        for name, local in exported:
            assert f'"{name}": function () {{ return {local}; }},' in code
        assert "const x = 1, { y, z: w } = {};" in code
        assert "export const" not in code
        assert "export {" not in code

    def test_default_exports(self):
        expression = esm_to_commonjs("export default 40 + 2;\n", "/m.js")
        declaration = esm_to_commonjs("export default function main() {}\n", "/m.js")

        assert "var __default__ = 40 + 2;" in expression
        assert '"default": function () { return __default__; },' in expression
        assert "function main() {}" in declaration
        assert '"default": function () { return ' in declaration
        assert "export default" not in declaration

    def test_reexports(self):
        code = esm_to_commonjs(
            'export * from "base";\n'
            'export { default as Chart, helpers } from "chart";\n'
            'export * as utils from "./utils.js";\n',
            "/m.js",
        )

        assert '__exportStar(exports, require("base"));' in code
        assert '"Chart": function () { return __interopDefault(__m0__); },' in code
        assert '"helpers": function () { return __m0__.helpers; },' in code
        assert '"utils": function () { return __interopNamespace(__m1__); },' in code

    def test_line_numbers_are_kept(self):
        source = 'import a from "a";\nimport b from "b";\nthrow a + b;\n'

        code = esm_to_commonjs(source, "/m.js")

        body = code.split("\n", 2)[2]
        assert body.splitlines()[2] == "throw a + b;"

    def test_mixed_exports_and_directives_are_reported(self):
        warnings = []

        esm_to_commonjs(
            '"use client";\nexport default 1;\nexport const x = 2;\n',
            "/m.js",
            warnings.append,
        )

        codes = [w.code for w in warnings]
        assert codes == ["MODULE_LEVEL_DIRECTIVE", "MIXED_EXPORTS"]
        assert warnings[0].loc.line == 1

    def test_syntax_error(self):
        with pytest.raises(SourceParseError):
            esm_to_commonjs("export default {", "/broken.js")


class TestAmd:
    def test_define_with_dependencies(self):
        code = amd_to_commonjs(
            'define(["./a", "exports", "module"], function (a, exports, module) {\n'
            "  exports.value = a;\n"
            "});\n",
            "/amd.js",
        )

        assert 'factory.apply(exports, [require("./a"), exports, module])' in code
        assert "exports.value = a;" in code

    def test_named_define(self):
        code = amd_to_commonjs(
            'define("named", ["dep"], function (dep) { return dep; });', "/amd.js"
        )

        assert 'factory.apply(exports, [require("dep")])' in code

    def test_define_without_dependencies(self):
        code = amd_to_commonjs("define(function (require) { return 1; });", "/amd.js")

        assert "factory.apply(exports, [require, exports, module])" in code

    def test_nested_define_is_left_alone(self):
        umd = (
            "(function (root, factory) {\n"
            '  if (typeof define === "function" && define.amd) { define([], factory); }\n'
            "  else { module.exports = factory(); }\n"
            "})(this, function () { return {}; });\n"
        )

        assert amd_to_commonjs(umd, "/umd.js") is None

    def test_computed_dependencies_are_left_alone(self):
        assert amd_to_commonjs("define(deps, function () {});", "/amd.js") is None
