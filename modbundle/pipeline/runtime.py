"""
JavaScript templates of a rendered fragment.

A fragment registers itself with the UI5 loader. Its factory receives the
external dependencies, evaluates the bundled module functions on demand and
returns the exports of the fragment's root module.
"""

import json
from typing import Dict, List, Sequence

from modbundle.constants import LOADER_DEFINE

HELPERS = """\
  function __interopDefault(m) {
    return m && m.__esModule ? m["default"] : m;
  }
  function __interopNamespace(m) {
    if (m && m.__esModule) {
      return m;
    }
    var ns = { "default": m };
    if (m && (typeof m === "object" || typeof m === "function")) {
      Object.keys(m).forEach(function (key) {
        if (key !== "default") {
          ns[key] = m[key];
        }
      });
    }
    return ns;
  }
  function __export(target, getters) {
    Object.keys(getters).forEach(function (name) {
      Object.defineProperty(target, name, { enumerable: true, get: getters[name] });
    });
  }
  function __exportStar(target, m) {
    Object.keys(m).forEach(function (name) {
      if (name !== "default" && !Object.prototype.hasOwnProperty.call(target, name)) {
        Object.defineProperty(target, name, {
          enumerable: true,
          get: function () { return m[name]; }
        });
      }
    });
  }
"""

LOADER = """\
  var __cache__ = {};
  function __require__(index) {
    if (__cache__[index]) {
      return __cache__[index].exports;
    }
    var module = __cache__[index] = { exports: {} };
    var definition = __modules__[index];
    definition[0].call(module.exports, module, module.exports, function (name) {
      if (Object.prototype.hasOwnProperty.call(definition[1], name)) {
        return __require__(definition[1][name]);
      }
      if (Object.prototype.hasOwnProperty.call(definition[2], name)) {
        return __externals__[definition[2][name]];
      }
      throw new Error("Cannot find module '" + name + "'");
    });
    return module.exports;
  }
  var __root__ = __require__(0);
  if (__root__ && __root__.__esModule && Object.keys(__root__).join() === "default") {
    return __root__["default"];
  }
  return __root__;
"""


def render_module(code: str, internal: Dict[str, int], external: Dict[str, int]) -> str:
    """Wrap the code of one module into its definition tuple."""
    return (
        "  [function (module, exports, require, define) {\n"
        f"{code.rstrip()}\n"
        f"  }}, {json.dumps(internal, sort_keys=True)}, {json.dumps(external, sort_keys=True)}]"
    )


def render_fragment(externals: Sequence[str], modules: List[str]) -> str:
    """Render a complete fragment from its externals and module definitions."""
    params = [f"__ext{i}__" for i in range(len(externals))]
    return (
        f"{LOADER_DEFINE}({json.dumps(list(externals))}, (function ({', '.join(params)}) {{\n"
        f"  var __externals__ = [{', '.join(params)}];\n"
        "  var __modules__ = [\n"
        + ",\n".join(modules)
        + "\n  ];\n"
        + HELPERS
        + LOADER
        + "}));\n"
    )


def render_chunk_import(specifier: str) -> str:
    """Expression loading a split fragment (or any loader module) asynchronously."""
    return (
        "new Promise(function (resolve, reject) { "
        f"sap.ui.require([{json.dumps(specifier)}], function (m) {{ resolve(__interopNamespace(m)); }}, reject); "
        "})"
    )


def render_expression_import(expression: str) -> str:
    """Loader-based replacement of a dynamic import with a computed specifier."""
    return (
        "new Promise(function (resolve, reject) { "
        f"sap.ui.require([{expression}], function (m) {{ resolve(__interopNamespace(m)); }}, reject); "
        "})"
    )


def render_inline_import(name: str) -> str:
    """Dynamic import of a module bundled into the same fragment."""
    return (
        "Promise.resolve().then(function () { "
        f"return __interopNamespace(require({json.dumps(name)})); "
        "})"
    )
