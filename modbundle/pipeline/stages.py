"""
Transformation stages of the bundling pipeline.

A stage may implement any of the hooks of ``Stage``; a hook returning None
means "not handled by me". The BuildContext runs the hooks over the ordered
stage list:

- resolve_id / load: the first stage returning a value wins
- transform: every stage sees the output of the previous one
- render_dynamic_import: the first stage returning a value wins, None from
  all stages keeps the ``import(...)`` expression verbatim

Module ids are absolute file paths; ids starting with ``\\0`` are virtual
modules which only exist inside the pipeline.
"""

import json
import logging
import re
from abc import ABCMeta
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from modbundle.backend.node_resolve import is_bare, node_resolve, resolve_path
from modbundle.constants import (
    BROWSER_CONDITIONS,
    BUILD_ENV_VALUES,
    DEFAULT_MAIN_FIELDS,
    JS_EXTENSIONS,
    SKIP_ASSET_EXTENSIONS,
    SKIP_MODULES,
)
from modbundle.model.entries import Fragment
from modbundle.pipeline import runtime
from modbundle.pipeline.diagnostics import Diagnostic
from modbundle.pipeline.interop import amd_to_commonjs, esm_to_commonjs
from modbundle.syntax import node_text, parse_source, walk

logger = logging.getLogger(__name__)


def is_virtual(module_id: str) -> bool:
    return module_id.startswith("\0")


def is_script(module_id: str) -> bool:
    return not is_virtual(module_id) and module_id.endswith(JS_EXTENSIONS)


class Stage(metaclass=ABCMeta):
    """Base class of all transformation stages."""

    name = "stage"

    def resolve_id(
        self, specifier: str, importer: Optional[str], build: "BuildContext"
    ) -> Optional[str]:
        return None

    def load(self, module_id: str, build: "BuildContext") -> Optional[str]:
        return None

    def transform(self, code: str, module_id: str, build: "BuildContext") -> Optional[str]:
        return None

    def render_dynamic_import(
        self, expression: str, importer: str, build: "BuildContext"
    ) -> Optional[str]:
        return None

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class BuildContext:
    """
    Runs the hooks of an ordered stage list for one bundling run.

    Usage:
        build = BuildContext(stages, on_warning=reporter)
        module_id = build.resolve("chart.js/auto")
    """

    def __init__(
        self,
        stages: Sequence[Stage],
        on_warning: Optional[Callable[[Diagnostic], None]] = None,
    ):
        self.stages = list(stages)
        self.on_warning = on_warning
        self.warnings: List[Diagnostic] = []
        self.assets: List[Fragment] = []

    def warn(self, diagnostic: Diagnostic) -> None:
        self.warnings.append(diagnostic)
        if self.on_warning is not None:
            self.on_warning(diagnostic)

    def resolve(self, specifier: str, importer: Optional[str] = None) -> Optional[str]:
        for stage in self.stages:
            resolved = stage.resolve_id(specifier, importer, self)
            if resolved is not None:
                return resolved
        return None

    def load(self, module_id: str) -> Optional[str]:
        for stage in self.stages:
            code = stage.load(module_id, self)
            if code is not None:
                return code
        return None

    def transform(self, code: str, module_id: str) -> str:
        for stage in self.stages:
            transformed = stage.transform(code, module_id, self)
            if transformed is not None:
                code = transformed
        return code

    def render_dynamic_import(self, expression: str, importer: str) -> Optional[str]:
        for stage in self.stages:
            rendered = stage.render_dynamic_import(expression, importer, self)
            if rendered is not None:
                return rendered
        return None

    def emit_asset(self, file_name: str, source: Union[str, bytes]) -> None:
        self.assets.append(Fragment(name=file_name, file_name=file_name, raw_asset=source))


class LoggerStage(Stage):
    """Reports resolutions and loads on the verbose channel."""

    name = "logger"

    def resolve_id(self, specifier, importer, build):
        if importer is None:
            logger.debug(f"Bundling entry {specifier}")
        else:
            logger.debug(f"Resolving {specifier} (imported by {importer})")
        return None

    def load(self, module_id, build):
        logger.debug(f"Loading {module_id.lstrip(chr(0))}")
        return None


class ReplaceStage(Stage):
    """Substitutes build environment values, e.g. ``process.env.NODE_ENV``."""

    name = "replace"

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self.values = dict(BUILD_ENV_VALUES if values is None else values)
        self._patterns = [
            (re.compile(r"(?<![\w$.])" + re.escape(key) + r"(?![\w$])(?!\.)"), value)
            for key, value in self.values.items()
        ]

    def transform(self, code, module_id, build):
        if not is_script(module_id):
            return None
        for pattern, value in self._patterns:
            code = pattern.sub(lambda match: value, code)
        return code


class EsModuleMarkerStage(Stage):
    """
    Marks transpiled CommonJS modules assigning ``exports.default``.

    Without the ``__esModule`` marker a default import of such a module
    would receive the whole exports object instead of its default export.
    """

    name = "esmodule-marker"

    _assigns_default = re.compile(
        r"(?<![\w$.])exports\s*(\.\s*default|\[\s*[\"']default[\"']\s*\])\s*=(?!=)"
    )
    _es_syntax = re.compile(r"^\s*(import\s*[\w{*'\"]|export\s)", re.MULTILINE)

    def transform(self, code, module_id, build):
        if not is_script(module_id) or "__esModule" in code:
            return None
        if not self._assigns_default.search(code) or self._es_syntax.search(code):
            return None
        return 'Object.defineProperty(exports, "__esModule", { value: true });\n' + code


class SkipAssetsStage(Stage):
    """Turns stylesheets and server-only runtime modules into empty modules."""

    name = "skip-assets"
    prefix = "\0skip:"

    def __init__(
        self,
        extensions: Sequence[str] = SKIP_ASSET_EXTENSIONS,
        modules: Sequence[str] = SKIP_MODULES,
    ):
        self.extensions = tuple(f".{ext.lstrip('.')}" for ext in extensions)
        self.modules = frozenset(modules)

    def resolve_id(self, specifier, importer, build):
        if specifier in self.modules or specifier.endswith(self.extensions):
            logger.debug(f"Skipping {specifier}")
            return f"{self.prefix}{specifier}"
        return None

    def load(self, module_id, build):
        if module_id.startswith(self.prefix):
            return "module.exports = {};"
        return None


class CommonJsInteropStage(Stage):
    """Rewrites ES modules into CommonJS with live export getters."""

    name = "commonjs"

    def transform(self, code, module_id, build):
        if not is_script(module_id):
            return None
        return esm_to_commonjs(code, module_id, build.warn)


class AmdStage(Stage):
    """Converts top-level AMD ``define(...)`` modules."""

    name = "amd"

    def transform(self, code, module_id, build):
        if not is_script(module_id):
            return None
        return amd_to_commonjs(code, module_id)


_PROCESS_SHIM = """\
var process = {
  env: { NODE_ENV: "development" },
  browser: true,
  argv: [],
  version: "",
  versions: {},
  platform: "browser",
  cwd: function () { return "/"; },
  nextTick: function (fn) {
    var args = Array.prototype.slice.call(arguments, 1);
    Promise.resolve().then(function () { fn.apply(null, args); });
  }
};
module.exports = process;
"""

_GLOBAL_SHIM = (
    'var global = typeof globalThis !== "undefined" ? globalThis : '
    'typeof self !== "undefined" ? self : window;'
)

_USE_STRICT = re.compile(r"""^\s*(["'])use strict\1;?""")

_DECLARED_BY_FIELD = ("variable_declarator", "function_declaration", "class_declaration")
_SCOPES = (
    "program",
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
)


def _scope_of(node):
    """Nearest function or program node enclosing ``node``."""
    node = node.parent
    while node is not None and node.type not in _SCOPES:
        node = node.parent
    return node


def _scope_key(node):
    return (node.type, node.start_byte, node.end_byte)


def _declaring_scope(node):
    """The scope an identifier declares a binding in, None for references."""
    parent = node.parent
    if parent is None:
        return None
    if parent.type == "formal_parameters":
        return parent.parent
    if parent.type == "assignment_pattern" and parent.child_by_field_name("left") == node:
        if parent.parent is not None and parent.parent.type == "formal_parameters":
            return parent.parent.parent
        return None
    if parent.type == "arrow_function" and parent.child_by_field_name("parameter") == node:
        return parent
    if parent.type == "catch_clause" and parent.child_by_field_name("parameter") == node:
        return parent
    if parent.type in _DECLARED_BY_FIELD and parent.child_by_field_name("name") == node:
        return _scope_of(parent)
    return None


def uses_free_variable(code: str, name: str, module_id: str = "<source>") -> bool:
    """
    Check whether ``code`` references ``name`` without a binding in scope.

    A reference is bound when the module itself or a function around it
    declares the name, as a parameter or with var/let/const/function/class.
    Declarations are scoped per function, block scoping is not tracked.
    """
    if name not in code:
        return False
    source = code.encode("utf-8")
    tree = parse_source(source, module_id)

    declared = set()
    references = []
    for node in walk(tree.root_node):
        if node.type not in ("identifier", "shorthand_property_identifier"):
            continue
        if node_text(source, node) != name:
            continue
        scope = _declaring_scope(node) if node.type == "identifier" else None
        if scope is not None:
            declared.add(_scope_key(scope))
        else:
            references.append(node)

    for node in references:
        scope = node.parent
        while scope is not None and _scope_key(scope) not in declared:
            scope = scope.parent
        if scope is None:
            return True
    return False


class PolyfillStage(Stage):
    """Provides the Node.js ``process`` and ``global`` built-ins."""

    name = "polyfill"
    process_id = "\0polyfill:process"

    def resolve_id(self, specifier, importer, build):
        if specifier in ("process", "process/browser"):
            return self.process_id
        return None

    def load(self, module_id, build):
        if module_id == self.process_id:
            return _PROCESS_SHIM
        return None

    def transform(self, code, module_id, build):
        if not is_script(module_id):
            return None

        shims = []
        if uses_free_variable(code, "process", module_id):
            shims.append('var process = require("process");')
        if uses_free_variable(code, "global", module_id):
            shims.append(_GLOBAL_SHIM)
        if not shims:
            return None

        prefix = " ".join(shims) + " "
        strict = _USE_STRICT.match(code)
        if strict:
            return code[: strict.end()] + prefix + code[strict.end() :]
        return prefix + code


class JsonStage(Stage):
    """Turns JSON files into modules exporting their content."""

    name = "json"

    def transform(self, code, module_id, build):
        if is_virtual(module_id) or not module_id.endswith(".json"):
            return None
        return f"module.exports = {json.dumps(json.loads(code), indent=2)};\n"


class NodeResolveStage(Stage):
    """Standard package resolution with a configurable main field order."""

    name = "node-resolve"

    def __init__(
        self,
        main_fields: Sequence[str] = DEFAULT_MAIN_FIELDS,
        roots: Sequence[Path] = (),
    ):
        self.main_fields = tuple(main_fields)
        self.roots = tuple(Path(r) for r in roots)

    def resolve_id(self, specifier, importer, build):
        if is_virtual(specifier):
            return None
        base = None
        if importer is not None and not is_virtual(importer):
            base = Path(importer).parent

        if specifier.startswith("."):
            if base is None:
                return None
            found = resolve_path(base / specifier, self.main_fields)
        elif not is_bare(specifier):
            found = resolve_path(Path(specifier), self.main_fields)
        else:
            roots = ((base,) if base is not None else ()) + self.roots
            found = node_resolve(specifier, roots, self.main_fields, BROWSER_CONDITIONS)
        return str(found.resolve()) if found is not None else None


class EngineResolveStage(Stage):
    """Delegates bare specifiers nobody else resolved to the engine's resolver."""

    name = "engine-resolve"

    def __init__(self, resolve: Callable[[str], Optional[Path]]):
        self._resolve = resolve

    def resolve_id(self, specifier, importer, build):
        if is_virtual(specifier) or not is_bare(specifier):
            return None
        path = self._resolve(specifier)
        if path is None or not Path(path).is_file():
            return None
        return str(Path(path).resolve())


class DynamicImportStage(Stage):
    """
    Decides what happens to dynamic imports with a computed specifier.

    They are kept verbatim when keeping is enabled for the bundled module
    (``True`` or a list of package names containing its package), otherwise
    they are routed through the UI5 loader.
    """

    name = "dynamic-imports"

    def __init__(self, module_name: str, keep_dynamic_imports: Union[bool, Sequence[str]] = True):
        self.module_name = module_name
        self.keep_dynamic_imports = keep_dynamic_imports

    def keeps(self) -> bool:
        keep = self.keep_dynamic_imports
        if isinstance(keep, bool):
            return keep
        return any(
            self.module_name == package or self.module_name.startswith(f"{package}/")
            for package in keep
        )

    def render_dynamic_import(self, expression, importer, build):
        if self.keeps():
            return None
        return runtime.render_expression_import(expression)
