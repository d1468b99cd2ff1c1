"""
Module format conversions into the CommonJS shape the module graph links.

ES modules are rewritten statement by statement: imports become
``require`` calls, exports become getters installed on ``exports`` up front
(so circular imports see declarations once they ran). AMD factories called
through a top-level ``define(...)`` are applied to ``require``-ed
dependencies.

Replacements never add or remove line breaks inside a statement, so line
numbers reported for the transformed code still match the original file.
"""

import itertools
import json
import re
from typing import Callable, Dict, List, Optional, Tuple

from modbundle.pipeline.diagnostics import Diagnostic, Location
from modbundle.syntax import call_arguments, node_text, parse_source, string_value

Edit = Tuple[int, int, str]

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

# AMD pseudo dependencies and what they are bound to inside the module function
_AMD_SPECIALS = {"require": "require", "exports": "exports", "module": "module"}


def apply_edits(source: bytes, edits: List[Edit]) -> str:
    """Apply non-overlapping (start, end, replacement) byte edits."""
    result = source
    for start, end, replacement in sorted(edits, key=lambda e: e[0], reverse=True):
        result = result[:start] + replacement.encode("utf-8") + result[end:]
    return result.decode("utf-8")


def member(obj: str, name: str) -> str:
    if _IDENTIFIER.match(name):
        return f"{obj}.{name}"
    return f"{obj}[{json.dumps(name)}]"


def _name_of(source: bytes, node) -> str:
    value = string_value(source, node)
    return value if value is not None else node_text(source, node)


def _pattern_names(source: bytes, node) -> List[str]:
    """Names bound by a declarator pattern (identifier or destructuring)."""
    if node is None:
        return []
    if node.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [node_text(source, node)]
    if node.type == "pair_pattern":
        return _pattern_names(source, node.child_by_field_name("value"))
    if node.type in ("assignment_pattern", "object_assignment_pattern"):
        return _pattern_names(source, node.child_by_field_name("left"))
    if node.type in ("object_pattern", "array_pattern", "rest_pattern"):
        names = []
        for child in node.named_children:
            names.extend(_pattern_names(source, child))
        return names
    return []


def _declared_names(source: bytes, declaration) -> List[str]:
    if declaration.type in ("lexical_declaration", "variable_declaration"):
        names = []
        for declarator in declaration.named_children:
            if declarator.type == "variable_declarator":
                names.extend(
                    _pattern_names(source, declarator.child_by_field_name("name"))
                )
        return names
    name = declaration.child_by_field_name("name")
    return [node_text(source, name)] if name is not None else []


def _directive(source: bytes, statement) -> Optional[str]:
    if statement.type != "expression_statement" or statement.named_child_count != 1:
        return None
    return string_value(source, statement.named_children[0])


class EsModuleRewriter:
    """
    Rewrites one ES module into CommonJS.

    Usage:
        code = EsModuleRewriter(source, module_id, build.warn).rewrite()
    """

    def __init__(
        self,
        code: str,
        module_id: str,
        warn: Optional[Callable[[Diagnostic], None]] = None,
    ):
        self.source = code.encode("utf-8")
        self.module_id = module_id
        self.warn = warn or (lambda diagnostic: None)
        self.edits: List[Edit] = []
        # exported name -> expression evaluated by its getter
        self.getters: Dict[str, str] = {}
        self._counter = itertools.count()

    def rewrite(self) -> Optional[str]:
        """Return the CommonJS code, or None when the source is no ES module."""
        tree = parse_source(self.source, self.module_id)
        statements = tree.root_node.named_children
        if not any(s.type in ("import_statement", "export_statement") for s in statements):
            return None

        self._strip_directives(statements)
        for statement in statements:
            if statement.type == "import_statement":
                self._rewrite_import(statement)
            elif statement.type == "export_statement":
                self._rewrite_export(statement)

        if "default" in self.getters and len(self.getters) > 1:
            self.warn(
                Diagnostic(
                    "MIXED_EXPORTS",
                    f'"{self.module_id}" is using named and default exports together. '
                    'Consumers have to use ".default" to access the default export.',
                )
            )
        return self._prologue() + apply_edits(self.source, self.edits)

    def _local(self) -> str:
        return f"__m{next(self._counter)}__"

    def _require(self, source_node) -> str:
        return f"require({json.dumps(string_value(self.source, source_node))})"

    def _strip_directives(self, statements) -> None:
        for statement in statements:
            value = _directive(self.source, statement)
            if value is None:
                break
            if value != "use strict":
                row, column = statement.start_point[0], statement.start_point[1]
                self.warn(
                    Diagnostic(
                        "MODULE_LEVEL_DIRECTIVE",
                        f'Module level directives cause errors when bundled, "{value}" '
                        f'in "{self.module_id}" was ignored.',
                        loc=Location(self.module_id, row + 1, column),
                    )
                )
            self.edits.append((statement.start_byte, statement.end_byte, ""))

    def _rewrite_import(self, statement) -> None:
        require = self._require(statement.child_by_field_name("source"))
        clause = next(
            (c for c in statement.named_children if c.type == "import_clause"), None
        )
        if clause is None:
            self.edits.append((statement.start_byte, statement.end_byte, f"{require};"))
            return

        local = self._local()
        parts = [f"var {local} = {require};"]
        for binding in clause.named_children:
            if binding.type == "identifier":
                name = node_text(self.source, binding)
                parts.append(f"var {name} = __interopDefault({local});")
            elif binding.type == "namespace_import":
                name = node_text(self.source, binding.named_children[-1])
                parts.append(f"var {name} = __interopNamespace({local});")
            elif binding.type == "named_imports":
                for spec in binding.named_children:
                    if spec.type != "import_specifier":
                        continue
                    imported = _name_of(self.source, spec.child_by_field_name("name"))
                    alias = spec.child_by_field_name("alias")
                    name = node_text(self.source, alias) if alias is not None else imported
                    if imported == "default":
                        parts.append(f"var {name} = __interopDefault({local});")
                    else:
                        parts.append(f"var {name} = {member(local, imported)};")
        self.edits.append((statement.start_byte, statement.end_byte, " ".join(parts)))

    def _export_specifiers(self, clause):
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name = _name_of(self.source, spec.child_by_field_name("name"))
            alias = spec.child_by_field_name("alias")
            yield name, _name_of(self.source, alias) if alias is not None else name

    def _rewrite_export(self, statement) -> None:
        source_node = statement.child_by_field_name("source")
        declaration = statement.child_by_field_name("declaration")
        value = statement.child_by_field_name("value")
        is_default = any(child.type == "default" for child in statement.children)
        clause = next(
            (c for c in statement.named_children if c.type == "export_clause"), None
        )

        if source_node is not None:
            require = self._require(source_node)
            namespace = next(
                (c for c in statement.named_children if c.type == "namespace_export"),
                None,
            )
            if clause is None and namespace is None:
                self.edits.append(
                    (
                        statement.start_byte,
                        statement.end_byte,
                        f"__exportStar(exports, {require});",
                    )
                )
                return

            local = self._local()
            self.edits.append(
                (statement.start_byte, statement.end_byte, f"var {local} = {require};")
            )
            if namespace is not None:
                name = _name_of(self.source, namespace.named_children[-1])
                self.getters[name] = f"__interopNamespace({local})"
                return
            for name, alias in self._export_specifiers(clause):
                if name == "default":
                    self.getters[alias] = f"__interopDefault({local})"
                else:
                    self.getters[alias] = member(local, name)
            return

        if declaration is not None:
            names = _declared_names(self.source, declaration)
            if is_default and not names:
                self.edits.append(
                    (statement.start_byte, declaration.start_byte, "var __default__ = ")
                )
                self.getters["default"] = "__default__"
                return
            self.edits.append((statement.start_byte, declaration.start_byte, ""))
            if is_default:
                self.getters["default"] = names[0]
            else:
                for name in names:
                    self.getters[name] = name
            return

        if value is not None:
            self.edits.append(
                (statement.start_byte, value.start_byte, "var __default__ = ")
            )
            self.getters["default"] = "__default__"
            return

        self.edits.append((statement.start_byte, statement.end_byte, ""))
        if clause is not None:
            for name, alias in self._export_specifiers(clause):
                self.getters[alias] = name

    def _prologue(self) -> str:
        lines = [
            '"use strict";',
            'Object.defineProperty(exports, "__esModule", { value: true });',
        ]
        if self.getters:
            lines.append("__export(exports, {")
            for name, expression in self.getters.items():
                lines.append(
                    f"  {json.dumps(name)}: function () {{ return {expression}; }},"
                )
            lines.append("});")
        return "\n".join(lines) + "\n"


def esm_to_commonjs(
    code: str,
    module_id: str,
    warn: Optional[Callable[[Diagnostic], None]] = None,
) -> Optional[str]:
    """Rewrite an ES module into CommonJS; None if ``code`` has no import/export."""
    return EsModuleRewriter(code, module_id, warn).rewrite()


_AMD_TEMPLATE = (
    "(function (factory) {{ "
    'var result = typeof factory === "function" ? factory.apply(exports, [{args}]) : factory; '
    "if (result !== undefined) {{ module.exports = result; }} "
    "}})({factory});"
)


def _amd_dependency(name: str) -> str:
    if name in _AMD_SPECIALS:
        return _AMD_SPECIALS[name]
    return f"require({json.dumps(name)})"


def amd_to_commonjs(code: str, module_id: str) -> Optional[str]:
    """
    Apply top-level ``define([deps], factory)`` calls to required dependencies.

    Supported forms: ``define(factory)``, ``define([deps], factory)`` and
    both with a leading module id string. Calls with computed dependency
    lists are left alone. Returns None if nothing was rewritten.
    """
    if "define" not in code:
        return None

    source = code.encode("utf-8")
    tree = parse_source(source, module_id)
    edits: List[Edit] = []

    for statement in tree.root_node.named_children:
        if statement.type != "expression_statement" or not statement.named_children:
            continue
        call = statement.named_children[0]
        if call.type != "call_expression":
            continue
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "identifier" or node_text(source, callee) != "define":
            continue

        args = call_arguments(call)
        if args and string_value(source, args[0]) is not None:
            args = args[1:]
        if not args or len(args) > 2:
            continue

        factory = args[-1]
        if len(args) == 2:
            if args[0].type != "array":
                continue
            names = [string_value(source, dep) for dep in args[0].named_children]
            if any(name is None for name in names):
                continue
        else:
            names = list(_AMD_SPECIALS)

        replacement = _AMD_TEMPLATE.format(
            args=", ".join(_amd_dependency(name) for name in names),
            factory=node_text(source, factory),
        )
        edits.append((statement.start_byte, statement.end_byte, replacement))

    if not edits:
        return None
    return apply_edits(source, edits)
