"""
In-process module graph: collects, links and renders the modules of a bundle.

Every module reachable from the entry is resolved, loaded and transformed
through the stage chain, then scanned for ``require("...")`` calls (static
dependencies) and ``import(...)`` expressions (dynamic dependencies).

- static dependencies are bundled into the fragment of their importer
- bare specifiers nobody resolves become externals of the fragment and are
  loaded by the UI5 loader at runtime
- literal dynamic imports of modules outside the fragment are split into
  fragments of their own, named ``<entry>-<hash>.js``
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from modbundle.backend.node_resolve import is_bare
from modbundle.constants import CHUNK_HASH_LENGTH
from modbundle.exceptions import BundleError, ModbundleError
from modbundle.model.entries import Fragment
from modbundle.pipeline import runtime
from modbundle.pipeline.diagnostics import Diagnostic
from modbundle.pipeline.interop import apply_edits
from modbundle.pipeline.stages import BuildContext, is_virtual
from modbundle.syntax import (
    call_arguments,
    is_dynamic_import,
    is_require_call,
    node_text,
    parse_source,
    string_value,
    walk,
)

logger = logging.getLogger(__name__)


@dataclass
class DynamicImport:
    start: int
    end: int
    specifier: Optional[str] = None
    target: Optional[str] = None
    # fixed replacement text (computed specifiers and externals)
    replacement: Optional[str] = None


@dataclass
class ModuleRecord:
    id: str
    code: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    externals: Dict[str, str] = field(default_factory=dict)
    dynamic_imports: List[DynamicImport] = field(default_factory=list)


def read_source(path: Path) -> str:
    code = path.read_text(encoding="utf-8")
    if code.startswith("\ufeff"):
        code = code[1:]
    if code.startswith("#!"):
        # keep the line, the code moves into a function body
        code = "//" + code[2:]
    return code


class ModuleGraph:
    """
    Builds the fragments of one entry module.

    Usage:
        graph = ModuleGraph(BuildContext(stages))
        fragments = graph.bundle("chart.js/auto")
    """

    def __init__(self, build: BuildContext):
        self.build = build
        self.modules: Dict[str, ModuleRecord] = {}
        self.entry = None

    def bundle(self, entry: str) -> List[Fragment]:
        """
        Bundle ``entry`` and return its fragments, the entry fragment first.

        Raises:
            BundleError: If a module cannot be resolved, loaded or parsed
        """
        self.entry = entry
        entry_id = self.build.resolve(entry)
        if entry_id is None:
            raise BundleError(entry, "Could not resolve entry module")

        pending = [entry_id]
        while pending:
            module_id = pending.pop()
            if module_id in self.modules:
                continue
            record = self._collect(module_id)
            self.modules[module_id] = record
            pending.extend(record.dependencies.values())
            pending.extend(d.target for d in record.dynamic_imports if d.target)

        logger.debug(f"Collected {len(self.modules)} modules for {entry}")
        self._report_cycles()
        return self._render(entry, entry_id) + list(self.build.assets)

    def _fail(self, message: str, module_id: Optional[str] = None):
        return BundleError(self.entry, message, module_id)

    def _collect(self, module_id: str) -> ModuleRecord:
        try:
            code = self.build.load(module_id)
            if code is None:
                if is_virtual(module_id):
                    raise self._fail("No stage provides this virtual module", module_id)
                code = read_source(Path(module_id))
            code = self.build.transform(code, module_id)
            source = code.encode("utf-8")
            tree = parse_source(source, module_id)
        except BundleError:
            raise
        except (ModbundleError, OSError, ValueError) as e:
            raise self._fail(str(e), module_id) from e

        record = ModuleRecord(module_id, code)
        for node in walk(tree.root_node):
            if is_require_call(source, node):
                args = call_arguments(node)
                specifier = string_value(source, args[0]) if len(args) == 1 else None
                if specifier is not None:
                    self._link(record, specifier)
            elif is_dynamic_import(node):
                self._link_dynamic(record, source, node)
        return record

    def _unresolved(self, record: ModuleRecord, specifier: str) -> None:
        if not is_bare(specifier):
            raise self._fail(f"Could not resolve '{specifier}' from {record.id}", record.id)
        self.build.warn(
            Diagnostic(
                "UNRESOLVED_IMPORT",
                f"'{specifier}' is imported by {record.id}, but could not be resolved. "
                "Treating it as an external dependency",
            )
        )

    def _link(self, record: ModuleRecord, specifier: str) -> None:
        if specifier in record.dependencies or specifier in record.externals:
            return
        target = self.build.resolve(specifier, record.id)
        if target is not None:
            record.dependencies[specifier] = target
            return
        self._unresolved(record, specifier)
        record.externals[specifier] = specifier

    def _link_dynamic(self, record: ModuleRecord, source: bytes, node) -> None:
        args = call_arguments(node)
        if not args:
            return

        specifier = string_value(source, args[0])
        if specifier is None:
            replacement = self.build.render_dynamic_import(
                node_text(source, args[0]), record.id
            )
            if replacement is not None:
                record.dynamic_imports.append(
                    DynamicImport(node.start_byte, node.end_byte, replacement=replacement)
                )
            return

        target = self.build.resolve(specifier, record.id)
        if target is None:
            self._unresolved(record, specifier)
            record.dynamic_imports.append(
                DynamicImport(
                    node.start_byte,
                    node.end_byte,
                    specifier,
                    replacement=runtime.render_chunk_import(specifier),
                )
            )
            return
        record.dynamic_imports.append(
            DynamicImport(node.start_byte, node.end_byte, specifier, target)
        )

    def _report_cycles(self) -> None:
        done = set()
        for start in self.modules:
            if start in done:
                continue
            path = [start]
            on_path = {start}
            stack = [iter(self.modules[start].dependencies.values())]
            while stack:
                target = next(stack[-1], None)
                if target is None:
                    stack.pop()
                    finished = path.pop()
                    on_path.discard(finished)
                    done.add(finished)
                elif target in on_path:
                    cycle = path[path.index(target) :] + [target]
                    self.build.warn(
                        Diagnostic(
                            "CIRCULAR_DEPENDENCY",
                            f"Circular dependency: {' -> '.join(cycle)}",
                        )
                    )
                elif target not in done:
                    path.append(target)
                    on_path.add(target)
                    stack.append(iter(self.modules[target].dependencies.values()))

    def _closure(self, root: str) -> List[str]:
        """Modules statically reachable from ``root``, root first."""
        order = []
        seen = set()
        stack = [root]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            stack.extend(reversed(list(self.modules[current].dependencies.values())))
        return order

    def _chunk_hash(self, members: List[str], salt: Optional[str] = None) -> str:
        digest = hashlib.sha256()
        if salt is not None:
            digest.update(salt.encode("utf-8") + b"\0")
        for module_id in members:
            digest.update(self.modules[module_id].code.encode("utf-8"))
            digest.update(b"\0")
        return digest.hexdigest()[:CHUNK_HASH_LENGTH]

    def _render(self, entry: str, entry_id: str) -> List[Fragment]:
        names = {entry_id: entry}
        queue = [entry_id]
        fragments = []

        while queue:
            root = queue.pop(0)
            members = self._closure(root)
            for module_id in members:
                for dynamic in self.modules[module_id].dynamic_imports:
                    target = dynamic.target
                    if target is None or target in members or target in names:
                        continue
                    name = f"{entry}-{self._chunk_hash(self._closure(target))}"
                    if name in names.values():
                        # same code under another module id
                        name = f"{entry}-{self._chunk_hash(self._closure(target), target)}"
                    names[target] = name
                    queue.append(target)

            code = self._render_fragment(members, names)
            fragments.append(
                Fragment(name=names[root], file_name=f"{names[root]}.js", code=code)
            )
        return fragments

    def _render_fragment(self, members: List[str], names: Dict[str, str]) -> str:
        index = {module_id: i for i, module_id in enumerate(members)}
        externals: List[str] = []
        definitions = []

        for module_id in members:
            record = self.modules[module_id]
            internal = {
                specifier: index[target]
                for specifier, target in record.dependencies.items()
            }
            external = {}
            for specifier, name in record.externals.items():
                if name not in externals:
                    externals.append(name)
                external[specifier] = externals.index(name)

            edits = []
            for dynamic in record.dynamic_imports:
                if dynamic.target is None:
                    replacement = dynamic.replacement
                elif dynamic.target in index:
                    internal[dynamic.specifier] = index[dynamic.target]
                    replacement = runtime.render_inline_import(dynamic.specifier)
                else:
                    replacement = runtime.render_chunk_import(names[dynamic.target])
                edits.append((dynamic.start, dynamic.end, replacement))

            code = apply_edits(record.code.encode("utf-8"), edits) if edits else record.code
            definitions.append(runtime.render_module(code, internal, external))

        return runtime.render_fragment(externals, definitions)
