"""
Native format detection.

Sources already written for the UI5 loader (``sap.ui.define(...)`` or
``sap.ui.require(...)``) must be served byte for byte. Everything else goes
through the transformation pipeline. Anything ambiguous counts as not native.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Union

from modbundle.constants import LOADER_CALLS, NAMESPACE_MEMBER, NAMESPACE_ROOT
from modbundle.syntax import node_text, parse_source, walk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoaderCallPattern:
    """
    Matches call expressions of the shape ``<root>.<member>.<call>(...)``.

    ``root`` must be a plain identifier; computed member access
    (``sap["ui"]``) does not count.
    """

    root: str = NAMESPACE_ROOT
    member: str = NAMESPACE_MEMBER
    calls: FrozenSet[str] = LOADER_CALLS

    def matches(self, source: bytes, node) -> bool:
        if node.type != "call_expression":
            return False

        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return False
        call = callee.child_by_field_name("property")
        if call is None or node_text(source, call) not in self.calls:
            return False

        namespace = callee.child_by_field_name("object")
        if namespace is None or namespace.type != "member_expression":
            return False
        member = namespace.child_by_field_name("property")
        root = namespace.child_by_field_name("object")
        return (
            member is not None
            and node_text(source, member) == self.member
            and root is not None
            and root.type == "identifier"
            and node_text(source, root) == self.root
        )


class NativeFormatClassifier:
    """Decides whether a JS file already targets the native loader format."""

    def __init__(self, pattern: LoaderCallPattern = LoaderCallPattern()):
        self.pattern = pattern

    def is_native(self, path: Union[str, Path]) -> bool:
        """
        Check whether the file behind ``path`` is a native loader module.

        Read and parse failures classify as not native; they are reported on
        the verbose channel only and never retried.
        """
        try:
            source = Path(path).read_bytes()
            if not source.strip():
                return False
            source.decode("utf-8")
            tree = parse_source(source, str(path))
        except Exception as e:
            logger.debug(f'Failed to parse dependency "{path}": {e}')
            return False

        for node in walk(tree.root_node):
            if self.pattern.matches(source, node):
                return True
        return False
