"""
JavaScript syntax trees via Tree-sitter.

Thin helpers shared by the classifier and the pipeline stages: parsing
(syntax errors raise instead of yielding a partial tree), node text
access, preorder traversal and string literal extraction.
"""

import threading
from typing import Iterator, Optional, Union

from tree_sitter_language_pack import get_parser

from modbundle.exceptions import SourceParseError

# parsers are not shared between threads
_local = threading.local()


def get_js_parser():
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = _local.parser = get_parser("javascript")
    return parser


def _first_error(node):
    for child in walk(node):
        if child.type == "ERROR" or child.is_missing:
            return child
    return node


def parse_source(source: Union[str, bytes], name: str = "<source>"):
    """
    Parse JavaScript source code.

    Args:
        source: Source text (str or UTF-8 bytes)
        name: Name used in error messages

    Returns:
        Tree-sitter tree

    Raises:
        SourceParseError: If the source contains syntax errors
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    tree = get_js_parser().parse(source)
    if tree.root_node.has_error:
        bad = _first_error(tree.root_node)
        row, column = bad.start_point[0], bad.start_point[1]
        snippet = source[bad.start_byte : bad.start_byte + 40].decode(
            "utf-8", errors="replace"
        )
        raise SourceParseError(name, row + 1, column, f"unexpected '{snippet}'")
    return tree


def walk(node) -> Iterator:
    """Preorder traversal of ``node`` and all its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(source: bytes, node) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def string_value(source: bytes, node) -> Optional[str]:
    """Value of a plain string literal node, None for anything else."""
    if node is None:
        return None
    if node.type == "string":
        return node_text(source, node)[1:-1]
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    ):
        return node_text(source, node)[1:-1]
    return None


def call_arguments(node) -> list:
    """Named argument nodes of a call expression."""
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [child for child in arguments.named_children if child.type != "comment"]


def is_dynamic_import(node) -> bool:
    if node.type != "call_expression":
        return False
    callee = node.child_by_field_name("function")
    return callee is not None and callee.type == "import"


def is_require_call(source: bytes, node) -> bool:
    if node.type != "call_expression":
        return False
    callee = node.child_by_field_name("function")
    return (
        callee is not None
        and callee.type == "identifier"
        and node_text(source, callee) == "require"
    )
