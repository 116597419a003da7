"""Helpers for navigating Tree-sitter JavaScript nodes.

Tree-sitter keeps comments as named ``comment`` nodes wherever they appear, so
most helpers here skip them to keep positional logic (argument lists, array
elements, parameters) stable.
"""

import codecs
import re
from typing import Iterator, List, Optional, Sequence, Union

from tree_sitter import Node as TSNode

ModuleId = Union[int, str]
AstPath = Sequence[Union[int, str]]

FUNCTION_TYPES = frozenset(
    {
        "function",
        "function_expression",
        "function_declaration",
        "generator_function",
        "generator_function_declaration",
        "arrow_function",
        "method_definition",
    }
)
MEMBER_TYPES = frozenset({"member_expression", "subscript_expression"})
LITERAL_TYPES = frozenset({"number", "string", "true", "false", "null"})

_NUMERIC_ID = re.compile(r"^-?\d+$")


def node_text(node: Optional[TSNode]) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8")


def named_children(node: TSNode) -> List[TSNode]:
    """Named children of a node, comments excluded."""
    return [child for child in node.named_children if child.type != "comment"]


def same_node(a: Optional[TSNode], b: Optional[TSNode]) -> bool:
    if a is None or b is None:
        return False
    return a.type == b.type and a.start_byte == b.start_byte and a.end_byte == b.end_byte


def unwrap_parens(node: Optional[TSNode]) -> Optional[TSNode]:
    """Strip any number of wrapping parentheses: ``((x))`` -> ``x``."""
    while node is not None and node.type == "parenthesized_expression":
        inner = named_children(node)
        if len(inner) != 1:
            return node
        node = inner[0]
    return node


def is_function(node: Optional[TSNode]) -> bool:
    return node is not None and node.type in FUNCTION_TYPES


def is_member(node: Optional[TSNode]) -> bool:
    """True for both ``a.b`` and ``a[b]``."""
    return node is not None and node.type in MEMBER_TYPES


def member_property_name(node: Optional[TSNode]) -> Optional[str]:
    """Property name of a dotted member expression (``a.b`` -> ``b``)."""
    if node is None or node.type != "member_expression":
        return None
    prop = node.child_by_field_name("property")
    return node_text(prop) if prop is not None else None


def call_arguments(call: TSNode) -> List[TSNode]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return named_children(args)


def walk(node: TSNode) -> Iterator[TSNode]:
    """Pre-order traversal, iterative so deep minified trees don't hit the recursion limit."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def function_params(fn: TSNode) -> List[TSNode]:
    """Formal parameter nodes of a function-like node."""
    single = fn.child_by_field_name("parameter")
    if single is not None:
        return [single]
    params = fn.child_by_field_name("parameters")
    if params is None:
        return []
    return named_children(params)


def function_body(fn: TSNode) -> Optional[TSNode]:
    return fn.child_by_field_name("body")


def has_block_body(fn: TSNode) -> bool:
    body = function_body(fn)
    return body is not None and body.type == "statement_block"


def enclosing_function(node: TSNode) -> Optional[TSNode]:
    current = node.parent
    while current is not None:
        if is_function(current):
            return current
        current = current.parent
    return None


def array_elements(array: TSNode) -> List[Optional[TSNode]]:
    """Elements of an array literal by index; holes (``[,a]``) come back as None."""
    elements: List[Optional[TSNode]] = []
    current: Optional[TSNode] = None
    for child in array.children:
        if child.type in ("[", "]"):
            continue
        if child.type == ",":
            elements.append(current)
            current = None
        elif child.type != "comment" and child.is_named:
            current = child
    if current is not None:
        elements.append(current)
    return elements


def is_literal(node: Optional[TSNode]) -> bool:
    return node is not None and node.type in LITERAL_TYPES


def is_empty_value(node: Optional[TSNode]) -> bool:
    """Null slots in module tables: holes, ``null``, ``undefined``, ``void 0``."""
    node = unwrap_parens(node)
    if node is None or node.type == "null":
        return True
    if node.type in ("identifier", "undefined") and node_text(node) == "undefined":
        return True
    return node.type == "unary_expression" and node_text(node).replace(" ", "") == "void0"


def _decode_escape(text: str) -> str:
    if text.startswith("\\u{"):
        return chr(int(text[3:-1], 16))
    if text in ("\\'", '\\"', "\\\\", "\\/"):
        return text[1]
    try:
        return codecs.decode(text, "unicode_escape")
    except UnicodeDecodeError:
        return text[1:]


def _number_value(text: str) -> Union[int, float]:
    cleaned = text.replace("_", "")
    try:
        return int(cleaned, 0)
    except ValueError:
        pass
    try:
        return int(cleaned)
    except ValueError:
        value = float(cleaned)
        return int(value) if value.is_integer() else value


def literal_value(node: TSNode):
    """Python value of a literal node (number, string, boolean, null)."""
    if node.type == "number":
        return _number_value(node_text(node))
    if node.type == "string":
        parts = []
        for child in node.children:
            if child.type == "string_fragment":
                parts.append(node_text(child))
            elif child.type == "escape_sequence":
                parts.append(_decode_escape(node_text(child)))
        return "".join(parts)
    if node.type == "true":
        return True
    if node.type == "false":
        return False
    if node.type == "null":
        return None
    raise ValueError(f"Node of type {node.type} is not a literal")


def property_key(node: TSNode) -> ModuleId:
    """Key of an object-literal pair as a module id."""
    if node.type in ("number", "string"):
        return normalize_module_id(literal_value(node))
    return normalize_module_id(node_text(node))


def normalize_module_id(value) -> ModuleId:
    """Numeric strings become ints so ``"5"`` and ``5`` address the same module."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _NUMERIC_ID.match(value):
        return int(value)
    if isinstance(value, (int, str)):
        return value
    return str(value)


def node_at_path(root: TSNode, path: AstPath) -> Optional[TSNode]:
    """Follow an AST path from ``root``.

    Each step is either a field name (``"function"``, ``"arguments"``) or an
    index into the comment-free named children. Used for operator overrides
    when structural detection fails.
    """
    current: Optional[TSNode] = root
    for step in path:
        if current is None:
            return None
        if isinstance(step, int) or (isinstance(step, str) and step.isdigit()):
            children = named_children(current)
            index = int(step)
            current = children[index] if 0 <= index < len(children) else None
        else:
            current = current.child_by_field_name(step)
    return current
