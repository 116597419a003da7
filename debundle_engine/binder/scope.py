"""Scope analysis for module closures.

Minified bundles rename ``require``/``module``/``exports`` to single letters
that are freely reused by nested functions. ``ScopeBinder`` resolves which
identifier nodes inside a closure actually refer to one of its parameters, so
later phases classify by binding rather than by name.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from tree_sitter import Node as TSNode

from debundle_engine.parser.nodes import (
    function_body,
    function_params,
    is_function,
    named_children,
    node_text,
    same_node,
)

BLOCK_SCOPE_TYPES = frozenset({"statement_block", "for_statement", "for_in_statement"})
NAMED_FUNCTION_EXPRESSIONS = frozenset({"function", "function_expression", "generator_function"})
FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})


@dataclass
class Binding:
    """A closure parameter and every identifier that resolves to it."""

    name: str
    declaration: TSNode
    references: List[TSNode] = field(default_factory=list)

    @property
    def identifiers(self) -> List[TSNode]:
        """Declaration site followed by all use sites."""
        return [self.declaration, *self.references]


def pattern_names(node: Optional[TSNode]) -> Set[str]:
    """Names bound by a declaration target (identifier or destructuring pattern)."""
    if node is None:
        return set()
    if node.type in ("identifier", "shorthand_property_identifier_pattern"):
        return {node_text(node)}
    if node.type in ("assignment_pattern", "object_assignment_pattern"):
        return pattern_names(node.child_by_field_name("left"))
    if node.type == "pair_pattern":
        return pattern_names(node.child_by_field_name("value"))
    if node.type in ("array_pattern", "object_pattern", "rest_pattern"):
        names: Set[str] = set()
        for child in named_children(node):
            names |= pattern_names(child)
        return names
    return set()


def _declarator_names(declaration: TSNode) -> Set[str]:
    names: Set[str] = set()
    for declarator in named_children(declaration):
        if declarator.type == "variable_declarator":
            names |= pattern_names(declarator.child_by_field_name("name"))
    return names


class ScopeBinder:
    """Resolve references to the formal parameters of one function closure."""

    def __init__(self, closure: TSNode) -> None:
        self.closure = closure
        self.params = function_params(closure)

    def param_binding(self, index: int) -> Optional[Binding]:
        """Binding for the parameter at ``index``; None when absent or destructured."""
        if index is None or index < 0 or index >= len(self.params):
            return None
        param = self.params[index]
        if param.type != "identifier":
            return None
        name = node_text(param)
        return Binding(name=name, declaration=param, references=self.references(name))

    def references(self, name: str) -> List[TSNode]:
        """All identifier nodes in the closure body bound to the closure's ``name``."""
        body = function_body(self.closure)
        if body is None:
            return []

        found: List[TSNode] = []
        stack = [body]
        while stack:
            node = stack.pop()
            if is_function(node):
                if self._function_shadows(node, name):
                    continue
            elif node.type in BLOCK_SCOPE_TYPES and not same_node(node, body):
                if self._block_declares(node, name):
                    continue
            elif node.type == "catch_clause":
                if name in pattern_names(node.child_by_field_name("parameter")):
                    continue
            elif node.type in ("identifier", "shorthand_property_identifier") and node_text(node) == name:
                found.append(node)
            stack.extend(reversed(node.children))
        return found

    def _function_shadows(self, fn: TSNode, name: str) -> bool:
        if fn.type in NAMED_FUNCTION_EXPRESSIONS and node_text(fn.child_by_field_name("name")) == name:
            return True
        for param in function_params(fn):
            if name in pattern_names(param):
                return True
        body = function_body(fn)
        if body is not None and body.type == "statement_block":
            return self._hoisted_in(body, name)
        return False

    def _hoisted_in(self, body: TSNode, name: str) -> bool:
        """``var`` and function declarations anywhere in a function body, lexical ones at its top level."""
        stack = list(body.children)
        while stack:
            node = stack.pop()
            if node.type in FUNCTION_DECLARATIONS:
                if node_text(node.child_by_field_name("name")) == name:
                    return True
                continue
            if is_function(node):
                continue
            if node.type == "variable_declaration" and name in _declarator_names(node):
                return True
            if same_node(node.parent, body):
                if node.type == "lexical_declaration" and name in _declarator_names(node):
                    return True
                if node.type == "class_declaration" and node_text(node.child_by_field_name("name")) == name:
                    return True
            stack.extend(node.children)
        return False

    def _block_declares(self, block: TSNode, name: str) -> bool:
        if block.type == "for_statement":
            initializer = block.child_by_field_name("initializer")
            return (
                initializer is not None
                and initializer.type == "lexical_declaration"
                and name in _declarator_names(initializer)
            )
        if block.type == "for_in_statement":
            kind = node_text(block.child_by_field_name("kind"))
            return kind in ("let", "const") and name in pattern_names(block.child_by_field_name("left"))

        for child in named_children(block):
            if child.type == "lexical_declaration" and name in _declarator_names(child):
                return True
            if child.type == "class_declaration" and node_text(child.child_by_field_name("name")) == name:
                return True
            if child.type in FUNCTION_DECLARATIONS and node_text(child.child_by_field_name("name")) == name:
                return True
        return False
