"""Extract dependency edges from the uses of a module's ``require`` binding."""

from typing import List, Optional

from loguru import logger
from tree_sitter import Node as TSNode

from debundle_engine.binder import Binding
from debundle_engine.errors import RequireHasMultipleArgumentsError
from debundle_engine.models import DependencyEdge, DependencyKind, ModuleId
from debundle_engine.parser.nodes import (
    call_arguments,
    is_literal,
    literal_value,
    member_property_name,
    node_text,
    normalize_module_id,
    same_node,
)


def _parent_call(node: TSNode) -> Optional[TSNode]:
    """The call expression invoking ``node`` as its callee, if any."""
    parent = node.parent
    if parent is not None and parent.type == "call_expression" and same_node(
        parent.child_by_field_name("function"), node
    ):
        return parent
    return None


def _is_id_literal(node: TSNode) -> bool:
    return is_literal(node) and node.type in ("number", "string")


def _member_of(node: TSNode, property_name: str) -> Optional[TSNode]:
    """``node.<property_name>`` when ``node`` is the object of that member expression."""
    parent = node.parent
    if parent is None or parent.type != "member_expression":
        return None
    if not same_node(parent.child_by_field_name("object"), node):
        return None
    if member_property_name(parent) != property_name:
        return None
    return parent


class DependencyExtractor:
    """Classify each use of ``require`` inside one module into a typed edge.

    Recognized shapes (each independent, a module may mix them):

    - ``require(4)``                              -> DIRECT
    - ``require.e(1)``                            -> CHUNK (module unknown)
    - ``require.e(1).then(require.bind(null, 4))`` -> CHUNK (module 4)
    - ``require.t.bind(null, 4)``                 -> INTEROP

    Anything else (``require.d(...)``, ``require(variable)``) is passed
    through untouched.
    """

    def __init__(self, module_id: ModuleId) -> None:
        self.module_id = module_id

    def extract(self, binding: Optional[Binding]) -> List[DependencyEdge]:
        # No require parameter means the module cannot have dependencies
        if binding is None:
            return []

        edges: List[DependencyEdge] = []
        for reference in binding.references:
            edge = (
                self._direct(reference)
                or self._chunk(reference, binding.name)
                or self._interop(reference)
            )
            if edge is not None:
                edges.append(edge)
        return edges

    def _direct(self, reference: TSNode) -> Optional[DependencyEdge]:
        call = _parent_call(reference)
        if call is None:
            return None

        args = call_arguments(call)
        if len(args) > 1:
            raise RequireHasMultipleArgumentsError(
                f"The require function in module {self.module_id} had more than one argument - it had {len(args)}",
                details=[f"Call at bytes {call.start_byte}-{call.end_byte}: {node_text(call)[:200]}"],
                context={"module_id": self.module_id, "arguments": [node_text(arg) for arg in args]},
            )
        if not args or not _is_id_literal(args[0]):
            logger.debug(f"Module {self.module_id}: skipping dynamic require `{node_text(call)[:80]}`")
            return None

        return DependencyEdge(
            kind=DependencyKind.DIRECT,
            module_id=normalize_module_id(literal_value(args[0])),
            literal=args[0],
        )

    def _chunk(self, reference: TSNode, require_name: str) -> Optional[DependencyEdge]:
        member = _member_of(reference, "e")
        call = _parent_call(member) if member is not None else None
        if call is None:
            return None
        args = call_arguments(call)
        if not args or not _is_id_literal(args[0]):
            return None

        chunk_id = normalize_module_id(literal_value(args[0]))
        edge = DependencyEdge(kind=DependencyKind.CHUNK, module_id=None, chunk_id=chunk_id, literal=args[0])

        # require.e(1).then(require.bind(null, 4))
        then = _member_of(call, "then")
        then_call = _parent_call(then) if then is not None else None
        if then_call is None:
            return edge
        then_args = call_arguments(then_call)
        bound = then_args[0] if then_args else None
        if bound is None or bound.type != "call_expression":
            return edge
        callee = bound.child_by_field_name("function")
        if member_property_name(callee) != "bind" or node_text(callee.child_by_field_name("object")) != require_name:
            return edge
        bind_args = call_arguments(bound)
        if len(bind_args) >= 2 and _is_id_literal(bind_args[1]):
            edge.module_id = normalize_module_id(literal_value(bind_args[1]))
            edge.literal = bind_args[1]
        return edge

    def _interop(self, reference: TSNode) -> Optional[DependencyEdge]:
        t_member = _member_of(reference, "t")
        bind_member = _member_of(t_member, "bind") if t_member is not None else None
        call = _parent_call(bind_member) if bind_member is not None else None
        if call is None:
            return None
        args = call_arguments(call)
        if len(args) < 2 or not _is_id_literal(args[1]):
            return None
        return DependencyEdge(
            kind=DependencyKind.INTEROP,
            module_id=normalize_module_id(literal_value(args[1])),
            literal=args[1],
        )
