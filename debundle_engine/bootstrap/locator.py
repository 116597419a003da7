"""Locate the bundler runtime ("webpackBootstrap") inside a parsed program.

The runtime is recognized by shape, not by name, since bundles are usually
minified. The line being looked for invokes each module closure:

    modules[moduleId].call(module.exports, module, module.exports, __webpack_require__);

which minifies to something like ``e[r].call(o.exports,o,o.exports,n)``.
"""

from typing import Iterator, List, Optional, Tuple

from loguru import logger
from tree_sitter import Node as TSNode

from debundle_engine.errors import BootstrapNotFoundError, ModuleTableParsingError
from debundle_engine.models import ModuleId
from debundle_engine.parser.nodes import (
    AstPath,
    array_elements,
    call_arguments,
    enclosing_function,
    function_body,
    function_params,
    has_block_body,
    is_empty_value,
    is_function,
    is_literal,
    is_member,
    literal_value,
    member_property_name,
    named_children,
    node_at_path,
    node_text,
    normalize_module_id,
    property_key,
    same_node,
    unwrap_parens,
    walk,
)

ModuleEntry = Tuple[ModuleId, TSNode]


def is_module_call(node: TSNode) -> bool:
    """``<member>.call(<member>, <arg>, <arg>, <arg>)``"""
    if node.type != "call_expression":
        return False
    callee = node.child_by_field_name("function")
    if member_property_name(callee) != "call":
        return False
    if not is_member(callee.child_by_field_name("object")):
        return False
    args = call_arguments(node)
    return len(args) == 4 and args[0].type == "member_expression"


def find_module_call(fn: TSNode) -> Optional[TSNode]:
    """First module-invocation call inside a function body, in tree order."""
    body = function_body(fn)
    if body is None:
        return None
    for node in walk(body):
        if is_module_call(node):
            return node
    return None


def parse_module_table(table: TSNode, metadata_file: Optional[str] = None) -> List[ModuleEntry]:
    """Turn an array or object literal of module closures into (id, closure) pairs.

    Empty slots (holes, ``null``) are placeholders for modules living in
    other chunks and are skipped.
    """
    table = unwrap_parens(table)
    entries: List[ModuleEntry] = []

    if table is not None and table.type == "object":
        for prop in named_children(table):
            if prop.type != "pair":
                continue
            value = prop.child_by_field_name("value")
            if is_empty_value(value):
                continue
            entries.append((property_key(prop.child_by_field_name("key")), unwrap_parens(value)))
        return entries

    if table is not None and table.type == "array":
        for index, element in enumerate(array_elements(table)):
            if is_empty_value(element):
                continue
            entries.append((index, unwrap_parens(element)))
        return entries

    raise ModuleTableParsingError(
        "Cannot locate modules within bundle - it is not an array or an object!",
        details=[
            "The module bootstrapping function was found and parsed, but no array or object",
            "containing module closures was found. This probably means that the bundle being parsed",
            "is something a bit unusual. To unpack it, point the \"module_table_path\" option at the",
            f"module table in the metadata file{f' ({metadata_file})' if metadata_file else ''}.",
        ],
        context={"node_type": table.type if table is not None else None},
    )


class WebpackBootstrap:
    """The runtime function plus the call expression that invokes module closures."""

    def __init__(self, function: TSNode, module_call: TSNode, metadata_file: Optional[str] = None) -> None:
        self.function = function
        self.module_call = module_call
        self.metadata_file = metadata_file

    def __repr__(self) -> str:
        return f"WebpackBootstrap(require={self.require_name!r}, public_path={self.public_path!r})"

    @property
    def require_function(self) -> Optional[TSNode]:
        return enclosing_function(self.module_call)

    @property
    def require_name(self) -> Optional[str]:
        """Name the runtime gives its require function (``__webpack_require__`` or minified)."""
        fn = self.require_function
        if fn is None:
            return None
        name = fn.child_by_field_name("name")
        if name is not None:
            return node_text(name)
        parent = fn.parent
        while parent is not None and parent.type == "parenthesized_expression":
            parent = parent.parent
        if parent is not None and parent.type == "variable_declarator":
            return node_text(parent.child_by_field_name("name"))
        if parent is not None and parent.type == "assignment_expression":
            return node_text(parent.child_by_field_name("left"))
        return None

    def _property_assignments(self) -> Iterator[TSNode]:
        """``require.<x> = <value>`` assignments anywhere in the runtime."""
        require_name = self.require_name
        if require_name is None:
            return
        for node in walk(self.function):
            if node.type != "assignment_expression":
                continue
            left = node.child_by_field_name("left")
            if left is None or left.type != "member_expression":
                continue
            if node_text(left.child_by_field_name("object")) == require_name:
                yield node

    def require_property(self, property_name: str) -> Optional[TSNode]:
        """Right-hand side of ``require.<property_name> = ...``, if the runtime assigns it."""
        for assignment in self._property_assignments():
            if member_property_name(assignment.child_by_field_name("left")) == property_name:
                return unwrap_parens(assignment.child_by_field_name("right"))
        return None

    @property
    def public_path(self) -> Optional[str]:
        value = self.require_property("p")
        if value is not None and value.type == "string":
            return literal_value(value)
        return None

    @property
    def entrypoint_module_id(self) -> Optional[ModuleId]:
        # Most of the time this is available within `require.s`
        value = self.require_property("s")
        if is_literal(value):
            return normalize_module_id(literal_value(value))

        # Otherwise look for `require(require.foo = 906)`
        require_name = self.require_name
        for assignment in self._property_assignments():
            args = assignment.parent
            call = args.parent if args is not None else None
            if args is None or args.type != "arguments" or call is None or call.type != "call_expression":
                continue
            if node_text(call.child_by_field_name("function")) != require_name:
                continue
            right = unwrap_parens(assignment.child_by_field_name("right"))
            if is_literal(right):
                return normalize_module_id(literal_value(right))
        return None

    def module_table(self, root: Optional[TSNode] = None, table_path: Optional[AstPath] = None) -> TSNode:
        """The literal passed to the runtime as its single argument.

        Handles ``(function(m){...})([...])``, ``!function(m){...}([...])`` and
        ``(function(m){...}([...]))``. ``table_path`` overrides detection.
        """
        if table_path:
            node = node_at_path(root, table_path) if root is not None else None
            if node is None:
                raise ModuleTableParsingError(
                    "The configured module_table_path does not point at a node",
                    context={"module_table_path": list(table_path)},
                )
            return node

        node = self.function
        while node.parent is not None and node.parent.type == "parenthesized_expression":
            node = node.parent
        call = node.parent
        if call is None or call.type != "call_expression" or not same_node(call.child_by_field_name("function"), node):
            raise ModuleTableParsingError(
                "The bootstrap function is not invoked directly, so its module table cannot be found",
                details=['Set the "module_table_path" option to the AST path of the module table.'],
                context={"parent_type": call.type if call is not None else None},
            )
        args = call_arguments(call)
        if not args:
            raise ModuleTableParsingError(
                "The bootstrap function is invoked without a module table",
                details=['Set the "module_table_path" option to the AST path of the module table.'],
            )
        return args[0]

    def modules(self, root: Optional[TSNode] = None, table_path: Optional[AstPath] = None) -> List[ModuleEntry]:
        return parse_module_table(self.module_table(root, table_path), metadata_file=self.metadata_file)


class BootstrapLocator:
    """Find the webpackBootstrap function in a whole-program tree."""

    def __init__(self, metadata_file: Optional[str] = None) -> None:
        self.metadata_file = metadata_file

    def locate(self, root: TSNode, bootstrap_path: Optional[AstPath] = None) -> WebpackBootstrap:
        """Return the first qualifying bootstrap function in tree order.

        Args:
            root: Program node of the bundle
            bootstrap_path: Optional AST path override pointing at the bootstrap function

        Raises:
            BootstrapNotFoundError: if nothing in the program has the expected shape
        """
        if bootstrap_path:
            return self._from_path(root, bootstrap_path)

        logger.info("Looking for webpackBootstrap in bundle...")
        for node in walk(root):
            if not is_function(node):
                continue
            if len(function_params(node)) != 1 or not has_block_body(node):
                continue
            module_call = find_module_call(node)
            if module_call is not None:
                logger.info("Found webpackBootstrap!")
                logger.debug(f"webpackBootstrap module call expression: {node_text(module_call)}")
                return WebpackBootstrap(node, module_call, metadata_file=self.metadata_file)

        raise self._not_found()

    def _from_path(self, root: TSNode, bootstrap_path: AstPath) -> WebpackBootstrap:
        node = unwrap_parens(node_at_path(root, bootstrap_path))
        module_call = find_module_call(node) if is_function(node) else None
        if module_call is None:
            raise self._not_found(context={"bootstrap_path": list(bootstrap_path)})
        logger.info(f"Using webpackBootstrap at configured path {list(bootstrap_path)}")
        return WebpackBootstrap(node, module_call, metadata_file=self.metadata_file)

    def _not_found(self, context: Optional[dict] = None) -> BootstrapNotFoundError:
        location = f" ({self.metadata_file})" if self.metadata_file else ""
        return BootstrapNotFoundError(
            "Unable to locate webpackBootstrap, part of a webpack bundle that orchestrates the module system.",
            details=[
                "This is a hard requirement to be able to debundle, since it contains metadata required",
                "for later in the process.",
                "",
                "To continue, locate the AST path to the function that contains webpackBootstrap and put it",
                f'in the "bootstrap_path" option of the metadata file generated alongside your bundle{location}.',
            ],
            context=context,
        )
