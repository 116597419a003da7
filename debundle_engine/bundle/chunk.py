"""Chunks: groups of modules that share one physical file."""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from tree_sitter import Node as TSNode
from tree_sitter import Tree

from debundle_engine.bootstrap.locator import ModuleEntry, parse_module_table
from debundle_engine.bundle.module import Module
from debundle_engine.errors import ModuleTableParsingError
from debundle_engine.models import ChunkId, ClosureRoles, ModuleId
from debundle_engine.parser.nodes import literal_value, named_children, normalize_module_id, same_node, walk

if TYPE_CHECKING:
    from debundle_engine.bundle.bundle import Bundle

TABLE_TYPES = ("array", "object")


def _is_chunk_id_array(node: TSNode) -> bool:
    elements = named_children(node)
    return node.type == "array" and bool(elements) and all(e.type in ("number", "string") for e in elements)


def find_chunk_table(root: TSNode) -> Optional[Tuple[List[ChunkId], TSNode]]:
    """Find ``[ids]`` followed by a module table inside a chunk file.

    Matches ``webpackJsonp([1, 2], {...})`` (sibling call arguments) and
    ``(window.webpackJsonp = ...).push([[1, 2], {...}])`` (sibling array
    elements). Returns (chunk ids, module table node) or None.
    """
    for node in walk(root):
        if not _is_chunk_id_array(node):
            continue
        parent = node.parent
        if parent is None or parent.type not in ("array", "arguments"):
            continue
        siblings = named_children(parent)
        if len(siblings) < 2 or not same_node(siblings[0], node) or siblings[1].type not in TABLE_TYPES:
            continue
        ids = [normalize_module_id(literal_value(element)) for element in named_children(node)]
        return ids, siblings[1]
    return None


class Chunk:
    """Modules that live in one file, keyed by module id.

    The default chunk holds the modules embedded in the root bundle file and
    has no tree of its own; secondary chunks own the tree of their file.
    """

    def __init__(
        self,
        bundle: "Bundle",
        ids: List[ChunkId],
        file_name: str,
        tree: Optional[Tree] = None,
        depth: int = 0,
    ) -> None:
        self.bundle = bundle
        self.ids = list(ids)
        self.file_name = file_name
        self.tree = tree
        self.depth = depth
        self.modules: Dict[ModuleId, Module] = {}

    def __repr__(self) -> str:
        return f"Chunk(ids={self.ids!r}, file_name={self.file_name!r}, modules={len(self.modules)})"

    @classmethod
    def from_tree(cls, bundle: "Bundle", file_name: str, tree: Tree, roles: ClosureRoles, depth: int = 0) -> "Chunk":
        """Build a secondary chunk from the parsed contents of its file.

        Raises:
            ModuleTableParsingError: if the file has no chunk id array followed by a module table
        """
        found = find_chunk_table(tree.root_node)
        if found is None:
            raise ModuleTableParsingError(
                f"Chunk file {file_name} does not look like a webpack chunk",
                details=[
                    "Expected an array of chunk ids followed by a module table, like",
                    "webpackJsonp([1], {...}) or (window.webpackJsonp = ...).push([[1], {...}]).",
                ],
                context={"file_name": file_name},
            )
        ids, table = found
        chunk = cls(bundle, ids, file_name, tree=tree, depth=depth)
        chunk.add_modules(parse_module_table(table), roles)
        return chunk

    def add_modules(self, entries: Iterable[ModuleEntry], roles: ClosureRoles) -> None:
        for module_id, closure in entries:
            self.modules[module_id] = Module(self, module_id, closure, roles)
        logger.info(f"Discovered {len(self.modules)} modules in chunk {self.file_name}")
