"""Turn a module closure back into the text of a standalone source file.

The syntax tree is shared by every module of a chunk and is never modified.
Instead each rewrite collects byte-range edits over the closure and splices
them into a fresh string, so the same module can be emitted any number of
times with identical results.
"""

import json
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from tree_sitter import Node as TSNode

from debundle_engine.graph.path_resolver import strip_extension
from debundle_engine.models import ModuleId
from debundle_engine.parser.nodes import function_body, member_property_name, same_node

if TYPE_CHECKING:
    from debundle_engine.bundle.module import Module

Edit = Tuple[int, int, str]  # (start byte, end byte, replacement)

CANONICAL_NAMES = ("module", "exports", "require")


@dataclass
class RewrittenModule:
    """Output of one rewrite: final source text plus ids that could not be linked."""

    module_id: ModuleId
    path: str
    code: str
    unresolved: List[ModuleId] = field(default_factory=list)


def package_root(path: str) -> Optional[str]:
    """``node_modules/<name>`` prefix of the innermost package containing ``path``."""
    marker = "node_modules/"
    index = path.rfind(marker)
    if index == -1:
        return None
    rest = path[index + len(marker):].split("/")
    name_parts = 2 if rest[0].startswith("@") and len(rest) > 1 else 1
    return path[: index + len(marker)] + "/".join(rest[:name_parts])


def relative_require(from_path: str, to_path: str) -> str:
    """The string a file at ``from_path`` should pass to require to load ``to_path``.

    Targets inside another package are required by package specifier
    (``foo``, ``foo/lib/bar``); everything else gets a ``./`` or ``../``
    relative path. Extensions are dropped.

    >>> relative_require("index.js", "2.js")
    './2'
    >>> relative_require("src/app.js", "node_modules/foo/index.js")
    'foo'
    """
    target = strip_extension(to_path)
    target_package = package_root(target)
    if target_package is not None and target_package != package_root(from_path):
        specifier = target[target.rfind("node_modules/") + len("node_modules/"):]
        if specifier.endswith("/index"):
            specifier = specifier[: -len("/index")]
        return specifier

    relative = posixpath.relpath(target, posixpath.dirname(from_path) or ".")
    return relative if relative.startswith(".") else f"./{relative}"


def apply_edits(node: TSNode, edits: Iterable[Edit]) -> str:
    """Text of ``node`` with every edit inside its byte range applied.

    Edits are absolute byte offsets. Overlapping or duplicate edits keep the
    first one (by start offset).
    """
    source = node.text
    base = node.start_byte
    pieces: List[bytes] = []
    cursor = node.start_byte
    for start, end, replacement in sorted(edits):
        if start < cursor or end > node.end_byte:
            continue
        pieces.append(source[cursor - base:start - base])
        pieces.append(replacement.encode("utf-8"))
        cursor = end
    pieces.append(source[cursor - base:])
    return b"".join(pieces).decode("utf-8", errors="replace")


class SourceRewriter:
    """Rewrite module closures into file contents.

    Args:
        module_exports_key: Property the runtime uses for ``module.exports``
            (minified runtimes may rename it)
    """

    def __init__(self, module_exports_key: str = "exports") -> None:
        self.module_exports_key = module_exports_key

    def rewrite(self, module: "Module", paths: Dict[ModuleId, str]) -> RewrittenModule:
        """Produce the final text for ``module``.

        Args:
            module: Module to emit
            paths: Module id -> output path (with ``.js``) for every live module

        Returns:
            RewrittenModule whose ``unresolved`` lists dependency ids that have
            no module and were left as they were.
        """
        edits: List[Edit] = []
        unresolved = self._require_edits(module, paths, edits)
        self._rename_edits(module, edits)

        code = self._strip_closure(module.closure, edits)
        if module.comment:
            code = f"/*\n{module.comment}\n*/\n{code}"
        return RewrittenModule(module_id=module.id, path=module.path, code=code, unresolved=unresolved)

    def _require_edits(self, module: "Module", paths: Dict[ModuleId, str], edits: List[Edit]) -> List[ModuleId]:
        unresolved: List[ModuleId] = []
        for edge in module.dependencies:
            if edge.module_id is None or edge.literal is None:
                continue
            target = paths.get(edge.module_id)
            if target is None:
                logger.warning(
                    f"Module {module.id} requires module {edge.module_id}, which does not exist. "
                    "Leaving the require untouched."
                )
                if edge.module_id not in unresolved:
                    unresolved.append(edge.module_id)
                continue
            require_path = relative_require(module.path, target)
            edits.append((edge.literal.start_byte, edge.literal.end_byte, json.dumps(require_path)))
        return unresolved

    def _rename_edits(self, module: "Module", edits: List[Edit]) -> None:
        for role in CANONICAL_NAMES:
            binding = module.bindings.get(role)
            if binding is None:
                continue

            if binding.name != role:
                for identifier in binding.identifiers:
                    if identifier.type == "shorthand_property_identifier":
                        # `{e}` -> `{e: module}`
                        replacement = f"{binding.name}: {role}"
                    else:
                        replacement = role
                    edits.append((identifier.start_byte, identifier.end_byte, replacement))

            if role == "module" and self.module_exports_key != "exports":
                edits.extend(self._exports_key_edits(binding.references))

    def _exports_key_edits(self, references: List[TSNode]) -> List[Edit]:
        """``module.<mangled>`` -> ``module.exports``"""
        found: List[Edit] = []
        for reference in references:
            parent = reference.parent
            if parent is None or parent.type != "member_expression":
                continue
            if not same_node(parent.child_by_field_name("object"), reference):
                continue
            if member_property_name(parent) != self.module_exports_key:
                continue
            prop = parent.child_by_field_name("property")
            found.append((prop.start_byte, prop.end_byte, "exports"))
        return found

    @staticmethod
    def _strip_closure(closure: TSNode, edits: List[Edit]) -> str:
        body = function_body(closure)
        if body is None:
            return f"module.exports = {apply_edits(closure, edits)};"
        if body.type != "statement_block":
            # (e, t) => expr
            return f"module.exports = {apply_edits(body, edits)};"
        return "\n".join(apply_edits(statement, edits) for statement in body.named_children)
