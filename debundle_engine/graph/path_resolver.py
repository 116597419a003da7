"""Assign every module a relative on-disk path.

A module's path is reconstructed from the chain of require strings that leads
from the entry module to it. For example, with steps:

    ['./foo']                    => 'foo'
    ['../foo']                   => '../foo' (escapes the output root, fatal)
    ['uuid', './foo']            => 'node_modules/uuid/foo'
    ['uuid', './bar/foo', './baz'] => 'node_modules/uuid/bar/baz'
    ['abc', './foo', 'uuid', './bar'] => 'node_modules/uuid/bar'

A package step (one not starting with ``.``) discards everything resolved
before it, since paths inside a package are relative to the package root.
"""

import posixpath
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from debundle_engine.errors import PathResolutionError
from debundle_engine.models import ModuleId, ModuleTreeNode, PathStep

Hierarchy = List[PathStep]


def strip_extension(path: str) -> str:
    return path[:-3] if path.endswith(".js") else path


def fold_steps(steps: Sequence[PathStep]) -> str:
    """Collapse a sequence of require steps into a path (no extension)."""
    root_package = ""
    parts: List[str] = []
    for index, step in enumerate(steps):
        require_string = step.require_string
        if not require_string.startswith("."):
            # A root node module overrides the require tree
            root_package = require_string
            parts = []
        elif index == len(steps) - 1:
            parts.append(require_string)
        else:
            # Only the directory matters until the final step
            parts.append(posixpath.dirname(require_string))

    module_path = posixpath.normpath(posixpath.join(*parts)) if parts else "index"
    if module_path == ".":
        module_path = "index"
    if root_package:
        module_path = posixpath.normpath(f"node_modules/{root_package}/{module_path}")
    return module_path


def as_require_string(path: str) -> str:
    """Output path (``lib/one.js``) -> require step (``./lib/one``)."""
    path = strip_extension(path)
    return path if path.startswith(".") else f"./{path}"


def escapes_root(path: str) -> bool:
    normalized = posixpath.normpath(path)
    return normalized == ".." or normalized.startswith("../") or posixpath.isabs(normalized)


class PathResolver:
    """Resolve module paths for one module tree.

    Exploration is a depth-first walk from the entry module over children in
    declaration order, using an explicit stack. The first path discovered to a
    module wins; every other path found is kept as a candidate for
    diagnostics. A traversal that would revisit a module already on its own
    stack is abandoned and recorded in ``incomplete``.

    Results are memoized on the instance, so a resolver covers exactly one
    resolution run.
    """

    def __init__(
        self,
        tree: Dict[ModuleId, ModuleTreeNode],
        entry_id: ModuleId,
        known_paths: Optional[Dict[ModuleId, str]] = None,
        output_root: str = "./dist",
    ) -> None:
        self.tree = tree
        self.entry_id = entry_id
        self.known_paths = {module_id: strip_extension(path) for module_id, path in (known_paths or {}).items()}
        self.output_root = output_root

        self._memo: Dict[ModuleId, Hierarchy] = {}
        self._explored = False
        self.candidates: Dict[ModuleId, List[Hierarchy]] = {}
        self.incomplete: List[Tuple[ModuleId, ...]] = []
        self.ambiguous: Dict[ModuleId, List[str]] = {}

    def require_string(self, module_id: ModuleId) -> str:
        """The string used to require ``module_id`` when no lookup table names it."""
        return self.known_paths.get(module_id) or f"./{strip_extension(str(module_id))}"

    def _step_into(self, parent: Hierarchy, module_id: ModuleId) -> Hierarchy:
        # A known path short-circuits the search for that module
        if module_id in self.known_paths:
            return [PathStep(module_id, self.known_paths[module_id])]
        return [*parent, PathStep(module_id, self.require_string(module_id))]

    def _explore(self) -> None:
        if self._explored:
            return
        self._explored = True

        entry = self.entry_id
        if entry not in self.tree:
            logger.warning(f"Entry module {entry} is not in the module tree, only known paths can be resolved")
            return

        self._memo[entry] = [PathStep(entry, self.known_paths[entry])] if entry in self.known_paths else []
        stack = [(entry, iter(self.tree[entry].children), (entry,))]
        while stack:
            current, children, on_stack = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                continue
            if child in on_stack:
                logger.debug(f"Circular dependency discovered! {' -> '.join(map(str, on_stack + (child,)))}")
                self.incomplete.append(on_stack + (child,))
                continue

            candidate = self._step_into(self._memo[current], child)
            self.candidates.setdefault(child, []).append(candidate)
            if child in self._memo:
                continue
            self._memo[child] = candidate
            node = self.tree.get(child)
            stack.append((child, iter(node.children if node else ()), on_stack + (child,)))

        for module_id, hierarchies in self.candidates.items():
            folded = list(dict.fromkeys(fold_steps(h) for h in hierarchies))
            if len(folded) > 1:
                self.ambiguous[module_id] = folded
                logger.warning(
                    f"Module {module_id} is reachable through {len(folded)} different paths, using {folded[0]}"
                )

    def hierarchy(self, module_id: ModuleId) -> Optional[Hierarchy]:
        """Require steps from the entry module to ``module_id``; None when unreachable."""
        if module_id in self.known_paths:
            return [PathStep(module_id, self.known_paths[module_id])]
        self._explore()
        return self._memo.get(module_id)

    def resolve(self, module_id: ModuleId) -> Optional[str]:
        """Relative path (without ``.js``) of a module, or None if it cannot be reached.

        Raises:
            PathResolutionError: if the path escapes the output root
        """
        steps = self.hierarchy(module_id)
        if steps is None:
            return None

        module_path = fold_steps(steps)
        if escapes_root(module_path):
            candidates = self.candidates.get(module_id) or [steps]
            lines = []
            for number, candidate in enumerate(candidates, start=1):
                lines.append(f"Candidate {number}: {fold_steps(candidate)}")
                lines.extend(f"  - {step.require_string} (module {step.module_id})" for step in candidate)
            raise PathResolutionError(
                f"Don't have enough information to expand module {module_id} into a named file "
                f"(resolved to {module_path}, outside {self.output_root}).",
                details=[
                    "The path of one of the modules below must be explicitly defined in known_paths:",
                    *lines,
                ],
                context={"module_id": module_id},
            )

        logger.debug(f"* {module_id} => {module_path}.js")
        return module_path

    def resolve_all(self) -> Dict[ModuleId, str]:
        """Resolve every instantiated module that can be reached or has a known path."""
        paths: Dict[ModuleId, str] = {}
        for module_id, node in self.tree.items():
            if node.bare:
                continue
            module_path = self.resolve(module_id)
            if module_path is not None:
                paths[module_id] = module_path
        return paths
