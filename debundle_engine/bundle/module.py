"""A single module closure recovered from a module table."""

from typing import TYPE_CHECKING, Dict, List, Optional, Set

from loguru import logger
from tree_sitter import Node as TSNode

from debundle_engine.binder import Binding, ScopeBinder
from debundle_engine.graph.dependencies import DependencyExtractor
from debundle_engine.models import ClosureRoles, DependencyEdge, DependencyKind, ModuleId

if TYPE_CHECKING:
    from debundle_engine.bundle.chunk import Chunk


class Module:
    """One module: its closure, the parameters bound to module/exports/require and its dependencies.

    The path is mutable (metadata overrides, path resolution, package adoption)
    and always carries the ``.js`` extension.
    """

    def __init__(self, chunk: "Chunk", module_id: ModuleId, closure: TSNode, roles: ClosureRoles) -> None:
        self.chunk = chunk
        self.id = module_id
        self.closure = closure
        self.roles = roles
        self.comment: Optional[str] = None
        self._path: Optional[str] = None
        self._package_name: Optional[str] = None

        binder = ScopeBinder(closure)
        self.bindings: Dict[str, Optional[Binding]] = {
            role: binder.param_binding(roles.index_of(role)) for role in ("module", "exports", "require")
        }
        self.dependencies: List[DependencyEdge] = DependencyExtractor(module_id).extract(self.bindings["require"])

        logger.debug(f"Discovered module {module_id} (chunk {chunk.ids}) with dependencies {self.dependency_ids}")

    def __repr__(self) -> str:
        return f"Module(id={self.id!r}, path={self.path!r})"

    @property
    def bundle(self):
        return self.chunk.bundle

    @property
    def default_path(self) -> str:
        """``<chunk ids joined by "-">-<module id>.js``"""
        return "-".join(str(chunk_id) for chunk_id in self.chunk.ids) + f"-{self.id}.js"

    @property
    def path(self) -> str:
        return self._path or self.default_path

    @path.setter
    def path(self, value: str) -> None:
        self._path = value

    def reset_path(self, path: Optional[str] = None) -> None:
        """Forget resolved paths and package adoption, falling back to ``path`` or the default."""
        self._path = path
        self._package_name = None

    @property
    def dependency_ids(self) -> List[ModuleId]:
        """Module ids this module links to, deduplicated, in source order."""
        ids: List[ModuleId] = []
        for edge in self.dependencies:
            if edge.module_id is not None and edge.module_id not in ids:
                ids.append(edge.module_id)
        return ids

    @property
    def chunk_requests(self) -> List[DependencyEdge]:
        return [edge for edge in self.dependencies if edge.kind == DependencyKind.CHUNK and edge.chunk_id is not None]

    @property
    def package_name(self) -> Optional[str]:
        return self._package_name

    @package_name.setter
    def package_name(self, name: str) -> None:
        """Adopt this module as the root of package ``name``.

        The module moves to ``node_modules/<name>/index.js`` and every
        transitive dependency is moved under ``node_modules/<name>/``.
        Each module is moved at most once per adoption, so cycles terminate.
        """
        self._package_name = name
        prefix = f"node_modules/{name}/"
        self.path = f"{prefix}index.js"
        logger.debug(f"Module {self.id} adopted as package {name}")

        visited: Set[ModuleId] = {self.id}
        stack = list(reversed(self.dependency_ids))
        while stack:
            module_id = stack.pop()
            if module_id in visited:
                continue
            visited.add(module_id)
            dependency = self.bundle.find_module(module_id)
            if dependency is None:
                continue
            dependency.path = f"{prefix}{dependency.path}"
            stack.extend(reversed(dependency.dependency_ids))
