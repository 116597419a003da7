"""Build the parent/child module tree used for path inference."""

from typing import Dict, Iterable, List, Tuple

from loguru import logger

from debundle_engine.models import DependencyEdge, ModuleId, ModuleTreeNode

ModuleEdges = Tuple[ModuleId, List[DependencyEdge]]


class ModuleGraphBuilder:
    """Aggregate every module's dependency edges into an addressable tree.

    The result may be a forest and may contain cycles; breaking cycles is the
    path resolver's job.
    """

    def build(self, modules: Iterable[ModuleEdges]) -> Dict[ModuleId, ModuleTreeNode]:
        """Create one tree node per module and link parents and children.

        Args:
            modules: (module id, dependency edges) pairs in bundle order

        Returns:
            Mapping of module id to its tree node. Ids that are only ever the
            target of an edge get a ``bare`` placeholder node.
        """
        modules = list(modules)
        tree: Dict[ModuleId, ModuleTreeNode] = {module_id: ModuleTreeNode(id=module_id) for module_id, _ in modules}

        for module_id, edges in modules:
            item = tree[module_id]
            for edge in edges:
                # chunk-only edges have no statically known module
                if edge.module_id is None:
                    continue
                child = tree.get(edge.module_id)
                if child is None:
                    logger.warning(f"Module {module_id} depends on module {edge.module_id}, which is not in the bundle")
                    child = tree[edge.module_id] = ModuleTreeNode(id=edge.module_id, bare=True)
                if child.id not in item.children:
                    item.children.append(child.id)
                if module_id not in child.parents:
                    child.parents.append(module_id)

        logger.debug(f"Module tree has {len(tree)} nodes ({sum(1 for n in tree.values() if n.bare)} bare)")
        return tree
