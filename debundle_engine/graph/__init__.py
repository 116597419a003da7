from .dependencies import DependencyExtractor
from .module_tree import ModuleGraphBuilder
from .path_resolver import PathResolver, as_require_string, fold_steps

__all__ = [
    "DependencyExtractor",
    "ModuleGraphBuilder",
    "PathResolver",
    "as_require_string",
    "fold_steps",
]
