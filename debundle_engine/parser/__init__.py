from .tree_sitter_parser import TreeSitterParser, JS_LANGUAGE
from .nodes import ModuleId, AstPath, node_text, named_children, literal_value, normalize_module_id, node_at_path

__all__ = [
    "TreeSitterParser",
    "JS_LANGUAGE",
    "ModuleId",
    "AstPath",
    "node_text",
    "named_children",
    "literal_value",
    "normalize_module_id",
    "node_at_path",
]
