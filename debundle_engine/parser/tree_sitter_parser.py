"""Tree-sitter JavaScript parser."""

from pathlib import Path
from typing import Optional, Union

import tree_sitter_javascript as tsjavascript
from loguru import logger
from tree_sitter import Language, Parser, Tree

JS_LANGUAGE = Language(tsjavascript.language())


class TreeSitterParser:
    """Parse JavaScript source into Tree-sitter trees.

    Tree-sitter nodes already carry parent links (``node.parent``), so no
    augmentation pass is needed before the tree is handed to the locator.
    """

    def __init__(self) -> None:
        self.parser = Parser(JS_LANGUAGE)

    def parse(self, source: Union[str, bytes], label: Optional[str] = None) -> Tree:
        """Parse source text (or bytes) into a syntax tree.

        Args:
            source: JavaScript source
            label: Name used in log messages (usually the file name)

        Returns:
            Parsed Tree-sitter tree. Syntax errors are logged, not raised:
            the bundle may still be recoverable.
        """
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = self.parser.parse(source)
        if tree.root_node.has_error:
            logger.warning(f"Syntax errors while parsing {label or 'source'}, continuing with a partial tree")
        return tree

    def parse_file(self, file_path: Path) -> Tree:
        """Read and parse a file from disk."""
        return self.parse(file_path.read_bytes(), label=str(file_path))
