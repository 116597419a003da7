from pathlib import Path
from typing import Callable

import pytest

from debundle_engine.parser import TreeSitterParser


@pytest.fixture
def parser() -> TreeSitterParser:
    return TreeSitterParser()


@pytest.fixture
def parse(parser: TreeSitterParser) -> Callable:
    """Parse source text and return the program node."""

    def _parse(source: str):
        return parser.parse(source).root_node

    return _parse


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a file into tmp_path and return its path."""

    def _write(source: str, name: str = "main.bundle.js") -> Path:
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path

    return _write
