"""
Core models for the debundle engine.

Dataclasses describe the analysis results (edges, tree nodes, path steps);
pydantic models describe the operator-facing configuration.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator
from tree_sitter import Node as TSNode

from debundle_engine.parser.nodes import normalize_module_id

ModuleId = Union[int, str]
ChunkId = Union[int, str]

DEFAULT_CHUNK = "default"
DEFAULT_CHUNK_FILE_NAME = "default.bundle.js"
METADATA_FILE_SUFFIX = ".info"
METADATA_VERSION = 1


# ============================================================================
# Dependency Models
# ============================================================================


class DependencyKind(str, Enum):
    """Shapes of ``require`` usage that declare a dependency."""

    DIRECT = "direct"  # require(4)
    CHUNK = "chunk"  # require.e(1)[.then(require.bind(null, 4))]
    INTEROP = "interop"  # require.t.bind(null, 4)


@dataclass
class DependencyEdge:
    """One statically discovered use of the require mechanism inside a module."""

    kind: DependencyKind
    module_id: Optional[ModuleId]
    chunk_id: Optional[ChunkId] = None
    literal: Optional[TSNode] = field(default=None, repr=False, compare=False)

    @property
    def is_chunk_only(self) -> bool:
        return self.kind == DependencyKind.CHUNK and self.module_id is None


@dataclass
class ClosureRoles:
    """Calling convention of module closures, shared by every module in a bundle."""

    param_roles: List[Optional[str]]  # e.g. ["module", "exports", "require"]
    module_exports_key: str = "exports"

    def index_of(self, role: str) -> Optional[int]:
        try:
            return self.param_roles.index(role)
        except ValueError:
            return None


# ============================================================================
# Graph Models
# ============================================================================


@dataclass
class ModuleTreeNode:
    """Parent/child relationships of one module id."""

    id: ModuleId
    parents: List[ModuleId] = field(default_factory=list)
    children: List[ModuleId] = field(default_factory=list)
    bare: bool = False  # referenced by an edge but never instantiated


@dataclass(frozen=True)
class PathStep:
    """One hop of a require path: the module reached and the string that reached it."""

    module_id: ModuleId
    require_string: str


# ============================================================================
# Configuration
# ============================================================================


def _normalize_keys(value: Dict[Any, Any]) -> Dict[Any, Any]:
    return {normalize_module_id(key): item for key, item in (value or {}).items()}


class BundleOptions(BaseModel):
    """Operator-facing options for one bundle.

    Only options that differ from these defaults are persisted in the
    metadata file.
    """

    dist_path: str = Field(default="./dist", description="Output root for reconstructed files")
    chunk_file_name_suffix: str = Field(default=".bundle.js", description="Suffix appended to chunk ids")
    public_path_prefix: str = Field(default="", description="Origin prepended to the bootstrap public path")
    chunk_http_request_options: Dict[str, Any] = Field(
        default_factory=dict, description="Keyword arguments passed to requests.get for remote chunks"
    )
    chunk_name_mapping: Dict[str, str] = Field(default_factory=dict, description="Chunk id -> file name overrides")
    known_paths: Dict[ModuleId, str] = Field(default_factory=dict, description="Module id -> path overrides")
    packages: Dict[ModuleId, str] = Field(default_factory=dict, description="Module id -> adopted package name")
    entrypoint_module_id: Optional[ModuleId] = Field(default=None, description="Entry module override")
    bootstrap_path: Optional[List[Union[int, str]]] = Field(
        default=None, description="AST path to the bootstrap function when detection fails"
    )
    module_table_path: Optional[List[Union[int, str]]] = Field(
        default=None, description="AST path to the module table when detection fails"
    )
    max_chunk_depth: int = Field(default=32, ge=1, description="Bound on lazily discovered chunk nesting")

    @field_validator("known_paths", "packages", mode="after")
    @classmethod
    def _module_id_keys(cls, value: Dict[Any, Any]) -> Dict[Any, Any]:
        return _normalize_keys(value)

    @field_validator("chunk_name_mapping", mode="before")
    @classmethod
    def _chunk_id_keys(cls, value: Dict[Any, Any]) -> Dict[str, Any]:
        return {str(key): item for key, item in (value or {}).items()}

    @field_validator("entrypoint_module_id", mode="after")
    @classmethod
    def _entry_id(cls, value: Optional[ModuleId]) -> Optional[ModuleId]:
        return None if value is None else normalize_module_id(value)

    def chunk_file_name(self, chunk_id: ChunkId) -> str:
        return self.chunk_name_mapping.get(str(chunk_id)) or f"{chunk_id}{self.chunk_file_name_suffix}"
