"""The root aggregate: one bundle file, its chunks and its modules."""

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Set, Tuple, Union

from loguru import logger
from pydantic import ValidationError
from tree_sitter import Tree

from debundle_engine.bootstrap import BootstrapLocator, ClosureRoleResolver, WebpackBootstrap
from debundle_engine.bundle.chunk import Chunk
from debundle_engine.bundle.metadata import BundleMetadata, metadata_path_for, read_metadata, write_metadata
from debundle_engine.bundle.module import Module
from debundle_engine.bundle.source import ChunkSource
from debundle_engine.errors import ChunkDepthExceededError, MetadataError, UnresolvedModuleError
from debundle_engine.graph import ModuleGraphBuilder, PathResolver, as_require_string
from debundle_engine.models import (
    DEFAULT_CHUNK,
    DEFAULT_CHUNK_FILE_NAME,
    BundleOptions,
    ChunkId,
    ClosureRoles,
    ModuleId,
    ModuleTreeNode,
)
from debundle_engine.parser import TreeSitterParser
from debundle_engine.parser.nodes import normalize_module_id
from debundle_engine.rewrite import RewrittenModule, SourceRewriter

# Changing one of these after parsing only requires paths to be assigned again
PATH_OPTIONS = frozenset({"known_paths", "packages", "entrypoint_module_id", "dist_path"})

ParseHook = Callable[["Bundle"], None]


@dataclass
class ParseHooks:
    """Callables run around parsing, each receiving the bundle.

    ``pre_parse`` runs before the bootstrap is located. ``post_parse`` runs
    once modules, the module tree and paths exist, before metadata is written.
    """

    pre_parse: Optional[ParseHook] = None
    post_parse: Optional[ParseHook] = None


class Bundle:
    """A webpack bundle on disk and everything recovered from it.

    Options come from the metadata file next to the bundle (if any), with
    explicitly passed options taking precedence. Analysis is lazy: ``parse()``
    runs on first access to modules and is idempotent.

    Args:
        path: Bundle file, absolute or relative to the working directory
        options: Options overriding the metadata file
        parser: Parser to reuse across bundles
        hooks: Callables run before and after parsing
    """

    def __init__(
        self,
        path: Union[str, Path],
        options: Optional[Union[BundleOptions, Dict[str, Any]]] = None,
        parser: Optional[TreeSitterParser] = None,
        hooks: Optional[ParseHooks] = None,
    ) -> None:
        self.path = Path(path).resolve()
        self.parser = parser or TreeSitterParser()
        self.hooks = hooks or ParseHooks()

        self.metadata_path = metadata_path_for(self.path)
        self._metadata_existed = self.metadata_path.exists()
        self.metadata: BundleMetadata = read_metadata(self.metadata_path) or BundleMetadata()

        explicit = options.model_dump(exclude_defaults=True) if isinstance(options, BundleOptions) else options or {}
        self.options = self._validate_options({**self.metadata.options.model_dump(exclude_defaults=True), **explicit})
        self.metadata.options = self.options

        self.chunks: List[Chunk] = []
        self.tree: Optional[Tree] = None
        self.roles: Optional[ClosureRoles] = None
        self.module_tree: Dict[ModuleId, ModuleTreeNode] = {}
        self.resolver: Optional[PathResolver] = None
        self._bootstrap: Optional[WebpackBootstrap] = None
        self._chunk_source: Optional[ChunkSource] = None
        self._pending: Deque[Tuple[ChunkId, int]] = deque()
        self._requested: Set[ChunkId] = set()
        self._parsed = False

    def __repr__(self) -> str:
        return f"Bundle(path={str(self.path)!r}, chunks={len(self.chunks)}, parsed={self._parsed})"

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    @property
    def bootstrap(self) -> WebpackBootstrap:
        """The runtime function, located once and memoized."""
        if self._bootstrap is None:
            if self.tree is None:
                logger.info(f"Reading bundle {self.path}")
                self.tree = self.parser.parse_file(self.path)
            locator = BootstrapLocator(metadata_file=str(self.metadata_path))
            self._bootstrap = locator.locate(self.tree.root_node, self.options.bootstrap_path)
        return self._bootstrap

    @property
    def entrypoint_module_id(self) -> ModuleId:
        if self.options.entrypoint_module_id is not None:
            return self.options.entrypoint_module_id
        from_bootstrap = self.bootstrap.entrypoint_module_id
        return from_bootstrap if from_bootstrap is not None else 0

    @property
    def chunk_source(self) -> ChunkSource:
        if self._chunk_source is None:
            self._chunk_source = ChunkSource(
                self.path.parent,
                public_path_prefix=self.options.public_path_prefix,
                public_path=self.bootstrap.public_path,
                request_options=self.options.chunk_http_request_options,
            )
        return self._chunk_source

    def parse(self) -> "Bundle":
        """Recover chunks, modules and paths. Later calls are no-ops."""
        if self._parsed:
            return self

        if self.hooks.pre_parse is not None:
            logger.debug("Running pre_parse hook")
            self.hooks.pre_parse(self)

        bootstrap = self.bootstrap
        self.roles = ClosureRoleResolver().resolve(bootstrap.module_call)

        default_chunk = Chunk(self, [DEFAULT_CHUNK], DEFAULT_CHUNK_FILE_NAME)
        default_chunk.add_modules(bootstrap.modules(self.tree.root_node, self.options.module_table_path), self.roles)
        self.chunks = [default_chunk]
        self._requested = {DEFAULT_CHUNK}
        self._queue_chunk_requests(default_chunk)
        self._drain_chunks()

        self._apply_overrides()
        self.module_tree = ModuleGraphBuilder().build((m.id, m.dependencies) for m in self.iter_modules())
        self._assign_paths()

        self._parsed = True
        logger.info(f"Parsed {len(self.modules)} modules in {len(self.chunks)} chunks")

        if self.hooks.post_parse is not None:
            logger.debug("Running post_parse hook")
            self.hooks.post_parse(self)

        if not self._metadata_existed:
            self.write_metadata()
        return self

    def request_chunk(self, chunk_id: ChunkId, depth: int, from_chunk: Optional[Chunk] = None) -> bool:
        """Queue a chunk for loading; returns False when it is already known or pending."""
        chunk_id = normalize_module_id(chunk_id)
        if chunk_id == DEFAULT_CHUNK or chunk_id in self._requested:
            return False
        if from_chunk is not None and chunk_id in from_chunk.ids:
            return False
        if any(chunk_id in chunk.ids for chunk in self.chunks):
            return False

        self._requested.add(chunk_id)
        self._pending.append((chunk_id, depth))
        logger.debug(f"Queued chunk {chunk_id} (depth {depth})")
        return True

    def _queue_chunk_requests(self, chunk: Chunk) -> None:
        for module in chunk.modules.values():
            for edge in module.chunk_requests:
                self.request_chunk(edge.chunk_id, chunk.depth + 1, from_chunk=chunk)

    def _drain_chunks(self) -> None:
        while self._pending:
            chunk_id, depth = self._pending.popleft()
            if depth > self.options.max_chunk_depth:
                raise ChunkDepthExceededError(
                    f"Chunk {chunk_id} is nested {depth} levels deep, more than max_chunk_depth "
                    f"({self.options.max_chunk_depth})",
                    details=['Raise "max_chunk_depth" in the metadata file if the bundle really is this deep.'],
                    context={"chunk_id": chunk_id, "depth": depth},
                )

            file_name = self.options.chunk_file_name(chunk_id)
            tree = self.parser.parse(self.chunk_source.load(file_name), label=file_name)
            chunk = Chunk.from_tree(self, file_name, tree, self.roles, depth=depth)
            self.chunks.append(chunk)
            self._queue_chunk_requests(chunk)

    def _apply_overrides(self) -> None:
        for override in self.metadata.modules:
            module = self.find_module(override.id)
            if module is None:
                logger.warning(f"Metadata mentions module {override.id}, which is not in the bundle")
                continue
            if override.comment:
                module.comment = override.comment

    def _assign_paths(self) -> None:
        """Reset every module path, run path resolution, then adopt packages."""
        for module in self.iter_modules():
            override = self.metadata.override_for(module.id)
            module.reset_path(override.path if override else None)

        # Metadata path overrides act as known paths; known_paths wins
        known_paths = {
            override.id: as_require_string(override.path) for override in self.metadata.modules if override.path
        }
        known_paths.update(self.options.known_paths)

        self.resolver = PathResolver(
            self.module_tree,
            self.entrypoint_module_id,
            known_paths=known_paths,
            output_root=self.options.dist_path,
        )
        for module_id, module_path in self.resolver.resolve_all().items():
            module = self.find_module(module_id)
            if module is not None:
                module.path = f"{module_path}.js"

        for module_id, name in self.options.packages.items():
            module = self.find_module(module_id)
            if module is None:
                logger.warning(f"Cannot adopt module {module_id} as package {name}: no such module")
                continue
            module.package_name = name

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def iter_modules(self) -> Iterator[Module]:
        seen: Set[ModuleId] = set()
        for chunk in self.chunks:
            for module in chunk.modules.values():
                if module.id not in seen:
                    seen.add(module.id)
                    yield module

    @property
    def modules(self) -> Dict[ModuleId, Module]:
        """Every module of every chunk, keyed by id."""
        self.parse()
        return {module.id: module for module in self.iter_modules()}

    def find_module(self, module_id: ModuleId) -> Optional[Module]:
        module_id = normalize_module_id(module_id)
        for chunk in self.chunks:
            if module_id in chunk.modules:
                return chunk.modules[module_id]
        return None

    def get_module(self, id_or_path: Union[ModuleId, str]) -> Module:
        """Look a module up by id or by output path (with or without ``.js``).

        Raises:
            UnresolvedModuleError: if nothing matches
        """
        self.parse()
        module = self.find_module(id_or_path)
        if module is None and isinstance(id_or_path, str):
            wanted = id_or_path if id_or_path.endswith(".js") else f"{id_or_path}.js"
            module = next((m for m in self.iter_modules() if m.path == wanted), None)
        if module is None:
            raise UnresolvedModuleError(
                f"No module {id_or_path!r} in bundle {self.path.name}",
                context={"module": id_or_path, "known_modules": len(self.modules)},
            )
        return module

    def get_chunk(self, chunk_id: Union[ChunkId, str]) -> Optional[Chunk]:
        """Look a chunk up by id, by file name, or by file name up to the first dot."""
        self.parse()
        normalized = normalize_module_id(chunk_id)
        for chunk in self.chunks:
            if normalized in chunk.ids:
                return chunk
        for chunk in self.chunks:
            if chunk.file_name == str(chunk_id) or chunk.file_name.split(".", 1)[0] == str(chunk_id):
                return chunk
        return None

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def module_paths(self) -> Dict[ModuleId, str]:
        """Module id -> output path (with ``.js``) for every module."""
        self.parse()
        return {m.id: m.path for m in self.iter_modules()}

    def rewrite(self, module: Module, paths: Optional[Dict[ModuleId, str]] = None) -> RewrittenModule:
        """Rewrite one module. Pass ``paths`` from ``module_paths()`` when rewriting many."""
        self.parse()
        if paths is None:
            paths = self.module_paths()
        return SourceRewriter(self.roles.module_exports_key).rewrite(module, paths)

    def set_option(self, key: str, value: Any) -> BundleOptions:
        """Change one option, validate it and persist it to the metadata file.

        Raises:
            MetadataError: if the key is unknown or the value is invalid
        """
        if key not in BundleOptions.model_fields:
            raise MetadataError(f"Unknown option {key!r}", context={"known_options": sorted(BundleOptions.model_fields)})

        self.options = self._validate_options({**self.options.model_dump(), key: value})
        self.metadata.options = self.options
        self.write_metadata()

        if self._parsed:
            if key in PATH_OPTIONS:
                self._assign_paths()
            else:
                self._reset()
        return self.options

    def _reset(self) -> None:
        self._parsed = False
        self._bootstrap = None
        self._chunk_source = None
        self.chunks = []
        self._pending.clear()
        self._requested = set()

    def write_metadata(self) -> Path:
        return write_metadata(self.metadata_path, self.metadata)

    @staticmethod
    def _validate_options(data: Dict[str, Any]) -> BundleOptions:
        try:
            return BundleOptions.model_validate(data)
        except ValidationError as e:
            raise MetadataError("Invalid bundle options", details=[str(e)]) from e
