from .bundle import Bundle, ParseHooks
from .chunk import Chunk, find_chunk_table
from .metadata import BundleMetadata, ModuleOverride, read_metadata, write_metadata
from .module import Module
from .source import ChunkSource
from .writer import WriteReport, write_bundle, write_module

__all__ = [
    "Bundle",
    "ParseHooks",
    "Chunk",
    "find_chunk_table",
    "BundleMetadata",
    "ModuleOverride",
    "read_metadata",
    "write_metadata",
    "Module",
    "ChunkSource",
    "WriteReport",
    "write_bundle",
    "write_module",
]
