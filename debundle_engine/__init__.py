"""Recover the module graph of a webpack bundle and write it back out as files."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

from debundle_engine.bundle import Bundle, ParseHooks, WriteReport, write_bundle
from debundle_engine.models import BundleOptions


def debundle(
    bundle_path: Union[str, Path],
    options: Optional[Union[BundleOptions, Dict[str, Any]]] = None,
    dist_path: Optional[Union[str, Path]] = None,
    workers: int = 1,
    hooks: Optional[ParseHooks] = None,
) -> WriteReport:
    """Parse a bundle and write one file per module.

    Args:
        bundle_path: Root bundle file
        options: Options overriding the metadata file next to the bundle
        dist_path: Output directory (defaults to the ``dist_path`` option)
        workers: Number of threads used to write files
        hooks: Callables run before and after parsing

    Returns:
        WriteReport with the written files and unresolved requires
    """
    bundle = Bundle(bundle_path, options, hooks=hooks)
    bundle.parse()
    logger.info(f"Entry module: {bundle.entrypoint_module_id}")
    return write_bundle(bundle, dist_path=dist_path, workers=workers)


__all__ = ["Bundle", "BundleOptions", "ParseHooks", "WriteReport", "debundle", "write_bundle"]
