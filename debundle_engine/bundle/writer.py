from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from debundle_engine.bundle.bundle import Bundle
from debundle_engine.bundle.module import Module
from debundle_engine.errors import PathResolutionError
from debundle_engine.models import ModuleId
from debundle_engine.rewrite import RewrittenModule


@dataclass
class WriteReport:
    """Files written for one bundle plus the requires that could not be linked."""

    dist_path: Path
    files: List[Path] = field(default_factory=list)
    unresolved: Dict[ModuleId, List[ModuleId]] = field(default_factory=dict)


def write_module(
    bundle: Bundle,
    module: Module,
    dist_path: Path,
    paths: Optional[Dict[ModuleId, str]] = None,
) -> Tuple[Path, RewrittenModule]:
    """Rewrite one module and write it under ``dist_path``.

    Returns:
        The written file and the rewrite it holds
    """
    rewritten = bundle.rewrite(module, paths)

    root = dist_path.resolve()
    file_path = (root / rewritten.path).resolve()
    if root not in file_path.parents:
        raise PathResolutionError(
            f"Module {module.id} would be written outside of {root}",
            details=[f"Its path is {rewritten.path}. Fix it in known_paths or the module overrides."],
            context={"module_id": module.id, "path": rewritten.path},
        )

    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        f.write(rewritten.code)

    logger.debug(f"Wrote module {module.id} to {file_path}")
    return file_path, rewritten


def write_bundle(bundle: Bundle, dist_path: Optional[Union[str, Path]] = None, workers: int = 1) -> WriteReport:
    """Write every module of a bundle to disk.

    Relative ``dist_path`` values (including the ``dist_path`` option) are
    resolved against the bundle's directory.
    """
    bundle.parse()
    dist = Path(dist_path or bundle.options.dist_path)
    if not dist.is_absolute():
        dist = bundle.path.parent / dist
    dist.mkdir(parents=True, exist_ok=True)

    modules = list(bundle.modules.values())
    logger.info(f"Writing {len(modules)} modules to {dist}")

    paths = bundle.module_paths()
    report = WriteReport(dist_path=dist)
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda m: write_module(bundle, m, dist, paths), modules))
    else:
        results = [write_module(bundle, module, dist, paths) for module in modules]

    for file_path, rewritten in results:
        report.files.append(file_path)
        if rewritten.unresolved:
            report.unresolved[rewritten.module_id] = rewritten.unresolved

    logger.info(f"Wrote {len(report.files)} files to {dist}")
    return report
