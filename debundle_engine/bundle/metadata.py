"""Metadata file schema - the contract between a bundle and its operator.

The file lives next to the bundle as ``<bundle file name>.info``. It holds the
options that differ from the defaults plus per-module path/comment overrides,
so a user can iterate on a debundle by editing one JSON file.
"""

import json
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from debundle_engine.errors import MetadataError
from debundle_engine.models import METADATA_FILE_SUFFIX, METADATA_VERSION, BundleOptions, ModuleId
from debundle_engine.parser.nodes import normalize_module_id


class ModuleOverride(BaseModel):
    """Operator overrides for one module."""

    id: ModuleId
    path: Optional[str] = None
    comment: Optional[str] = None

    @field_validator("id", mode="after")
    @classmethod
    def _normalize_id(cls, value: ModuleId) -> ModuleId:
        return normalize_module_id(value)


class BundleMetadata(BaseModel):
    """Complete metadata file."""

    version: int = Field(default=METADATA_VERSION)
    options: BundleOptions = Field(default_factory=BundleOptions)
    modules: List[ModuleOverride] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != METADATA_VERSION:
            raise ValueError(f"unsupported metadata version {value}, expected {METADATA_VERSION}")
        return value

    def override_for(self, module_id: ModuleId) -> Optional[ModuleOverride]:
        for override in self.modules:
            if override.id == module_id:
                return override
        return None


def metadata_path_for(bundle_path: Path) -> Path:
    return bundle_path.with_name(bundle_path.name + METADATA_FILE_SUFFIX)


def read_metadata(path: Path) -> Optional[BundleMetadata]:
    """Load a metadata file; None when it does not exist.

    Raises:
        MetadataError: if the file is not valid JSON or does not match the schema
    """
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        metadata = BundleMetadata.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise MetadataError(
            f"Metadata file {path} is malformed",
            details=[str(e), "Fix or delete the file to regenerate it."],
            context={"path": str(path)},
        ) from e

    logger.info(f"Read metadata from {path}")
    return metadata


def write_metadata(path: Path, metadata: BundleMetadata) -> Path:
    """Persist metadata, keeping only options that differ from their defaults."""
    payload = {
        "version": metadata.version,
        "options": metadata.options.model_dump(mode="json", exclude_defaults=True),
        "modules": [override.model_dump(mode="json", exclude_none=True) for override in metadata.modules],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.debug(f"Wrote metadata to {path}")
    return path
