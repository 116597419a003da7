"""Exceptions raised by the debundle engine.

Every error carries a short message, optional detail lines and a context dict.
The string form joins all three so the CLI can print it as-is.
"""

import json
from typing import Any, Dict, Iterable, Optional


class DebundleError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, details: Iterable[str] = (), context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = list(details)
        self.context = context or {}

        parts = [message]
        if self.details:
            parts.append("\nDetails: " + "\n".join(self.details))
        if self.context:
            parts.append(f"\nContext: {json.dumps(self.context, default=str)}")
        super().__init__("\n".join(parts))


# ============================================================================
# Structural detection
# ============================================================================


class BootstrapNotFoundError(DebundleError):
    """No function in the program matches the module-loading runtime shape."""


class ModuleTableParsingError(DebundleError):
    """The module table next to the bootstrap is neither an array nor an object."""


class ClosureRoleError(DebundleError):
    """The module invocation call site does not follow the module/exports/require convention."""


# ============================================================================
# Extraction contract
# ============================================================================


class RequireHasMultipleArgumentsError(DebundleError):
    """A require call was made with more than one argument."""


# ============================================================================
# Resolution
# ============================================================================


class PathResolutionError(DebundleError):
    """A module path could not be resolved inside the output root."""


class UnresolvedModuleError(DebundleError):
    """A module id does not correspond to any module in the bundle."""


class ChunkDepthExceededError(DebundleError):
    """Lazy chunk discovery went deeper than the configured bound."""


# ============================================================================
# I/O
# ============================================================================


class ChunkNotFoundError(DebundleError):
    """A chunk could be read neither from disk nor over HTTP."""


class MetadataError(DebundleError):
    """The metadata file next to the bundle is malformed."""
