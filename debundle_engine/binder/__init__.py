"""Binding infrastructure: resolve closure parameters to their use sites."""

from .scope import Binding, ScopeBinder, pattern_names

__all__ = [
    "Binding",
    "ScopeBinder",
    "pattern_names",
]
