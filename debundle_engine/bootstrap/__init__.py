from .locator import BootstrapLocator, WebpackBootstrap, parse_module_table
from .roles import ClosureRoleResolver

__all__ = [
    "BootstrapLocator",
    "WebpackBootstrap",
    "parse_module_table",
    "ClosureRoleResolver",
]
