"""Parsing helpers for repeatable ``ID=VALUE`` options."""

from typing import Dict, Tuple

import click

from debundle_engine.models import ModuleId
from debundle_engine.parser.nodes import normalize_module_id


def parse_pairs(pairs: Tuple[str, ...], option_name: str) -> Dict[ModuleId, str]:
    """``("1=./foo", "2=react")`` -> ``{1: "./foo", 2: "react"}``"""
    parsed: Dict[ModuleId, str] = {}
    for pair in pairs:
        module_id, sep, value = pair.partition("=")
        if not sep or not module_id or not value:
            raise click.BadParameter(f"expected ID=VALUE, got {pair!r}", param_hint=option_name)
        parsed[normalize_module_id(module_id.strip())] = value.strip()
    return parsed
