"""Tests for inferring the module closure calling convention."""

import pytest

from bundles import MINIFIED_BUNDLE
from debundle_engine.bootstrap import BootstrapLocator, ClosureRoleResolver
from debundle_engine.bootstrap.locator import is_module_call
from debundle_engine.errors import ClosureRoleError
from debundle_engine.parser.nodes import walk


def module_call(root):
    return next(node for node in walk(root) if is_module_call(node))


class TestClosureRoleResolver:
    """Role assignment by call-site shape."""

    def test_standard_order(self, parse) -> None:
        bootstrap = BootstrapLocator().locate(parse(MINIFIED_BUNDLE))
        roles = ClosureRoleResolver().resolve(bootstrap.module_call)
        assert roles.param_roles == ["module", "exports", "require"]
        assert roles.module_exports_key == "exports"

    def test_reordered_parameters(self, parse) -> None:
        roles = ClosureRoleResolver().resolve(module_call(parse("m[i].call(o.exports, n, o, o.exports)")))
        assert roles.param_roles == ["require", "module", "exports"]
        assert roles.index_of("require") == 0

    def test_mangled_exports_key(self, parse) -> None:
        roles = ClosureRoleResolver().resolve(module_call(parse("m[i].call(o.e, o, o.e, n)")))
        assert roles.module_exports_key == "e"

    def test_unrecognized_convention(self, parse) -> None:
        with pytest.raises(ClosureRoleError) as exc_info:
            ClosureRoleResolver().resolve(module_call(parse("m[i].call(o.exports, a, b, c)")))
        assert "module" in str(exc_info.value)

    def test_two_member_arguments(self, parse) -> None:
        with pytest.raises(ClosureRoleError):
            ClosureRoleResolver().resolve(module_call(parse("m[i].call(o.exports, o, o.exports, x.y)")))
