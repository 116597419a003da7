"""Work out which module closure parameter is ``module``, ``exports`` and ``require``."""

from typing import List, Optional

from loguru import logger
from tree_sitter import Node as TSNode

from debundle_engine.errors import ClosureRoleError
from debundle_engine.models import ClosureRoles
from debundle_engine.parser.nodes import call_arguments, member_property_name, node_text


class ClosureRoleResolver:
    """Infer the module closure calling convention from the runtime's invocation call.

    At the call site ``modules[id].call(x.exports, a, b, c)``:

    - the ``this`` argument is always ``<x>.<exportsKey>``;
    - the only member-expression argument is ``exports``;
    - the identifier argument named ``<x>`` is ``module``;
    - the remaining one is ``require``.

    The convention is bundle-global, so this runs once per bundle.
    """

    def resolve(self, module_call: TSNode) -> ClosureRoles:
        args = call_arguments(module_call)
        if len(args) != 4:
            raise self._error(module_call, f"expected 4 arguments to .call(), found {len(args)}")

        this_value, *params = args
        if this_value.type != "member_expression":
            raise self._error(module_call, "the `this` argument is not a member expression")

        module_name = node_text(this_value.child_by_field_name("object"))
        exports_key = member_property_name(this_value)

        roles: List[Optional[str]] = [None, None, None]

        exports_indexes = [i for i, arg in enumerate(params) if arg.type == "member_expression"]
        if len(exports_indexes) != 1:
            raise self._error(module_call, "could not identify a single `module.exports` argument")
        roles[exports_indexes[0]] = "exports"

        module_indexes = [
            i for i, arg in enumerate(params) if arg.type == "identifier" and node_text(arg) == module_name
        ]
        if len(module_indexes) != 1:
            raise self._error(module_call, f"could not identify the `module` argument (`{module_name}`)")
        roles[module_indexes[0]] = "module"

        remaining = [i for i, role in enumerate(roles) if role is None]
        if len(remaining) != 1 or params[remaining[0]].type != "identifier":
            raise self._error(module_call, "could not identify the `require` argument")
        roles[remaining[0]] = "require"

        logger.debug(f"Module closure parameters: {roles} (exports key `{exports_key}`)")
        return ClosureRoles(param_roles=roles, module_exports_key=exports_key or "exports")

    @staticmethod
    def _error(module_call: TSNode, reason: str) -> ClosureRoleError:
        return ClosureRoleError(
            f"Unrecognized module closure calling convention: {reason}",
            details=[
                "Only bundles whose runtime passes module, module.exports and require to each",
                "module closure can be debundled.",
            ],
            context={"call": module_call.text.decode("utf-8")[:200]},
        )
