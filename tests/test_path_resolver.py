"""Tests for PathResolver."""

import pytest

from debundle_engine.errors import PathResolutionError
from debundle_engine.graph import PathResolver, as_require_string, fold_steps
from debundle_engine.models import ModuleTreeNode, PathStep


def make_tree(children):
    """``{1: [2, 3], 2: []}`` -> module tree"""
    tree = {module_id: ModuleTreeNode(id=module_id, children=list(kids)) for module_id, kids in children.items()}
    for module_id, kids in children.items():
        for kid in kids:
            tree.setdefault(kid, ModuleTreeNode(id=kid, bare=True)).parents.append(module_id)
    return tree


def steps(*require_strings):
    return [PathStep(index, value) for index, value in enumerate(require_strings)]


class TestFoldSteps:
    """Folding require chains into paths."""

    @pytest.mark.parametrize(
        "require_strings,expected",
        [
            ((), "index"),
            (("./foo",), "foo"),
            (("./foo/bar", "./baz"), "foo/baz"),
            (("uuid", "./foo"), "node_modules/uuid/foo"),
            (("uuid", "./bar/foo", "./baz"), "node_modules/uuid/bar/baz"),
            (("abc", "./foo", "uuid", "./bar"), "node_modules/uuid/bar"),
            (("react",), "node_modules/react/index"),
            (("../foo",), "../foo"),
        ],
    )
    def test_fold(self, require_strings, expected) -> None:
        assert fold_steps(steps(*require_strings)) == expected


@pytest.mark.parametrize(
    "path,expected",
    [("lib/one.js", "./lib/one"), ("./lib/one", "./lib/one"), ("../up.js", "../up"), ("index", "./index")],
)
def test_as_require_string(path, expected) -> None:
    assert as_require_string(path) == expected


class TestResolve:
    """Path assignment over module trees."""

    def test_entry_is_index_and_children_relative(self) -> None:
        resolver = PathResolver(make_tree({1: [2], 2: []}), entry_id=1)
        assert resolver.resolve(1) == "index"
        assert resolver.resolve(2) == "2"

    def test_known_paths(self) -> None:
        resolver = PathResolver(
            make_tree({1: [2], 2: []}),
            entry_id=1,
            known_paths={1: "./foo/bar/baz/index", 2: "foo"},
        )
        assert resolver.resolve(1) == "foo/bar/baz/index"
        assert resolver.resolve(2) == "node_modules/foo/index"

    def test_known_path_restarts_chain(self) -> None:
        resolver = PathResolver(make_tree({1: [2], 2: [3], 3: []}), entry_id=1, known_paths={2: "./lib/util.js"})
        assert resolver.resolve(2) == "lib/util"
        assert resolver.resolve(3) == "lib/3"

    def test_package_children_stay_in_package(self) -> None:
        resolver = PathResolver(make_tree({1: [2], 2: [3], 3: []}), entry_id=1, known_paths={2: "lodash"})
        assert resolver.resolve(3) == "node_modules/lodash/3"

    def test_unreachable_module(self) -> None:
        resolver = PathResolver(make_tree({1: [], 5: []}), entry_id=1)
        assert resolver.resolve(5) is None
        assert resolver.resolve_all() == {1: "index"}

    def test_unreachable_module_with_known_path(self) -> None:
        resolver = PathResolver(make_tree({1: [], 5: []}), entry_id=1, known_paths={5: "./orphan"})
        assert resolver.resolve(5) == "orphan"

    def test_bare_nodes_not_resolved(self) -> None:
        resolver = PathResolver(make_tree({1: [99]}), entry_id=1)
        assert resolver.resolve_all() == {1: "index"}

    def test_cycle_terminates_and_is_recorded(self) -> None:
        resolver = PathResolver(make_tree({1: [2], 2: [1]}), entry_id=1)
        assert resolver.resolve_all() == {1: "index", 2: "2"}
        assert resolver.incomplete == [(1, 2, 1)]

    def test_first_path_wins_and_ambiguity_reported(self) -> None:
        tree = make_tree({1: [2, 3], 2: [4], 3: [4], 4: []})
        resolver = PathResolver(tree, entry_id=1, known_paths={2: "./a/b", 3: "./c/d"})
        assert resolver.resolve(4) == "a/4"
        assert resolver.ambiguous[4] == ["a/4", "c/4"]
        assert len(resolver.candidates[4]) == 2

    def test_resolution_is_idempotent(self) -> None:
        tree = make_tree({1: [2, 3], 2: [3], 3: [1]})
        resolver = PathResolver(tree, entry_id=1)
        first = resolver.resolve_all()
        assert resolver.resolve_all() == first
        assert PathResolver(tree, entry_id=1).resolve_all() == first

    def test_escaping_path_is_fatal(self) -> None:
        resolver = PathResolver(make_tree({1: [2], 2: []}), entry_id=1, known_paths={2: "../outside"})
        with pytest.raises(PathResolutionError) as exc_info:
            resolver.resolve(2)
        message = str(exc_info.value)
        assert "module 2" in message
        assert "- ../outside (module 2)" in message

    def test_missing_entry(self) -> None:
        resolver = PathResolver(make_tree({1: []}), entry_id=7)
        assert resolver.resolve_all() == {}
