"""Tests for SourceRewriter and its helpers."""

import pytest

from bundles import MINIFIED_BUNDLE, object_bundle
from debundle_engine import Bundle
from debundle_engine.parser.nodes import walk
from debundle_engine.rewrite import apply_edits, relative_require


class TestRelativeRequire:
    """Require strings between output paths."""

    @pytest.mark.parametrize(
        "from_path,to_path,expected",
        [
            ("index.js", "2.js", "./2"),
            ("lib/a.js", "lib/b.js", "./b"),
            ("lib/a.js", "index.js", "../index"),
            ("index.js", "node_modules/foo/index.js", "foo"),
            ("index.js", "node_modules/foo/lib/bar.js", "foo/lib/bar"),
            ("index.js", "node_modules/@scope/pkg/index.js", "@scope/pkg"),
            ("node_modules/foo/lib/a.js", "node_modules/foo/index.js", "../index"),
            ("node_modules/foo/index.js", "node_modules/bar/index.js", "bar"),
        ],
    )
    def test_relative_require(self, from_path, to_path, expected) -> None:
        assert relative_require(from_path, to_path) == expected


class TestApplyEdits:
    """Splicing edits into node text."""

    def test_edits_applied_in_order(self, parse) -> None:
        root = parse("a(b, c);")
        call = next(node for node in walk(root) if node.type == "call_expression")
        b, c = [node for node in walk(call) if node.type == "identifier"][1:]
        edits = [(c.start_byte, c.end_byte, "see"), (b.start_byte, b.end_byte, "bee")]
        assert apply_edits(call, edits) == "a(bee, see)"

    def test_edits_outside_node_ignored(self, parse) -> None:
        root = parse("x; a(b);")
        call = next(node for node in walk(root) if node.type == "call_expression")
        assert apply_edits(call, [(0, 1, "y")]) == "a(b)"


class TestSourceRewriter:
    """End to end module rewriting."""

    def test_minified_modules(self, write_file) -> None:
        bundle = Bundle(write_file(MINIFIED_BUNDLE))
        entry = bundle.rewrite(bundle.get_module(0))
        assert entry.path == "index.js"
        assert entry.code == 'var r=require("./1");\nmodule.exports=r'
        assert bundle.rewrite(bundle.get_module(1)).code == 'module.exports="hi"'

    def test_rewrite_is_repeatable(self, write_file) -> None:
        bundle = Bundle(write_file(MINIFIED_BUNDLE))
        module = bundle.get_module(0)
        assert bundle.rewrite(module).code == bundle.rewrite(module).code

    def test_rewritten_require_points_at_target(self, write_file) -> None:
        source = object_bundle({1: "__webpack_require__(2)", 2: "", 3: "__webpack_require__(1)"}, entry=1)
        bundle = Bundle(write_file(source), {"known_paths": {3: "./deep/dir/three"}})
        module = bundle.get_module(3)
        assert module.path == "deep/dir/three.js"
        assert bundle.rewrite(module).code == 'require("../../index")'

    def test_known_package_path(self, write_file) -> None:
        source = object_bundle({1: "__webpack_require__(2)", 2: ""}, entry=1)
        bundle = Bundle(write_file(source), {"known_paths": {1: "./foo/bar/baz/index", 2: "foo"}})
        assert bundle.rewrite(bundle.get_module(1)).code == 'require("foo")'

    def test_dangling_require_left_untouched(self, write_file) -> None:
        source = object_bundle({1: "__webpack_require__(99); __webpack_require__(2)", 2: ""}, entry=1)
        bundle = Bundle(write_file(source))
        result = bundle.rewrite(bundle.get_module(1))
        assert result.code == 'require(99);\nrequire("./2")'
        assert result.unresolved == [99]

    def test_parameters_renamed_without_touching_shadows(self, write_file) -> None:
        source = (
            "!function(e){function n(r){var o={exports:{}};return e[r].call(o.exports,o,o.exports,n),o.exports}"
            "n(n.s=0)}([function(e,t,n){t.a=[1].map(function(n){return n*2});e.exports.b={e}}]);"
        )
        bundle = Bundle(write_file(source))
        code = bundle.rewrite(bundle.get_module(0)).code
        assert code == "exports.a=[1].map(function(n){return n*2});\nmodule.exports.b={e: module}"

    def test_mangled_exports_key(self, write_file) -> None:
        source = (
            "!function(e){function n(r){var o={x:{}};return e[r].call(o.x,o,o.x,n),o.x}"
            "n(n.s=0)}([function(e,t){e.x=5}]);"
        )
        bundle = Bundle(write_file(source))
        assert bundle.rewrite(bundle.get_module(0)).code == "module.exports=5"

    def test_arrow_expression_body(self, write_file) -> None:
        source = (
            "!function(e){function n(r){var o={exports:{}};return e[r].call(o.exports,o,o.exports,n),o.exports}"
            "n(n.s=0)}([(e,t,n)=>n(1),function(e){e.exports=1}]);"
        )
        bundle = Bundle(write_file(source))
        assert bundle.rewrite(bundle.get_module(0)).code == 'module.exports = require("./1");'

    def test_comment_prepended(self, write_file) -> None:
        bundle = Bundle(write_file(MINIFIED_BUNDLE))
        module = bundle.get_module(1)
        module.comment = "Greeting"
        assert bundle.rewrite(module).code == '/*\nGreeting\n*/\nmodule.exports="hi"'

    def test_comments_in_body_kept(self, write_file) -> None:
        source = object_bundle({0: "// entry\nmodule.exports = 1;"})
        bundle = Bundle(write_file(source))
        assert bundle.rewrite(bundle.get_module(0)).code == "// entry\nmodule.exports = 1;"
