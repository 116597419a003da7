"""Tests for CLI commands."""

import sys
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from loguru import logger

from bundles import MINIFIED_BUNDLE, object_bundle
from debundle_cli.commands.options import parse_pairs
from debundle_cli.main import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """Commands point loguru at the runner's stderr; put it back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestUnpackCommand:
    """Tests for the unpack command."""

    def test_unpack(self, write_file, tmp_path) -> None:
        bundle_path = write_file(MINIFIED_BUNDLE)
        result = runner.invoke(cli, ["unpack", str(bundle_path), "--dist", str(tmp_path / "out")])

        assert result.exit_code == 0, result.output
        assert "Modules: 2" in result.output
        assert "Wrote 2 files" in result.output
        assert (tmp_path / "out" / "1.js").read_text() == 'module.exports="hi"'

    def test_known_paths_and_packages(self, write_file, tmp_path) -> None:
        bundle_path = write_file(object_bundle({0: "__webpack_require__(1);__webpack_require__(2)", 1: "", 2: ""}))
        result = runner.invoke(
            cli,
            [
                "unpack",
                str(bundle_path),
                "--dist",
                str(tmp_path / "out"),
                "--known-path",
                "1=./lib/one",
                "--package",
                "2=two",
                "--workers",
                "2",
            ],
        )

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out" / "lib" / "one.js").exists()
        assert (tmp_path / "out" / "node_modules" / "two" / "index.js").exists()
        assert (tmp_path / "out" / "index.js").read_text() == 'require("./lib/one");\nrequire("two")'

    def test_entry_option(self, write_file, tmp_path) -> None:
        bundle_path = write_file(object_bundle({0: "", 1: ""}))
        result = runner.invoke(cli, ["unpack", str(bundle_path), "--entry", "1", "--dist", str(tmp_path / "out")])
        assert result.exit_code == 0, result.output
        assert "Entry module: 1" in result.output

    def test_engine_error_aborts(self, write_file) -> None:
        bundle_path = write_file("console.log('not a bundle');")
        result = runner.invoke(cli, ["unpack", str(bundle_path)])
        assert result.exit_code != 0
        assert "❌" in result.output
        assert "webpackBootstrap" in result.output

    def test_bad_pair(self, write_file) -> None:
        result = runner.invoke(cli, ["unpack", str(write_file(MINIFIED_BUNDLE)), "--known-path", "oops"])
        assert result.exit_code == 2
        assert "ID=VALUE" in result.output

    def test_verbose_configures_debug_logging(self, write_file, tmp_path) -> None:
        with patch("debundle_cli.commands.unpack.configure_logging") as mock_logging:
            runner.invoke(
                cli, ["unpack", str(write_file(MINIFIED_BUNDLE)), "--dist", str(tmp_path / "out"), "--verbose"]
            )
        mock_logging.assert_called_once_with(True)


class TestInspectCommand:
    """Tests for the inspect command."""

    def test_inspect(self, write_file, tmp_path) -> None:
        result = runner.invoke(cli, ["inspect", str(write_file(MINIFIED_BUNDLE))])

        assert result.exit_code == 0, result.output
        assert "Entry module: 0" in result.output
        assert "Public path: /static/" in result.output
        assert "0 => index.js [1]" in result.output
        assert "1 => 1.js [-]" in result.output
        assert not (tmp_path / "dist").exists()


def test_parse_pairs() -> None:
    assert parse_pairs(("1=./a", "abc=react"), "--known-path") == {1: "./a", "abc": "react"}


def test_version() -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output
