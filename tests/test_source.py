"""Tests for ChunkSource."""

from unittest.mock import MagicMock, patch

import pytest

from debundle_engine.bundle.source import ChunkSource, chunk_url
from debundle_engine.errors import ChunkNotFoundError


class TestChunkUrl:
    """Building chunk URLs."""

    @pytest.mark.parametrize(
        "prefix,public_path,expected",
        [
            ("", None, "1.js"),
            ("https://example.com", "static/", "https://example.com/static/1.js"),
            ("https://example.com/", "static/", "https://example.com/static/1.js"),
            ("", "/assets/", "/assets/1.js"),
        ],
    )
    def test_chunk_url(self, prefix, public_path, expected) -> None:
        assert chunk_url("1.js", prefix, public_path) == expected


class TestChunkSource:
    """Local-then-remote loading."""

    def test_local_file_preferred(self, tmp_path) -> None:
        (tmp_path / "1.js").write_bytes(b"local")
        with patch("debundle_engine.bundle.source.requests.get") as mock_get:
            assert ChunkSource(tmp_path, public_path_prefix="https://example.com").load("1.js") == b"local"
        mock_get.assert_not_called()

    def test_remote_fallback(self, tmp_path) -> None:
        response = MagicMock(status_code=200, content=b"remote")
        with patch("debundle_engine.bundle.source.requests.get", return_value=response) as mock_get:
            source = ChunkSource(tmp_path, "https://example.com", request_options={"timeout": 5})
            assert source.load("1.js") == b"remote"
        mock_get.assert_called_once_with("https://example.com/1.js", timeout=5)

    def test_error_names_both_locations(self, tmp_path) -> None:
        response = MagicMock(status_code=500, content=b"")
        with patch("debundle_engine.bundle.source.requests.get", return_value=response):
            with pytest.raises(ChunkNotFoundError) as exc_info:
                ChunkSource(tmp_path, "https://example.com").load("1.js")
        assert str(tmp_path / "1.js") in str(exc_info.value)
        assert "https://example.com/1.js" in str(exc_info.value)
        assert "500" in str(exc_info.value)
