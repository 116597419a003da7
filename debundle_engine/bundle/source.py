"""Acquire the bytes of a chunk file: next to the bundle first, then over HTTP."""

from pathlib import Path
from typing import Any, Dict, Optional

import requests
from loguru import logger

from debundle_engine.errors import ChunkNotFoundError


def chunk_url(file_name: str, public_path_prefix: str = "", public_path: Optional[str] = None) -> str:
    """``<prefix>[/]<public path><file name>``"""
    prefix = public_path_prefix
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    return f"{prefix}{public_path or ''}{file_name}"


class ChunkSource:
    """Local-then-remote loader for chunk files.

    Args:
        bundle_dir: Directory of the root bundle; chunks are looked up here first
        public_path_prefix: Origin prepended to the runtime's public path
        public_path: Public path assigned by the runtime (``require.p``)
        request_options: Extra keyword arguments for ``requests.get``
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        bundle_dir: Path,
        public_path_prefix: str = "",
        public_path: Optional[str] = None,
        request_options: Optional[Dict[str, Any]] = None,
        timeout: int = 30,
    ):
        self.bundle_dir = bundle_dir
        self.public_path_prefix = public_path_prefix
        self.public_path = public_path
        self.request_options = dict(request_options or {})
        self.timeout = timeout

    def load(self, file_name: str) -> bytes:
        """Read a chunk file.

        Raises:
            ChunkNotFoundError: if neither the local file nor the URL can be read
        """
        local_path = self.bundle_dir / file_name
        logger.info(f"Loading chunk {file_name}")
        if local_path.is_file():
            logger.debug(f"Reading chunk from {local_path}")
            return local_path.read_bytes()

        url = chunk_url(file_name, self.public_path_prefix, self.public_path)
        logger.info(f"Chunk not found locally, fetching {url}")

        options = {"timeout": self.timeout, **self.request_options}
        try:
            response = requests.get(url, **options)
        except requests.exceptions.RequestException as e:
            raise self._not_found(file_name, local_path, url, f"request failed: {e}") from e

        if response.status_code >= 400:
            raise self._not_found(file_name, local_path, url, f"server responded with {response.status_code}")
        return response.content

    @staticmethod
    def _not_found(file_name: str, local_path: Path, url: str, reason: str) -> ChunkNotFoundError:
        return ChunkNotFoundError(
            f"Unable to load chunk {file_name}: {reason}",
            details=[
                f"Looked for the chunk locally at {local_path} and remotely at {url}.",
                'Place the chunk next to the bundle, or set "public_path_prefix" (and',
                '"chunk_http_request_options" if the server needs headers or cookies).',
            ],
            context={"local_path": str(local_path), "url": url},
        )
