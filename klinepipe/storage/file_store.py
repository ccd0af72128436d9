"""Filesystem content store (one file per key)."""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile

from klinepipe.errors import StoreError

logger = logging.getLogger(__name__)


class FileContentStore:
    """Writes each key to ``<root>/<key>``, replacing atomically."""

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if os.path.commonpath([self.root, path]) != self.root:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    async def write(self, key: str, data: bytes) -> None:
        try:
            await asyncio.to_thread(self._write_sync, self.path_for(key), data)
        except (OSError, ValueError) as e:
            logger.error(f"File write failed for {key}: {e}")
            raise StoreError(key, f"file write failed: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {key}")

    async def read(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        return await asyncio.to_thread(self._read_sync, path)

    @staticmethod
    def _write_sync(path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # Temp file in the same directory so os.replace stays on one filesystem
        fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(path), suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @staticmethod
    def _read_sync(path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()
