"""Local filesystem blob store using aiofiles."""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from pathlib import Path
from typing import AsyncIterable, AsyncIterator

import aiofiles
import aiofiles.os

from capstore.storage.backends.base import BlobStore
from capstore.storage.errors import BlobNotFoundError, BlobWriteError
from capstore.storage.naming import (
    PARTIAL_SUFFIX,
    blob_path,
    generate_blob_id,
    is_valid_blob_id,
    partial_path,
)

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Sharded blob files under a single root directory.

    Attributes:
        root: Storage root directory.
        shard_prefix_length: Id characters used for the shard directory.
        chunk_size: Read size when streaming content back.
        partial_grace_seconds: Minimum age of a partial file before the
            startup sweep removes it. Younger files may belong to a write
            still running in another process.
    """

    def __init__(
        self,
        root: str | Path,
        shard_prefix_length: int = 2,
        chunk_size: int = 64 * 1024,
        partial_grace_seconds: int = 3600,
    ) -> None:
        self.root = Path(root)
        self.shard_prefix_length = shard_prefix_length
        self.chunk_size = chunk_size
        self.partial_grace_seconds = partial_grace_seconds

    async def initialize(self) -> None:
        """Create the root directory and remove stale partial files.

        A partial file counts as stale once it has not been modified for
        ``partial_grace_seconds``. A write in progress keeps its mtime current.
        """
        await aiofiles.os.makedirs(self.root, exist_ok=True)

        cutoff = time.time() - self.partial_grace_seconds
        removed = 0
        for leftover in self.root.glob(f"*/*{PARTIAL_SUFFIX}"):
            try:
                stat = await aiofiles.os.stat(leftover)
            except FileNotFoundError:
                continue
            if stat.st_mtime >= cutoff:
                continue
            await self._discard(leftover)
            removed += 1
        logger.info(f"Blob store ready at {self.root} (removed {removed} partial files)")

    def path_for(self, blob_id: str) -> Path:
        return blob_path(self.root, blob_id, self.shard_prefix_length)

    async def reserve(self, blob_id: str | None = None) -> tuple[str, Path]:
        if blob_id is None:
            blob_id = generate_blob_id()
        location = self.path_for(blob_id)
        # exist_ok: another request may create the same shard concurrently
        await aiofiles.os.makedirs(location.parent, exist_ok=True)
        return blob_id, location

    async def write(self, location: Path, source: AsyncIterable[bytes]) -> int:
        tmp = partial_path(location, uuid.uuid4().hex[:12])
        size = 0
        committed = False
        try:
            async with aiofiles.open(tmp, "wb") as f:
                async for chunk in source:
                    if not chunk:
                        continue
                    await f.write(chunk)
                    size += len(chunk)
                # Content must reach the disk before the rename makes it visible.
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(tmp, location)
            committed = True
        except OSError as e:
            logger.error(f"Blob write failed for {location.name}: {e}")
            raise BlobWriteError(f"Failed to write blob {location.stem}: {e}") from e
        finally:
            if not committed:
                await self._discard(tmp)

        logger.debug(f"Blob written: {location.name} ({size} bytes)")
        return size

    async def read(self, location: Path) -> AsyncIterator[bytes]:
        try:
            handle = await aiofiles.open(location, "rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"No content for blob {location.stem}") from e
        return self._iter_chunks(handle)

    async def _iter_chunks(self, handle) -> AsyncIterator[bytes]:
        try:
            while chunk := await handle.read(self.chunk_size):
                yield chunk
        finally:
            await handle.close()

    async def location_for(self, blob_id: str) -> Path:
        if not is_valid_blob_id(blob_id):
            raise BlobNotFoundError(f"Invalid blob id: {blob_id!r}")
        location = self.path_for(blob_id)
        if not await aiofiles.os.path.isfile(location):
            raise BlobNotFoundError(f"No content for blob {blob_id}")
        return location

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.unlink(path)
        except FileNotFoundError:
            pass
