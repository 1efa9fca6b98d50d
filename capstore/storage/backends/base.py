"""Abstract base class for blob stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterable, AsyncIterator


class BlobStore(ABC):
    """Abstract content store addressed by opaque blob ids.

    Implementations own byte placement only. They hold no authority over
    object status or ownership; that lives in the metadata store.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the store for use (create roots, sweep leftovers)."""

    @abstractmethod
    async def reserve(self, blob_id: str | None = None) -> tuple[str, Path]:
        """Allocate or re-derive the location for a blob.

        Args:
            blob_id: Existing id to re-derive, or None to generate a new one.

        Returns:
            Tuple of (blob_id, location). The location's parent exists.
        """

    @abstractmethod
    async def write(self, location: Path, source: AsyncIterable[bytes]) -> int:
        """Stream ``source`` to ``location``.

        Either the whole stream lands at ``location`` or nothing does.

        Returns:
            Number of bytes written.

        Raises:
            BlobWriteError: If the underlying filesystem write fails.
        """

    @abstractmethod
    async def read(self, location: Path) -> AsyncIterator[bytes]:
        """Open ``location`` and return an iterator over its bytes.

        Raises:
            BlobNotFoundError: If no content exists there.
        """

    @abstractmethod
    async def location_for(self, blob_id: str) -> Path:
        """Resolve a blob id to the location of existing content.

        Raises:
            BlobNotFoundError: If the id is malformed or no content exists.
        """
