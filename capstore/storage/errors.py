"""Storage error taxonomy.

The orchestrator raises only ``StorageError`` subclasses. Each carries the
HTTP status the API layer should answer with. Blob-level failures
(``BlobNotFoundError``, ``BlobWriteError``) are raised by the blob store and
mapped by the orchestrator.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for errors surfaced by the storage service."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ObjectConflictError(StorageError):
    """An object already exists for this owner, bucket and key."""

    status_code = 409


class UnauthorizedError(StorageError):
    """Capability token missing, malformed, tampered, expired or already used."""

    status_code = 401


class ObjectNotFoundError(StorageError):
    """Object or its content does not exist, or is not visible to the caller."""

    status_code = 404


class StorageIOError(StorageError):
    """Reading or writing blob content failed."""

    status_code = 500


class BlobNotFoundError(LookupError):
    """No content exists at the derived blob location."""


class BlobWriteError(OSError):
    """Streaming content to disk failed; nothing was committed."""
