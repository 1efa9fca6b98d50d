"""Object storage package for capstore.

Provides the blob store, the object metadata repository and the
orchestrating service that issues and redeems presigned URLs.

Examples:
    >>> from capstore.storage import StorageService, StorageConfig, LocalBlobStore
    >>> blobs = LocalBlobStore(root="./blob-store")
    >>> service = StorageService(StorageConfig(), signer, blobs, ObjectRepository(session))
"""

from capstore.storage.backends import BlobStore, LocalBlobStore
from capstore.storage.config import StorageConfig
from capstore.storage.errors import (
    ObjectConflictError,
    ObjectNotFoundError,
    StorageError,
    StorageIOError,
    UnauthorizedError,
)
from capstore.storage.repository import ObjectRepository
from capstore.storage.service import DownloadHandle, StorageService

__all__ = [
    "BlobStore",
    "DownloadHandle",
    "LocalBlobStore",
    "ObjectConflictError",
    "ObjectNotFoundError",
    "ObjectRepository",
    "StorageConfig",
    "StorageError",
    "StorageIOError",
    "StorageService",
    "UnauthorizedError",
]
