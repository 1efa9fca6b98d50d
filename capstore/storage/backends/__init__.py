"""Blob store backends."""

from capstore.storage.backends.base import BlobStore
from capstore.storage.backends.local import LocalBlobStore

__all__ = ["BlobStore", "LocalBlobStore"]
