"""Storage service - orchestrates tokens, blobs and object metadata.

Handles the two-step upload (reserve + signed write) and the two-step
download (authorize + signed read). Callers only ever see opaque URLs;
blob ids, paths and database ids stay inside signed tokens.

Examples:
    >>> service = StorageService(config, signer, blobs, ObjectRepository(session))
    >>> url = await service.init_upload("u1", InitUploadRequest(
    ...     bucket="avatars", key="u1.png", mimeType="image/png"))
    >>> obj = await service.upload(token, request.stream())
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator

from capstore.models import StoredObject
from capstore.security.signer import TokenError, TokenSigner
from capstore.storage.backends.base import BlobStore
from capstore.storage.config import StorageConfig
from capstore.storage.errors import (
    BlobNotFoundError,
    BlobWriteError,
    ObjectNotFoundError,
    StorageIOError,
    UnauthorizedError,
)
from capstore.storage.repository import ObjectRepository
from capstore.storage.schemas import InitUploadRequest

logger = logging.getLogger(__name__)


@dataclass
class DownloadHandle:
    """Open content stream plus the type to serve it as."""

    stream: AsyncIterator[bytes]
    mime_type: str


class StorageService:
    """Main orchestrator for object storage operations.

    Attributes:
        config: Storage configuration.
        signer: Capability token signer.
        blobs: Blob store for content I/O.
        repository: Object metadata store.
    """

    def __init__(
        self,
        config: StorageConfig,
        signer: TokenSigner,
        blobs: BlobStore,
        repository: ObjectRepository,
    ) -> None:
        self.config = config
        self.signer = signer
        self.blobs = blobs
        self.repository = repository

    def _verify(self, token: str) -> dict:
        try:
            return self.signer.verify(token)
        except TokenError as e:
            logger.info(f"Rejected capability token: {type(e).__name__}")
            raise UnauthorizedError("Invalid or expired token") from e

    async def init_upload(self, owner_id: str, request: InitUploadRequest) -> str:
        """Reserve a blob and a pending object, and return a presigned upload URL.

        Raises:
            ObjectConflictError: If the owner already has a live object at bucket/key.
        """
        blob_id, _ = await self.blobs.reserve()
        nonce = secrets.token_hex(16)

        await self.repository.create_pending(
            owner_id=owner_id,
            bucket=request.bucket,
            key=request.key,
            blob_id=blob_id,
            mime_type=request.mime_type,
            metadata=request.metadata,
            upload_nonce=nonce,
        )

        token = self.signer.sign(
            {"op": "upload", "blobId": blob_id, "nonce": nonce},
            self.config.token_ttl_seconds,
        )
        logger.info(f"Upload reserved: {request.bucket}/{request.key} -> blob {blob_id}")
        return self.config.upload_url(token)

    async def upload(self, token: str, source: AsyncIterable[bytes]) -> StoredObject:
        """Redeem an upload token: stream the body to disk and activate the object.

        The token is single use. If the write fails the object stays pending
        and the same token may be presented again until it expires.

        Raises:
            UnauthorizedError: Token invalid, expired, or already redeemed.
            ObjectNotFoundError: No object references the token's blob.
            StorageIOError: Writing the content failed.
        """
        payload = self._verify(token)
        blob_id = payload.get("blobId")
        nonce = payload.get("nonce")
        if (
            payload.get("op") != "upload"
            or not isinstance(blob_id, str)
            or not isinstance(nonce, str)
        ):
            raise UnauthorizedError("Token does not grant an upload")

        obj = await self.repository.find_by_blob_id(blob_id)
        if obj is None:
            raise ObjectNotFoundError("Object not found")

        if not await self.repository.claim_upload(blob_id, nonce):
            raise UnauthorizedError("Upload token has already been used")

        # Any exit without a written blob, cancellation included, gives the claim back.
        written = False
        try:
            _, location = await self.blobs.reserve(blob_id)
            size = await self.blobs.write(location, source)
            written = True
        except BlobWriteError as e:
            raise StorageIOError("Failed to store object content") from e
        finally:
            if not written:
                await self.repository.release_upload(blob_id, nonce)

        obj = await self.repository.mark_active(obj, size)
        logger.info(f"Upload complete: blob {blob_id} ({size} bytes)")
        return obj

    async def get_object(self, owner_id: str, bucket: str, key: str) -> str:
        """Return a presigned download URL for the owner's active object.

        Raises:
            ObjectNotFoundError: No active object at bucket/key for this owner.
        """
        obj = await self.repository.find_active(owner_id, bucket, key)
        if obj is None:
            raise ObjectNotFoundError("Object not found")

        token = self.signer.sign(
            {"op": "download", "blobId": obj.blob_id, "mimeType": obj.mime_type},
            self.config.token_ttl_seconds,
        )
        return self.config.download_url(token)

    async def download_file(self, token: str) -> DownloadHandle:
        """Redeem a download token and open the content stream.

        Raises:
            UnauthorizedError: Token invalid or expired.
            ObjectNotFoundError: No content exists for the token's blob.
        """
        payload = self._verify(token)
        blob_id = payload.get("blobId")
        if payload.get("op") != "download" or not isinstance(blob_id, str):
            raise UnauthorizedError("Token does not grant a download")

        try:
            location = await self.blobs.location_for(blob_id)
            stream = await self.blobs.read(location)
        except BlobNotFoundError as e:
            raise ObjectNotFoundError("Object content not found") from e
        except OSError as e:
            raise StorageIOError("Failed to read object content") from e

        mime_type = payload.get("mimeType") or "application/octet-stream"
        return DownloadHandle(stream=stream, mime_type=mime_type)
