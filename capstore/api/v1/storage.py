"""Storage API endpoints.

Endpoints:
    POST /api/v1/storage/init-upload        - Reserve an object, return a presigned upload URL
    PUT  /api/v1/storage/upload/{token}     - Stream the raw body into the reserved object
    GET  /api/v1/storage/objects            - Return a presigned download URL for bucket/key
    GET  /api/v1/storage/downloads/{token}  - Stream the object content

The upload and download endpoints take no session credentials: the token in
the path is the whole authorization.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from capstore.auth.dependencies import get_current_user_id
from capstore.config import get_settings
from capstore.database import get_db_session
from capstore.security.signer import TokenSigner
from capstore.storage.backends.base import BlobStore
from capstore.storage.backends.local import LocalBlobStore
from capstore.storage.repository import ObjectRepository
from capstore.storage.schemas import (
    DownloadUrlResponse,
    InitUploadRequest,
    ObjectResponse,
    PresignedUploadResponse,
)
from capstore.storage.service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@lru_cache
def get_token_signer() -> TokenSigner:
    return TokenSigner(secret=get_settings().SIGNING_SECRET)


@lru_cache
def get_blob_store() -> BlobStore:
    config = get_settings().get_storage_config()
    return LocalBlobStore(
        root=config.root,
        shard_prefix_length=config.shard_prefix_length,
        chunk_size=config.chunk_size,
        partial_grace_seconds=config.partial_grace_seconds,
    )


async def get_storage_service(
    session: AsyncSession = Depends(get_db_session),
    signer: TokenSigner = Depends(get_token_signer),
    blobs: BlobStore = Depends(get_blob_store),
) -> StorageService:
    return StorageService(
        config=get_settings().get_storage_config(),
        signer=signer,
        blobs=blobs,
        repository=ObjectRepository(session),
    )


@router.post(
    "/init-upload",
    response_model=PresignedUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def init_upload(
    request: InitUploadRequest,
    user_id: str = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
) -> PresignedUploadResponse:
    """Reserve bucket/key for the caller and return a presigned upload URL."""
    url = await service.init_upload(user_id, request)
    return PresignedUploadResponse(presigned_url=url)


@router.put("/upload/{token}", response_model=ObjectResponse)
async def upload(
    token: str,
    request: Request,
    service: StorageService = Depends(get_storage_service),
) -> ObjectResponse:
    """Stream the request body into the object reserved by ``token``."""
    obj = await service.upload(token, request.stream())
    return ObjectResponse.from_object(obj)


@router.get("/objects", response_model=DownloadUrlResponse)
async def get_object(
    bucket: str = Query(..., min_length=2),
    key: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
) -> DownloadUrlResponse:
    """Return a presigned download URL for one of the caller's objects."""
    url = await service.get_object(user_id, bucket, key)
    return DownloadUrlResponse(download_url=url)


@router.get("/downloads/{token}")
async def download_file(
    token: str,
    service: StorageService = Depends(get_storage_service),
) -> StreamingResponse:
    """Stream the content granted by ``token``."""
    handle = await service.download_file(token)
    # Explicit header: media_type alone would get "; charset=utf-8" appended for text/*.
    return StreamingResponse(handle.stream, headers={"Content-Type": handle.mime_type})
