"""Pydantic schemas for the storage API.

Field names are snake_case in Python and camelCase on the wire
(``mimeType``, ``presignedUrl``, ``downloadUrl``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from capstore.models import ObjectStatus, StoredObject


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InitUploadRequest(_CamelModel):
    """Request body for reserving an upload."""

    bucket: str = Field(..., min_length=2, max_length=255, description="Storage bucket name")
    key: str = Field(..., min_length=1, max_length=1024, description="Object key within the bucket")
    mime_type: str = Field(..., description="MIME type served on download")
    metadata: dict[str, Any] | None = Field(
        default=None, description="Arbitrary caller-supplied key/value document"
    )


class PresignedUploadResponse(_CamelModel):
    """Presigned URL the client PUTs the raw bytes to."""

    presigned_url: str


class DownloadUrlResponse(_CamelModel):
    """Presigned URL the client GETs the bytes from."""

    download_url: str


class ObjectResponse(_CamelModel):
    """Public object summary. Carries no database or blob identifiers."""

    bucket: str
    key: str
    size: int | None = None
    mime_type: str | None = None
    metadata: dict[str, Any] | None = None
    status: ObjectStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_object(cls, obj: StoredObject) -> "ObjectResponse":
        return cls(
            bucket=obj.bucket,
            key=obj.key,
            size=obj.size,
            mime_type=obj.mime_type,
            metadata=obj.metadata_json,
            status=obj.status,
            created_at=obj.created_at,
            updated_at=obj.updated_at,
        )
