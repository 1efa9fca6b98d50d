"""Storage configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Configuration for blob storage and presigned URLs.

    Attributes:
        root: Root directory for blob files.
        shard_prefix_length: Leading hex characters of a blob id used as shard directory.
        token_ttl_seconds: Lifetime of upload and download capability tokens.
        chunk_size: Read size when streaming blobs out.
        partial_grace_seconds: Age after which leftover partial files are swept.
        public_base_url: Origin prepended to presigned URLs.
        url_prefix: Path under which the storage routes are mounted.
    """

    root: str = Field(default="./blob-store", description="Blob storage root directory")
    shard_prefix_length: int = Field(default=2, ge=1, le=8)
    token_ttl_seconds: int = Field(default=300, ge=1)
    chunk_size: int = Field(default=64 * 1024, ge=1)
    partial_grace_seconds: int = Field(default=3600, ge=0)
    public_base_url: str = Field(default="")
    url_prefix: str = Field(default="/api/v1/storage")

    def upload_url(self, token: str) -> str:
        return f"{self.public_base_url}{self.url_prefix}/upload/{token}"

    def download_url(self, token: str) -> str:
        return f"{self.public_base_url}{self.url_prefix}/downloads/{token}"
