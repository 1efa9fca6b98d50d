"""SQLAlchemy models for capstore.

Defines the ``objects`` table: one row per stored object, binding the
caller's logical address (owner, bucket, key) to an opaque blob id.

Examples:
    >>> from capstore.models import StoredObject, ObjectStatus
    >>> obj = StoredObject(
    ...     owner_id="u1",
    ...     bucket="avatars",
    ...     key="u1.png",
    ...     blob_id="3fa2c1d0e4b5968778695a4b3c2d1e0f",
    ...     mime_type="image/png",
    ... )

Tests:
    - tests/unit/test_models.py
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Enum as SQLEnum,
    Index,
    String,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


class ObjectStatus(str, Enum):
    """Lifecycle status of a stored object.

    States:
        PENDING: Reserved, waiting for its content upload
        ACTIVE: Content durably written
        DELETED: Reserved for future use; no transition leads here yet
    """

    PENDING = "pending"
    ACTIVE = "active"
    DELETED = "deleted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredObject(Base):
    """Metadata record for one stored object.

    Attributes:
        id: Unique identifier (UUID)
        owner_id: User who created the object
        bucket: Caller-chosen namespace
        key: Caller-chosen name within the bucket
        blob_id: Opaque id of the content in the blob store
        size: Content length in bytes, set when the upload completes
        mime_type: Content type served on download
        metadata_json: Caller-supplied key/value document
        status: Lifecycle status
        upload_nonce: One-time value bound into the upload token
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "objects"
    __table_args__ = (
        # One live object per logical address; deleted rows do not count.
        Index(
            "uq_objects_owner_bucket_key",
            "owner_id",
            "bucket",
            "key",
            unique=True,
            sqlite_where=text("status != 'deleted'"),
            postgresql_where=text("status != 'deleted'"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    bucket: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(1024), nullable=False)
    blob_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    size: Mapped[int | None] = mapped_column(BigInteger, default=None)
    mime_type: Mapped[str | None] = mapped_column(String(255), default=None)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        default=None,
    )
    status: Mapped[ObjectStatus] = mapped_column(
        SQLEnum(
            ObjectStatus,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=ObjectStatus.PENDING,
        nullable=False,
        index=True,
    )
    upload_nonce: Mapped[str | None] = mapped_column(String(64), default=None)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        status_val = self.status.value if self.status else "None"
        return (
            f"<StoredObject(bucket={self.bucket!r}, key={self.key!r}, "
            f"status={status_val})>"
        )

    def mark_active(self, size: int) -> None:
        """Record the written size and make the object downloadable."""
        self.status = ObjectStatus.ACTIVE
        self.size = size
        self.updated_at = _utcnow()

    @property
    def is_active(self) -> bool:
        return self.status == ObjectStatus.ACTIVE
