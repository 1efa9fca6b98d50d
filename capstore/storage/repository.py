"""Object metadata store backed by SQLAlchemy.

Every command commits its own transaction so that no write transaction stays
open while an upload streams. Uniqueness of (owner, bucket, key) and the
single use of upload nonces are enforced by the database, not by locks in
this process.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from capstore.models import ObjectStatus, StoredObject
from capstore.storage.errors import ObjectConflictError

logger = logging.getLogger(__name__)


class ObjectRepository:
    """Query/command interface over the ``objects`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_pending(
        self,
        owner_id: str,
        bucket: str,
        key: str,
        blob_id: str,
        mime_type: str | None,
        metadata: dict[str, Any] | None,
        upload_nonce: str | None = None,
    ) -> StoredObject:
        """Insert a pending object.

        Raises:
            ObjectConflictError: If the owner already has a live object at bucket/key.
        """
        obj = StoredObject(
            owner_id=owner_id,
            bucket=bucket,
            key=key,
            blob_id=blob_id,
            mime_type=mime_type,
            metadata_json=metadata,
            status=ObjectStatus.PENDING,
            upload_nonce=upload_nonce,
        )
        self.session.add(obj)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ObjectConflictError(
                f"Object already exists: {bucket}/{key}"
            ) from e

        return obj

    async def find_by_blob_id(self, blob_id: str) -> StoredObject | None:
        result = await self.session.execute(
            select(StoredObject).where(StoredObject.blob_id == blob_id)
        )
        return result.scalar_one_or_none()

    async def find_active(
        self, owner_id: str, bucket: str, key: str
    ) -> StoredObject | None:
        """Look up an active object, scoped to its owner."""
        result = await self.session.execute(
            select(StoredObject).where(
                StoredObject.owner_id == owner_id,
                StoredObject.bucket == bucket,
                StoredObject.key == key,
                StoredObject.status == ObjectStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def mark_active(self, obj: StoredObject, size: int) -> StoredObject:
        obj.mark_active(size)
        obj.upload_nonce = None
        await self.session.commit()
        return obj

    async def claim_upload(self, blob_id: str, nonce: str) -> bool:
        """Consume the upload nonce of a pending object.

        Of any number of concurrent callers presenting the same nonce, at
        most one gets True.
        """
        result = await self.session.execute(
            update(StoredObject)
            .where(
                StoredObject.blob_id == blob_id,
                StoredObject.upload_nonce == nonce,
                StoredObject.status == ObjectStatus.PENDING,
            )
            .values(upload_nonce=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def release_upload(self, blob_id: str, nonce: str) -> None:
        """Give a claimed nonce back to a still-pending object after a failed write."""
        await self.session.execute(
            update(StoredObject)
            .where(
                StoredObject.blob_id == blob_id,
                StoredObject.upload_nonce.is_(None),
                StoredObject.status == ObjectStatus.PENDING,
            )
            .values(upload_nonce=nonce)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        logger.info(f"Upload claim released for blob {blob_id}")
