"""Tests for capstore.storage.repository module.

Covers:
    - Pending object creation and the per-owner uniqueness rule
    - Owner-scoped lookup of active objects
    - Single use of upload nonces (claim/release)
"""

import pytest

from capstore.models import ObjectStatus, StoredObject
from capstore.storage.errors import ObjectConflictError
from capstore.storage.naming import generate_blob_id


async def _pending(repository, owner="u1", bucket="avatars", key="u1.png", nonce="n1"):
    return await repository.create_pending(
        owner_id=owner,
        bucket=bucket,
        key=key,
        blob_id=generate_blob_id(),
        mime_type="image/png",
        metadata={"width": 64},
        upload_nonce=nonce,
    )


class TestCreatePending:
    """Tests for create_pending()."""

    @pytest.mark.asyncio
    async def test_creates_pending(self, repository):
        obj = await _pending(repository)
        assert obj.status == ObjectStatus.PENDING
        assert obj.size is None
        assert obj.metadata_json == {"width": 64}
        assert obj.id

    @pytest.mark.asyncio
    async def test_conflict_same_owner_bucket_key(self, repository):
        first = await _pending(repository)
        first_blob = first.blob_id
        with pytest.raises(ObjectConflictError):
            await _pending(repository, nonce="n2")

        found = await repository.find_by_blob_id(first_blob)
        assert found is not None
        assert found.status == ObjectStatus.PENDING

    @pytest.mark.asyncio
    async def test_other_owner_same_address(self, repository):
        await _pending(repository, owner="u1")
        other = await _pending(repository, owner="u2")
        assert other.owner_id == "u2"

    @pytest.mark.asyncio
    async def test_deleted_row_does_not_block(self, repository, db_session):
        db_session.add(
            StoredObject(
                owner_id="u1",
                bucket="avatars",
                key="u1.png",
                blob_id=generate_blob_id(),
                status=ObjectStatus.DELETED,
            )
        )
        await db_session.commit()

        obj = await _pending(repository)
        assert obj.status == ObjectStatus.PENDING


class TestFindActive:
    """Tests for find_active()."""

    @pytest.mark.asyncio
    async def test_pending_is_invisible(self, repository):
        await _pending(repository)
        assert await repository.find_active("u1", "avatars", "u1.png") is None

    @pytest.mark.asyncio
    async def test_active_is_found(self, repository):
        obj = await _pending(repository)
        await repository.mark_active(obj, 42)

        found = await repository.find_active("u1", "avatars", "u1.png")
        assert found is not None
        assert found.size == 42
        assert found.upload_nonce is None

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, repository):
        obj = await _pending(repository, owner="u1")
        await repository.mark_active(obj, 1)
        assert await repository.find_active("u2", "avatars", "u1.png") is None


class TestClaimUpload:
    """Tests for claim_upload() and release_upload()."""

    @pytest.mark.asyncio
    async def test_claim_once(self, repository):
        obj = await _pending(repository)
        assert await repository.claim_upload(obj.blob_id, "n1") is True
        assert await repository.claim_upload(obj.blob_id, "n1") is False

    @pytest.mark.asyncio
    async def test_wrong_nonce(self, repository):
        obj = await _pending(repository)
        assert await repository.claim_upload(obj.blob_id, "other") is False
        assert await repository.claim_upload(obj.blob_id, "n1") is True

    @pytest.mark.asyncio
    async def test_release_allows_reclaim(self, repository):
        obj = await _pending(repository)
        assert await repository.claim_upload(obj.blob_id, "n1")
        await repository.release_upload(obj.blob_id, "n1")
        assert await repository.claim_upload(obj.blob_id, "n1") is True

    @pytest.mark.asyncio
    async def test_active_object_cannot_be_claimed(self, repository):
        obj = await _pending(repository)
        assert await repository.claim_upload(obj.blob_id, "n1")
        await repository.mark_active(obj, 3)
        await repository.release_upload(obj.blob_id, "n1")
        assert await repository.claim_upload(obj.blob_id, "n1") is False
