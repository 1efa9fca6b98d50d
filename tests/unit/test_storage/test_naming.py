"""Tests for capstore.storage.naming module.

Covers:
    - Blob id generation and validation
    - Shard prefix derivation
    - Deterministic blob paths
"""

from pathlib import Path

import pytest

from capstore.storage.naming import (
    blob_path,
    generate_blob_id,
    is_valid_blob_id,
    partial_path,
    shard_prefix,
    validate_blob_id,
)

BLOB_ID = "3fa2c1d0e4b5968778695a4b3c2d1e0f"


@pytest.mark.fast
class TestGenerateBlobId:
    """Tests for generate_blob_id()."""

    def test_format(self):
        blob_id = generate_blob_id()
        assert len(blob_id) == 32
        assert is_valid_blob_id(blob_id)

    def test_unique(self):
        ids = {generate_blob_id() for _ in range(1000)}
        assert len(ids) == 1000


@pytest.mark.fast
class TestValidateBlobId:
    """Tests for validate_blob_id() and is_valid_blob_id()."""

    def test_valid(self):
        assert validate_blob_id(BLOB_ID) == BLOB_ID

    @pytest.mark.parametrize(
        "bad",
        [
            "",
            "abc",
            BLOB_ID.upper(),
            BLOB_ID + "0",
            "../" + BLOB_ID[3:],
            "3fa2c1d0e4b5968778695a4b3c2d1e0g",
            None,
        ],
    )
    def test_invalid(self, bad):
        assert not is_valid_blob_id(bad)
        with pytest.raises(ValueError):
            validate_blob_id(bad)


@pytest.mark.fast
class TestBlobPath:
    """Tests for shard_prefix() and blob_path()."""

    def test_shard_prefix_default(self):
        assert shard_prefix(BLOB_ID) == "3f"

    def test_shard_prefix_length(self):
        assert shard_prefix(BLOB_ID, 4) == "3fa2"

    def test_layout(self):
        path = blob_path("/srv/blobs", BLOB_ID)
        assert path == Path("/srv/blobs/3f") / f"{BLOB_ID}.blob"

    def test_deterministic(self):
        assert blob_path("/srv/blobs", BLOB_ID) == blob_path(Path("/srv/blobs"), BLOB_ID)

    def test_invalid_id_never_builds_path(self):
        with pytest.raises(ValueError):
            blob_path("/srv/blobs", "../../etc/passwd")

    def test_partial_path_is_sibling(self):
        final = blob_path("/srv/blobs", BLOB_ID)
        tmp = partial_path(final, "abc123")
        assert tmp.parent == final.parent
        assert tmp.name == f"{BLOB_ID}.blob.abc123.part"
