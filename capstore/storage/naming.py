"""Blob identifiers and on-disk placement.

Blob ids are 16 random bytes, hex-encoded. Files are fanned out into shard
directories named after the first characters of the id.

Format: {root}/{blob_id[:prefix]}/{blob_id}.blob

Examples:
    >>> from capstore.storage.naming import blob_path
    >>> blob_path("/srv/blobs", "3fa2c1d0e4b5968778695a4b3c2d1e0f")
    PosixPath('/srv/blobs/3f/3fa2c1d0e4b5968778695a4b3c2d1e0f.blob')
"""

from __future__ import annotations

import re
import secrets
from pathlib import Path

BLOB_ID_BYTES = 16
BLOB_SUFFIX = ".blob"
PARTIAL_SUFFIX = ".part"

_BLOB_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def generate_blob_id() -> str:
    """Generate a new random blob id (32 lowercase hex characters)."""
    return secrets.token_hex(BLOB_ID_BYTES)


def is_valid_blob_id(blob_id: str) -> bool:
    """Check that ``blob_id`` looks like an id produced by generate_blob_id."""
    return isinstance(blob_id, str) and bool(_BLOB_ID_RE.match(blob_id))


def validate_blob_id(blob_id: str) -> str:
    """Return ``blob_id`` unchanged, or raise ValueError if it is malformed.

    Only lowercase hex is accepted, so an id can never contain a path
    separator or ``..``.
    """
    if not is_valid_blob_id(blob_id):
        raise ValueError(f"Invalid blob id: {blob_id!r}")
    return blob_id


def shard_prefix(blob_id: str, prefix_length: int = 2) -> str:
    """Shard directory name for a blob id."""
    return validate_blob_id(blob_id)[:prefix_length]


def blob_path(root: str | Path, blob_id: str, prefix_length: int = 2) -> Path:
    """Full content path for a blob id.

    Pure function: the same root, id and prefix length always give the same
    path, whether or not the file exists.

    Args:
        root: Storage root directory.
        blob_id: Blob identifier.
        prefix_length: Number of id characters used for the shard directory.

    Returns:
        Path to the ``.blob`` file.
    """
    prefix = shard_prefix(blob_id, prefix_length)
    return Path(root) / prefix / f"{blob_id}{BLOB_SUFFIX}"


def partial_path(final_path: Path, attempt: str) -> Path:
    """Temporary path a write streams into before it is renamed into place."""
    return final_path.with_name(f"{final_path.name}.{attempt}{PARTIAL_SUFFIX}")
