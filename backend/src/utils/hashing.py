"""
Content addressing helpers for update bundles.

An update is identified by the SHA-256 digest of its ``metadata.json``. The
digest is folded into an RFC 4122 shaped UUID so clients can report it back in
``expo-current-update-id``. Individual assets are keyed by the MD5 of their
bytes and carry a base64url SHA-256 hash for integrity checks on the client.

Example:
    >>> address = derive_update_id(b'{"version": 0}')
    >>> address.update_id == derive_update_id(b'{"version": 0}').update_id
    True
"""

import base64
import hashlib
import uuid
from dataclasses import dataclass


# Version nibble stamped into derived ids (name-based, SHA family)
UPDATE_ID_UUID_VERSION = 5


@dataclass(frozen=True)
class ContentAddress:
    """Digest of a metadata payload and the update id derived from it."""
    digest: str
    update_id: str


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def hash_to_uuid(hex_digest: str) -> str:
    """
    Fold a hex digest into a UUID string.

    The first 128 bits of the digest become the UUID bytes, then the RFC 4122
    variant bits and the version nibble are overwritten. The mapping is fixed,
    so the same digest always yields the same id.

    Args:
        hex_digest: Hex digest with at least 32 characters

    Returns:
        Lowercase canonical UUID string

    Raises:
        ValueError: If the digest is too short or not hexadecimal
    """
    if not hex_digest or len(hex_digest) < 32:
        raise ValueError("Digest must contain at least 32 hex characters")
    try:
        raw = bytes.fromhex(hex_digest[:32])
    except ValueError:
        raise ValueError("Digest must be valid hexadecimal")
    return str(uuid.UUID(bytes=raw, version=UPDATE_ID_UUID_VERSION))


def derive_update_id(metadata_bytes: bytes) -> ContentAddress:
    """
    Compute the content address of an update from its metadata bytes.

    Args:
        metadata_bytes: Raw ``metadata.json`` content, exactly as stored

    Returns:
        ContentAddress with the hex digest and the derived update id
    """
    digest = sha256_hex(metadata_bytes)
    return ContentAddress(digest=digest, update_id=hash_to_uuid(digest))


def asset_key(data: bytes) -> str:
    """Stable asset key: MD5 hex of the asset bytes."""
    return hashlib.md5(data).hexdigest()


def asset_hash(data: bytes) -> str:
    """Unpadded base64url SHA-256 of the asset bytes."""
    digest = hashlib.sha256(data).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def update_ids_match(left, right) -> bool:
    """Compare two update ids, tolerating case and surrounding whitespace."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()
