"""
Utility modules for the OTA updates server.

This package contains shared, framework-free helpers:
- hashing: Content addressing (update ids, asset keys and hashes)
- mime: Asset extension to content-type resolution
- signing: RSA/SHA-256 code signing and structured header serialization
- multipart: multipart/mixed encoding for protocol responses
- logging_config: Named, structured loggers
"""

from backend.src.utils.hashing import (
    ContentAddress,
    derive_update_id,
    hash_to_uuid,
    sha256_hex,
)
from backend.src.utils.signing import ManifestSigner, serialize_dictionary

__all__ = [
    "ContentAddress",
    "derive_update_id",
    "hash_to_uuid",
    "sha256_hex",
    "ManifestSigner",
    "serialize_dictionary",
]
