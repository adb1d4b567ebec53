"""
External identifiers for release store rows.

Rows keep an integer primary key for joins and a UUIDv7 for anything that
leaves the server (upload responses, log records). The UUID is shown as
``{prefix}_{crockford base32}``, lowercase and 26 characters after the
prefix, e.g. ``rel_01jh8x2m3k4n5p6q7r8s9t0v1w``.
"""

import uuid as uuid_module
from typing import ClassVar, Optional

import base32_crockford
from sqlalchemy import Column, LargeBinary, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from uuid_extensions import uuid7


# 128 bits in 5-bit symbols
ENCODED_UUID_LENGTH = 26


def encode_guid(prefix: str, value: uuid_module.UUID) -> str:
    """Render ``value`` as a prefixed GUID string."""
    encoded = base32_crockford.encode(value.int).zfill(ENCODED_UUID_LENGTH)
    return f"{prefix}_{encoded.lower()}"


def decode_guid(prefix: str, guid: str) -> uuid_module.UUID:
    """
    Recover the UUID behind a prefixed GUID string.

    Raises:
        ValueError: On a wrong prefix, wrong length or invalid symbols
    """
    head, separator, encoded = (guid or "").partition("_")
    if not separator or head.lower() != prefix:
        raise ValueError(f"Expected a '{prefix}_' identifier, got {guid!r}")
    if len(encoded) != ENCODED_UUID_LENGTH:
        raise ValueError(
            f"Identifier body must be {ENCODED_UUID_LENGTH} characters, got {len(encoded)}"
        )
    try:
        return uuid_module.UUID(int=base32_crockford.decode(encoded.upper()))
    except ValueError as e:
        raise ValueError(f"Invalid identifier {guid!r}: {e}")


def _coerce_uuid(value) -> uuid_module.UUID:
    if isinstance(value, bytes):
        return uuid_module.UUID(bytes=value)
    return uuid_module.UUID(str(value))


class UUIDType(TypeDecorator):
    """
    UUID column stored natively on PostgreSQL and as 16 raw bytes elsewhere.

    Values always load as ``uuid.UUID``.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid_module.UUID):
            value = _coerce_uuid(value)
        return value if dialect.name == "postgresql" else value.bytes

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        return _coerce_uuid(value)


class GuidMixin:
    """
    Adds a UUIDv7 ``uuid`` column and its prefixed ``guid`` rendering.

    Subclasses set ``GUID_PREFIX``: ``rel`` for Release, ``trk`` for Tracking.
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(UUIDType(), nullable=False, unique=True, index=True, default=uuid7)

    @property
    def guid(self) -> Optional[str]:
        """Prefixed identifier, or None before the row has been flushed."""
        if self.uuid is None:
            return None
        return encode_guid(self.GUID_PREFIX, self.uuid)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        """
        Decode a GUID issued for this model.

        Raises:
            ValueError: If the string is not a valid GUID with this model's prefix
        """
        return decode_guid(cls.GUID_PREFIX, guid)
