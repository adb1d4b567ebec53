"""
Release model for uploaded update bundles.

One row per (bundle upload, runtime version) pair. A multi-target upload
creates several rows that share the same update_id but point at separate
stored copies of the archive.

Design Rationale:
- Immutable once created: the upload workflow inserts, nothing updates
- update_id is derived from the archive's metadata.json, so re-uploading
  identical bytes yields the same id
- Latest release for a runtime version is chosen by upload timestamp, with
  the primary key breaking ties (last insert wins)
"""

import re
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from sqlalchemy.orm import relationship, validates

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


UPDATE_ID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$'
)


class Release(Base, GuidMixin):
    """
    Uploaded update bundle targeting one runtime version.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (rel_xxx, inherited from GuidMixin)
        runtime_version: Client compatibility tag this bundle serves
        path: Opaque blob storage key of the archive
        timestamp: Upload time (UTC)
        commit_hash: Source commit the bundle was built from
        commit_message: Source commit message
        release_notes: Optional notes shown to clients
        update_id: UUID derived from the archive's metadata.json digest
        trackings: Download events recorded for this release
    """

    __tablename__ = "releases"

    GUID_PREFIX = "rel"

    id = Column(Integer, primary_key=True, autoincrement=True)

    runtime_version = Column(String(100), nullable=False, index=True)
    path = Column(String(1024), nullable=False, unique=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    commit_hash = Column(String(100), nullable=False)
    commit_message = Column(Text, nullable=False, default="No message provided")
    release_notes = Column(Text, nullable=True)

    update_id = Column(String(36), nullable=False, index=True)

    trackings = relationship(
        "Tracking",
        back_populates="release",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('ix_releases_runtime_version_timestamp', 'runtime_version', 'timestamp'),
    )

    @validates('runtime_version', 'commit_hash', 'path')
    def validate_required(self, key: str, value: str) -> str:
        """Validate required string columns are not blank."""
        if not value or not value.strip():
            raise ValueError(f"{key} is required")
        return value.strip()

    @validates('update_id')
    def validate_update_id(self, key: str, value: str) -> str:
        """Validate update_id is a canonical lowercase UUID string."""
        if not value:
            raise ValueError("update_id is required")
        value = value.strip().lower()
        if not UPDATE_ID_PATTERN.match(value):
            raise ValueError("update_id must be a canonical UUID string")
        return value

    @property
    def display_notes(self):
        """Release notes shown to clients: explicit notes, else commit message, else None."""
        return self.release_notes or self.commit_message or None

    def __repr__(self) -> str:
        return (
            f"<Release(guid='{self.guid}', runtime_version='{self.runtime_version}', "
            f"update_id='{self.update_id}', path='{self.path}')>"
        )
