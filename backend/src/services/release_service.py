"""
Release store operations.

Wraps the releases and release_tracking tables behind the lookups the
protocol engine and upload workflow need:
- Latest release for a runtime version (timestamp, then insertion order)
- Lookup by storage path or GUID
- Release creation (upload workflow only)
- Download tracking and per-platform metrics
"""

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.src.models import Platform, Release, Tracking
from backend.src.utils.logging_config import get_logger


logger = get_logger("db")


class ReleaseService:
    """
    Service for reading and writing release and tracking rows.

    Releases are immutable: this service never updates or deletes them.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_latest_for_runtime_version(self, runtime_version: str) -> Optional[Release]:
        """
        Get the most recently uploaded release for a runtime version.

        Ties on timestamp are broken by primary key, so the last insert wins.

        Args:
            runtime_version: Client-declared runtime version

        Returns:
            Release or None if nothing was uploaded for this runtime version
        """
        return (
            self.db.query(Release)
            .filter(Release.runtime_version == runtime_version)
            .order_by(Release.timestamp.desc(), Release.id.desc())
            .first()
        )

    def get_by_path(self, path: str) -> Optional[Release]:
        """Get the release whose archive is stored at ``path``."""
        return self.db.query(Release).filter(Release.path == path).first()

    def get_by_guid(self, guid: str) -> Optional[Release]:
        """
        Get a release by GUID.

        Returns:
            Release or None if the GUID is malformed or unknown
        """
        try:
            uuid_value = Release.parse_guid(guid)
        except ValueError:
            return None
        return self.db.query(Release).filter(Release.uuid == uuid_value).first()

    def count_releases(self) -> int:
        """Count all release rows."""
        return self.db.query(func.count(Release.id)).scalar() or 0

    # =========================================================================
    # Writes
    # =========================================================================

    def create_release(
        self,
        path: str,
        runtime_version: str,
        commit_hash: str,
        update_id: str,
        commit_message: str = "No message provided",
        release_notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> Release:
        """
        Insert a release row and commit.

        Empty release notes are stored as NULL.

        Raises:
            ValueError: If a required column fails model validation
            sqlalchemy.exc.SQLAlchemyError: If the insert fails (session rolled back)
        """
        release = Release(
            path=path,
            runtime_version=runtime_version,
            commit_hash=commit_hash,
            commit_message=commit_message,
            release_notes=release_notes or None,
            update_id=update_id,
            timestamp=timestamp or datetime.utcnow(),
        )
        self.db.add(release)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(release)

        logger.info(
            "Created release",
            extra={
                "release_guid": release.guid,
                "runtime_version": release.runtime_version,
                "update_id": release.update_id,
                "path": release.path,
            },
        )
        return release

    def create_tracking(
        self,
        release: Release,
        platform: Platform,
        download_timestamp: Optional[datetime] = None,
    ) -> Tracking:
        """
        Record a manifest download for ``release`` and commit.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the insert fails (session rolled back)
        """
        tracking = Tracking(
            release_id=release.id,
            platform=platform,
            download_timestamp=download_timestamp or datetime.utcnow(),
        )
        self.db.add(tracking)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(tracking)
        return tracking

    # =========================================================================
    # Metrics
    # =========================================================================

    def get_tracking_metrics(self, release: Optional[Release] = None) -> Dict[str, int]:
        """
        Count manifest downloads per platform.

        Args:
            release: Restrict to one release; all releases when None

        Returns:
            Mapping of platform value to download count (zero-filled)
        """
        query = self.db.query(Tracking.platform, func.count(Tracking.id))
        if release is not None:
            query = query.filter(Tracking.release_id == release.id)
        counts = dict(query.group_by(Tracking.platform).all())
        return {platform: counts.get(platform, 0) for platform in Platform.values()}
