"""
Tracking model for manifest downloads.

A row is written each time a normal-update manifest is served for a bundle
that maps back to a known Release. Directives, no-update answers and errors
never produce tracking rows.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship, validates

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Platform(str, enum.Enum):
    """
    Client platform enumeration.

    Values:
        IOS: Apple iOS runtime
        ANDROID: Android runtime
    """
    IOS = "ios"
    ANDROID = "android"

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class Tracking(Base, GuidMixin):
    """
    One manifest download event.

    Attributes:
        id: Primary key (internal only)
        guid: GUID string property (trk_xxx, inherited from GuidMixin)
        release_id: FK to releases.id (CASCADE delete)
        platform: Platform the manifest was served to
        download_timestamp: When the manifest was served (UTC)
    """

    __tablename__ = "release_tracking"

    GUID_PREFIX = "trk"

    id = Column(Integer, primary_key=True, autoincrement=True)

    release_id = Column(
        Integer,
        ForeignKey("releases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform = Column(String(10), nullable=False)
    download_timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    release = relationship("Release", back_populates="trackings")

    __table_args__ = (
        Index('ix_release_tracking_release_platform', 'release_id', 'platform'),
    )

    @validates('platform')
    def validate_platform(self, key: str, value) -> str:
        """Validate platform is ios or android."""
        if isinstance(value, Platform):
            return value.value
        if not value:
            raise ValueError("Platform is required")
        value = value.lower().strip()
        if value not in Platform.values():
            raise ValueError(
                f"Invalid platform '{value}'. Must be one of: {', '.join(Platform.values())}"
            )
        return value

    def __repr__(self) -> str:
        return (
            f"<Tracking(release_id={self.release_id}, platform='{self.platform}', "
            f"download_timestamp={self.download_timestamp})>"
        )
