"""
Update locator.

Resolves the latest release for a runtime version and checks that blob
storage still holds its archive. The result is a tagged lookup rather than an
exception so that "nothing uploaded yet" stays a normal protocol state.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from backend.src.models import Release
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


class LookupStatus(enum.Enum):
    """Outcome of an update lookup."""
    FOUND = "found"
    NO_UPDATE = "no_update"
    ARCHIVE_MISSING = "archive_missing"


@dataclass(frozen=True)
class UpdateLookup:
    """
    Result of :meth:`UpdateLocator.locate`.

    ``release`` is set for FOUND and ARCHIVE_MISSING; ``path`` only for FOUND.
    """
    status: LookupStatus
    runtime_version: str
    release: Optional[Release] = None
    path: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


class UpdateLocator:
    """
    Finds the bundle a client should be offered.

    Usage:
        >>> locator = UpdateLocator(ReleaseService(db), storage)
        >>> lookup = locator.locate("1.0.0")
        >>> lookup.status
        <LookupStatus.FOUND: 'found'>
    """

    def __init__(self, release_service: ReleaseService, storage: StorageAdapter):
        self.release_service = release_service
        self.storage = storage

    def latest_release(self, runtime_version: str) -> Optional[Release]:
        """Latest release row for ``runtime_version`` without touching storage."""
        return self.release_service.get_latest_for_runtime_version(runtime_version)

    def locate(self, runtime_version: str) -> UpdateLookup:
        """
        Look up the latest release for ``runtime_version``.

        Raises:
            StorageError: If blob storage cannot be queried
        """
        release = self.latest_release(runtime_version)
        if release is None:
            return UpdateLookup(status=LookupStatus.NO_UPDATE, runtime_version=runtime_version)
        return self.check_archive(release)

    def check_archive(self, release: Release) -> UpdateLookup:
        """
        Confirm blob storage still holds ``release``'s archive.

        Raises:
            StorageError: If blob storage cannot be queried
        """
        if not self.storage.exists(release.path):
            logger.warning(
                "Release archive missing from storage",
                extra={
                    "release_guid": release.guid,
                    "runtime_version": release.runtime_version,
                    "path": release.path,
                },
            )
            return UpdateLookup(
                status=LookupStatus.ARCHIVE_MISSING,
                runtime_version=release.runtime_version,
                release=release,
            )

        return UpdateLookup(
            status=LookupStatus.FOUND,
            runtime_version=release.runtime_version,
            release=release,
            path=release.path,
        )
