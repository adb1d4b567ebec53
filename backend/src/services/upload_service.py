"""
Upload workflow.

Publishes one exported bundle to one or more runtime versions. The update id
is computed once from the archive's metadata.json, then each target gets its
own stored copy and release row. Targets are processed sequentially and a
failing target never aborts the others.
"""

import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backend.src.models import Release
from backend.src.services.bundle_archive import METADATA_ENTRY, BundleArchive
from backend.src.services.exceptions import InvalidBundleError, StorageError, ValidationError
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.utils.hashing import derive_update_id
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

RUNTIME_VERSION_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9.\-+_]*$")
DEFAULT_COMMIT_MESSAGE = "No message provided"
MISSING_FIELDS_MESSAGE = "Missing file, runtime version, or commit hash"


@dataclass
class TargetFailure:
    version: str
    error: str


@dataclass
class UploadResult:
    """Per-target outcome of an upload."""
    update_id: str
    deployed_versions: List[str] = field(default_factory=list)
    failed_versions: List[TargetFailure] = field(default_factory=list)
    releases: List[Release] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when at least one target was published."""
        return bool(self.deployed_versions)


def parse_runtime_versions(values: Optional[Iterable[str]]) -> List[str]:
    """
    Flatten repeated and comma-separated runtime version fields.

    Blank entries are dropped and duplicates removed, keeping first-seen order.

    Example:
        >>> parse_runtime_versions(["1.0.0,1.0.1", "1.0.1"])
        ['1.0.0', '1.0.1']
    """
    versions: List[str] = []
    for value in values or []:
        for item in value.split(","):
            item = item.strip()
            if item and item not in versions:
                versions.append(item)
    return versions


def validate_runtime_version(runtime_version: str) -> str:
    """
    Check a runtime version is safe to use as a storage path segment.

    Raises:
        ValidationError: If the version contains disallowed characters
    """
    if not RUNTIME_VERSION_PATTERN.match(runtime_version):
        raise ValidationError(
            f"Invalid runtime version: {runtime_version}",
            field="runtimeVersion",
        )
    return runtime_version


def build_storage_path(runtime_version: str, now: Optional[datetime] = None) -> str:
    """Storage key for one uploaded copy: ``updates/<rv>/<yyyymmddHHMMSS>-<rand>.zip``."""
    stamp = (now or datetime.utcnow()).strftime("%Y%m%d%H%M%S")
    return f"updates/{runtime_version}/{stamp}-{secrets.token_hex(4)}.zip"


class UploadService:
    """
    Service publishing bundles.

    Usage:
        >>> service = UploadService(ReleaseService(db), storage)
        >>> result = service.upload(content, ["1.0.0", "1.0.1"], "abc123")
        >>> result.deployed_versions
        ['1.0.0', '1.0.1']
    """

    def __init__(self, release_service: ReleaseService, storage: StorageAdapter):
        self.release_service = release_service
        self.storage = storage

    def upload(
        self,
        content: Optional[bytes],
        runtime_versions: List[str],
        commit_hash: Optional[str],
        commit_message: Optional[str] = None,
        release_notes: Optional[str] = None,
    ) -> UploadResult:
        """
        Publish ``content`` to every runtime version in ``runtime_versions``.

        Args:
            content: Zipped bundle bytes
            runtime_versions: Already flattened target versions
            commit_hash: Source commit of the bundle
            commit_message: Defaults to "No message provided"
            release_notes: Optional display notes

        Returns:
            UploadResult listing deployed and failed targets

        Raises:
            ValidationError: If a required field is missing or the archive is
                not a zip containing metadata.json
        """
        commit_hash = (commit_hash or "").strip()
        if not content or not runtime_versions or not commit_hash:
            raise ValidationError(MISSING_FIELDS_MESSAGE)

        update_id = self._compute_update_id(content)
        result = UploadResult(update_id=update_id)

        for runtime_version in runtime_versions:
            try:
                release = self._publish(
                    content,
                    runtime_version,
                    commit_hash=commit_hash,
                    commit_message=commit_message or DEFAULT_COMMIT_MESSAGE,
                    release_notes=release_notes,
                    update_id=update_id,
                )
            except (ValidationError, StorageError) as e:
                logger.error(
                    "Upload target failed",
                    extra={"runtime_version": runtime_version, "error": e.message},
                )
                result.failed_versions.append(TargetFailure(runtime_version, e.message))
            except (SQLAlchemyError, ValueError) as e:
                logger.error(
                    "Upload target failed",
                    extra={"runtime_version": runtime_version, "error": str(e)},
                )
                result.failed_versions.append(TargetFailure(runtime_version, str(e)))
            else:
                result.deployed_versions.append(runtime_version)
                result.releases.append(release)

        logger.info(
            "Upload finished",
            extra={
                "update_id": update_id,
                "deployed_versions": result.deployed_versions,
                "failed_count": len(result.failed_versions),
            },
        )
        return result

    @staticmethod
    def _compute_update_id(content: bytes) -> str:
        try:
            archive = BundleArchive(content)
        except InvalidBundleError as e:
            raise ValidationError(e.message, field="file")
        metadata = archive.read_entry(METADATA_ENTRY)
        if metadata is None:
            raise ValidationError(f"Uploaded archive is missing {METADATA_ENTRY}", field="file")
        return derive_update_id(metadata).update_id

    def _publish(
        self,
        content: bytes,
        runtime_version: str,
        commit_hash: str,
        commit_message: str,
        release_notes: Optional[str],
        update_id: str,
    ) -> Release:
        validate_runtime_version(runtime_version)
        path = self.storage.upload_file(build_storage_path(runtime_version), content)
        return self.release_service.create_release(
            path=path,
            runtime_version=runtime_version,
            commit_hash=commit_hash,
            update_id=update_id,
            commit_message=commit_message,
            release_notes=release_notes,
        )
