"""
Read access to uploaded update archives.

An update archive is the zipped output of an export run:

    metadata.json          per-platform asset list and launch bundle path
    expoConfig.json        client-facing app config (optional)
    rollback               marker entry; its presence makes the bundle a rollback
    assets/<hash>          asset files referenced by metadata.json
    _expo/static/js/...    launch bundles

Callers only rely on byte-addressable entry lookup; the zip representation
stays inside this module.
"""

import io
import json
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.src.models import Platform
from backend.src.services.exceptions import InvalidBundleError
from backend.src.services.storage.base import StorageAdapter
from backend.src.utils.hashing import ContentAddress, derive_update_id
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


METADATA_ENTRY = "metadata.json"
APP_CONFIG_ENTRY = "expoConfig.json"
ROLLBACK_ENTRY = "rollback"

# Earliest time a zip entry can record
ZIP_EPOCH = datetime(1980, 1, 1)


@dataclass(frozen=True)
class AssetEntry:
    """One asset listed in metadata.json: archive path and bare extension."""
    path: str
    ext: Optional[str]


@dataclass
class PlatformMetadata:
    """Assets and launch bundle declared for one platform."""
    bundle: str
    assets: List[AssetEntry] = field(default_factory=list)

    def find_asset(self, path: str) -> Optional[AssetEntry]:
        for asset in self.assets:
            if asset.path == path:
                return asset
        return None


@dataclass
class BundleMetadata:
    """
    Parsed metadata.json.

    Attributes:
        raw: Exact metadata.json bytes (input to content addressing)
        file_metadata: Platform value -> declared files
        created_at: Modification time of metadata.json inside the archive
    """
    raw: bytes
    file_metadata: Dict[str, PlatformMetadata]
    created_at: datetime

    @property
    def address(self) -> ContentAddress:
        return derive_update_id(self.raw)

    @property
    def update_id(self) -> str:
        return self.address.update_id

    def for_platform(self, platform: Platform) -> PlatformMetadata:
        """
        Declared files for ``platform``.

        Raises:
            InvalidBundleError: If the bundle was not exported for this platform
        """
        try:
            return self.file_metadata[platform.value]
        except KeyError:
            raise InvalidBundleError(
                f"Update bundle has no metadata for platform {platform.value}"
            )


class BundleArchive:
    """
    Handle over one update archive held in memory.

    Usage:
        >>> archive = open_bundle(storage, release.path)
        >>> archive.is_rollback()
        False
        >>> metadata = archive.read_metadata()
    """

    def __init__(self, content: bytes, path: Optional[str] = None):
        """
        Open archive bytes.

        Raises:
            InvalidBundleError: If the bytes are not a zip archive
        """
        self.path = path
        self.size = len(content)
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile as e:
            raise InvalidBundleError(f"Update bundle {path or ''} is not a valid zip archive: {e}")

    def has_entry(self, name: str) -> bool:
        return self._info(name) is not None

    def read_entry(self, name: str) -> Optional[bytes]:
        """
        Read the bytes of entry ``name``.

        Returns:
            Entry bytes, or None when the archive has no such entry
        """
        info = self._info(name)
        if info is None:
            return None
        return self._zip.read(info)

    def entry_timestamp(self, name: str) -> Optional[datetime]:
        """
        Modification time recorded for ``name`` (zip times carry no zone; read as UTC).

        Entries whose DOS date fields are zero or out of range read as
        :data:`ZIP_EPOCH`.
        """
        info = self._info(name)
        if info is None:
            return None
        try:
            return datetime(*info.date_time)
        except ValueError:
            logger.warning(
                "Zip entry has an invalid timestamp",
                extra={"entry": name, "date_time": list(info.date_time), "path": self.path},
            )
            return ZIP_EPOCH

    def is_rollback(self) -> bool:
        """A bundle is a rollback when it carries a ``rollback`` entry."""
        return self.has_entry(ROLLBACK_ENTRY)

    def read_metadata(self) -> BundleMetadata:
        """
        Parse metadata.json.

        Raises:
            InvalidBundleError: If metadata.json is missing or malformed
        """
        raw = self.read_entry(METADATA_ENTRY)
        if raw is None:
            raise InvalidBundleError(f"Update bundle is missing {METADATA_ENTRY}")
        try:
            document = json.loads(raw)
            file_metadata = {
                platform: _parse_platform_metadata(entry)
                for platform, entry in (document.get("fileMetadata") or {}).items()
            }
        except (ValueError, AttributeError, TypeError, KeyError) as e:
            raise InvalidBundleError(f"Invalid {METADATA_ENTRY}: {e}")
        return BundleMetadata(
            raw=raw,
            file_metadata=file_metadata,
            created_at=self.entry_timestamp(METADATA_ENTRY),
        )

    def read_app_config(self) -> Optional[Dict[str, Any]]:
        """
        Parse the client-facing app config shipped with the bundle.

        Returns:
            Config object, or None when the bundle ships none

        Raises:
            InvalidBundleError: If the config entry is not a JSON object
        """
        raw = self.read_entry(APP_CONFIG_ENTRY)
        if raw is None:
            return None
        try:
            config = json.loads(raw)
        except ValueError as e:
            raise InvalidBundleError(f"Invalid {APP_CONFIG_ENTRY}: {e}")
        if not isinstance(config, dict):
            raise InvalidBundleError(f"{APP_CONFIG_ENTRY} must contain a JSON object")
        return config

    def _info(self, name: str) -> Optional[zipfile.ZipInfo]:
        try:
            return self._zip.getinfo(name)
        except KeyError:
            return None


def _parse_platform_metadata(entry: Dict[str, Any]) -> PlatformMetadata:
    bundle = entry["bundle"]
    if not isinstance(bundle, str) or not bundle:
        raise ValueError("platform entry needs a bundle path")
    assets = [
        AssetEntry(path=asset["path"], ext=asset.get("ext"))
        for asset in entry.get("assets") or []
    ]
    return PlatformMetadata(bundle=bundle, assets=assets)


def open_bundle(storage: StorageAdapter, path: str) -> BundleArchive:
    """
    Fetch an archive from blob storage and open it.

    Raises:
        StorageError: If the archive cannot be read
        InvalidBundleError: If the bytes are not a zip archive
    """
    return BundleArchive(storage.read_file(path), path=path)
