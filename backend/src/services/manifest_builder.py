"""
Manifest construction for normal (non-rollback) updates.

A manifest describes one update: its content-derived id, creation time, the
launch bundle and every auxiliary asset the client must download. Assets are
content addressed so clients can skip files they already hold.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from backend.src.models import Platform
from backend.src.services.bundle_archive import BundleArchive, BundleMetadata
from backend.src.services.exceptions import InvalidBundleError
from backend.src.utils.hashing import asset_hash, asset_key
from backend.src.utils.mime import LAUNCH_ASSET_CONTENT_TYPE, content_type_for_extension


@dataclass
class AssetDescriptor:
    """Content-addressed description of one file in an update."""
    hash: str
    key: str
    content_type: str
    url: str
    file_extension: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "hash": self.hash,
            "key": self.key,
            "contentType": self.content_type,
        }
        if self.file_extension is not None:
            data["fileExtension"] = self.file_extension
        data["url"] = self.url
        return data


@dataclass
class Manifest:
    """Wire-ready description of a normal update."""
    id: str
    created_at: datetime
    runtime_version: str
    launch_asset: AssetDescriptor
    assets: List[AssetDescriptor] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def asset_keys(self) -> List[str]:
        """Keys of every file in the update, launch asset first."""
        return [self.launch_asset.key] + [asset.key for asset in self.assets]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": format_timestamp(self.created_at),
            "runtimeVersion": self.runtime_version,
            "assets": [asset.to_dict() for asset in self.assets],
            "launchAsset": self.launch_asset.to_dict(),
            "metadata": self.metadata,
            "extra": self.extra,
        }


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def asset_url(hostname: str, path: str, runtime_version: str, platform: Platform) -> str:
    """Absolute URL of the asset endpoint serving ``path``."""
    query = urlencode({
        "asset": path,
        "runtimeVersion": runtime_version,
        "platform": platform.value,
    })
    return f"{hostname}/api/assets?{query}"


class ManifestBuilder:
    """
    Builds manifests from an opened bundle.

    Usage:
        >>> builder = ManifestBuilder("https://updates.example.com")
        >>> manifest = builder.build(archive, metadata, Platform.IOS, "1.0.0")
        >>> manifest.launch_asset.content_type
        'application/javascript'
    """

    def __init__(self, hostname: str):
        self.hostname = hostname.rstrip("/")

    def build(
        self,
        archive: BundleArchive,
        metadata: BundleMetadata,
        platform: Platform,
        runtime_version: str,
        release_notes: Optional[str] = None,
        app_config: Optional[Dict[str, Any]] = None,
    ) -> Manifest:
        """
        Describe the update held in ``archive`` for one platform.

        Args:
            archive: Opened update bundle
            metadata: Parsed metadata.json of that bundle
            platform: Requesting client platform
            runtime_version: Requested runtime version (echoed back)
            release_notes: Display notes of the matching release, if any
            app_config: Client-facing app config, if the bundle ships one

        Raises:
            InvalidBundleError: If a declared file is missing or an asset
                extension has no MIME mapping
        """
        platform_metadata = metadata.for_platform(platform)

        assets = [
            self._describe(
                archive,
                asset.path,
                platform,
                runtime_version,
                content_type=self._content_type(asset.path, asset.ext),
                file_extension=f".{asset.ext.lstrip('.')}",
            )
            for asset in platform_metadata.assets
        ]
        launch_asset = self._describe(
            archive,
            platform_metadata.bundle,
            platform,
            runtime_version,
            content_type=LAUNCH_ASSET_CONTENT_TYPE,
        )

        manifest_metadata: Dict[str, Any] = {}
        if release_notes:
            manifest_metadata["releaseNotes"] = release_notes

        extra: Dict[str, Any] = {}
        if app_config is not None:
            extra["expoClient"] = app_config

        return Manifest(
            id=metadata.update_id,
            created_at=metadata.created_at,
            runtime_version=runtime_version,
            launch_asset=launch_asset,
            assets=assets,
            metadata=manifest_metadata,
            extra=extra,
        )

    @staticmethod
    def _content_type(path: str, ext: Optional[str]) -> str:
        content_type = content_type_for_extension(ext)
        if content_type is None:
            raise InvalidBundleError(f"No known content type for asset {path} (extension {ext!r})")
        return content_type

    def _describe(
        self,
        archive: BundleArchive,
        path: str,
        platform: Platform,
        runtime_version: str,
        content_type: str,
        file_extension: Optional[str] = None,
    ) -> AssetDescriptor:
        data = archive.read_entry(path)
        if data is None:
            raise InvalidBundleError(f"Update bundle is missing declared file {path}")
        return AssetDescriptor(
            hash=asset_hash(data),
            key=asset_key(data),
            content_type=content_type,
            url=asset_url(self.hostname, path, runtime_version, platform),
            file_extension=file_extension,
        )
