"""
Asset retrieval for the asset endpoint.

Assets are served from the latest bundle of the requested runtime version.
Only files declared in that bundle's metadata for the requested platform
(auxiliary assets and the launch bundle) are served.
"""

from dataclasses import dataclass
from typing import Optional

from backend.src.models import Platform
from backend.src.services.bundle_archive import open_bundle
from backend.src.services.exceptions import InvalidBundleError, NotFoundError, ValidationError
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.services.update_locator import LookupStatus, UpdateLocator
from backend.src.utils.logging_config import get_logger
from backend.src.utils.mime import LAUNCH_ASSET_CONTENT_TYPE, content_type_for_extension


logger = get_logger("services")


@dataclass(frozen=True)
class AssetContent:
    path: str
    content: bytes
    content_type: str
    is_launch_asset: bool = False

    @property
    def size(self) -> int:
        return len(self.content)


class AssetService:
    """Service resolving asset requests to bytes and a content type."""

    def __init__(self, release_service: ReleaseService, storage: StorageAdapter):
        self.locator = UpdateLocator(release_service, storage)
        self.storage = storage

    def get_asset(
        self,
        asset_path: Optional[str],
        runtime_version: Optional[str],
        platform: Optional[str],
    ) -> AssetContent:
        """
        Fetch one declared file of the latest bundle.

        Raises:
            ValidationError: If a query parameter is missing or invalid
            NotFoundError: If no bundle exists or the asset is not declared in it
            InvalidBundleError: If the asset extension has no MIME mapping
            StorageError: Blob storage failure
        """
        if not asset_path:
            raise ValidationError("No asset path provided.", field="asset")
        try:
            parsed_platform = Platform(platform or "")
        except ValueError:
            raise ValidationError(
                'No platform provided. Expected "ios" or "android".',
                field="platform",
            )
        if not runtime_version:
            raise ValidationError("No runtimeVersion provided.", field="runtimeVersion")

        lookup = self.locator.locate(runtime_version)
        if lookup.status is not LookupStatus.FOUND:
            raise NotFoundError(
                "Update",
                runtime_version,
                f"No update found for runtime version: {runtime_version}",
            )

        archive = open_bundle(self.storage, lookup.path)
        platform_metadata = archive.read_metadata().for_platform(parsed_platform)

        is_launch_asset = platform_metadata.bundle == asset_path
        asset_entry = platform_metadata.find_asset(asset_path)
        if asset_entry is None and not is_launch_asset:
            raise NotFoundError("Asset", asset_path, f"Asset not found: {asset_path}")

        content = archive.read_entry(asset_path)
        if content is None:
            raise NotFoundError("Asset", asset_path, f"Asset not found: {asset_path}")

        if is_launch_asset:
            content_type = LAUNCH_ASSET_CONTENT_TYPE
        else:
            content_type = content_type_for_extension(asset_entry.ext)
            if content_type is None:
                raise InvalidBundleError(
                    f"No known content type for asset {asset_path} (extension {asset_entry.ext!r})"
                )

        logger.debug(
            "Resolved asset",
            extra={"asset": asset_path, "size": len(content), "content_type": content_type},
        )
        return AssetContent(
            path=asset_path,
            content=content,
            content_type=content_type,
            is_launch_asset=is_launch_asset,
        )
