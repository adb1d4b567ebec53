"""
Unit tests for AssetService.
"""

import pytest

from backend.src.services.asset_service import AssetService
from backend.src.services.exceptions import InvalidBundleError, NotFoundError, ValidationError


@pytest.fixture
def asset_service(release_service, test_storage):
    return AssetService(release_service, test_storage)


class TestGetAsset:
    """Tests for AssetService.get_asset()"""

    def test_auxiliary_asset(self, asset_service, make_bundle, publish_bundle, bundle_layout):
        publish_bundle(make_bundle())

        asset = asset_service.get_asset(bundle_layout["png"], "1.0.0", "ios")

        assert asset.content == bundle_layout["png_bytes"]
        assert asset.content_type == "image/png"
        assert asset.size == len(bundle_layout["png_bytes"])
        assert not asset.is_launch_asset

    def test_font_asset(self, asset_service, make_bundle, publish_bundle, bundle_layout):
        publish_bundle(make_bundle())

        asset = asset_service.get_asset(bundle_layout["font"], "1.0.0", "android")
        assert asset.content_type == "font/ttf"

    def test_launch_asset(self, asset_service, make_bundle, publish_bundle, bundle_layout):
        publish_bundle(make_bundle())

        asset = asset_service.get_asset(bundle_layout["android_bundle"], "1.0.0", "android")

        assert asset.is_launch_asset
        assert asset.content_type == "application/javascript"
        assert asset.content == b"// android launch bundle v1"

    def test_other_platform_bundle_not_served(self, asset_service, make_bundle, publish_bundle, bundle_layout):
        publish_bundle(make_bundle())

        with pytest.raises(NotFoundError):
            asset_service.get_asset(bundle_layout["android_bundle"], "1.0.0", "ios")

    def test_undeclared_entry_not_served(self, asset_service, make_bundle, publish_bundle):
        publish_bundle(make_bundle())

        with pytest.raises(NotFoundError) as exc_info:
            asset_service.get_asset("metadata.json", "1.0.0", "ios")
        assert exc_info.value.message == "Asset not found: metadata.json"

    def test_served_from_latest_release(self, asset_service, make_bundle, publish_bundle, bundle_layout):
        publish_bundle(make_bundle(bundle_label="old"))
        publish_bundle(make_bundle(bundle_label="new"))

        asset = asset_service.get_asset(bundle_layout["ios_bundle"], "1.0.0", "ios")
        assert asset.content == b"// ios launch bundle new"

    def test_no_release(self, asset_service, bundle_layout):
        with pytest.raises(NotFoundError):
            asset_service.get_asset(bundle_layout["png"], "1.0.0", "ios")

    def test_unknown_extension(self, asset_service, make_bundle, publish_bundle, bundle_layout, file_metadata):
        metadata = file_metadata(ios_assets=[{"path": bundle_layout["png"], "ext": "unknownext"}])
        publish_bundle(make_bundle(file_metadata=metadata))

        with pytest.raises(InvalidBundleError):
            asset_service.get_asset(bundle_layout["png"], "1.0.0", "ios")

    @pytest.mark.parametrize(
        "asset,runtime_version,platform,message",
        [
            (None, "1.0.0", "ios", "No asset path provided."),
            ("assets/a", "1.0.0", None, 'No platform provided. Expected "ios" or "android".'),
            ("assets/a", "1.0.0", "web", 'No platform provided. Expected "ios" or "android".'),
            ("assets/a", None, "ios", "No runtimeVersion provided."),
        ],
    )
    def test_invalid_query(self, asset_service, asset, runtime_version, platform, message):
        with pytest.raises(ValidationError) as exc_info:
            asset_service.get_asset(asset, runtime_version, platform)
        assert exc_info.value.message == message
