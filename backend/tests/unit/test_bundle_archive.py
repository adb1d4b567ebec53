"""
Unit tests for update bundle archive access.
"""

import json
from datetime import datetime

import pytest

from backend.src.models import Platform
from backend.src.services.bundle_archive import ZIP_EPOCH, BundleArchive, open_bundle
from backend.src.services.exceptions import InvalidBundleError, StorageError
from backend.src.utils.hashing import derive_update_id


class TestBundleArchive:
    """Tests for BundleArchive"""

    def test_rejects_non_zip_bytes(self):
        with pytest.raises(InvalidBundleError):
            BundleArchive(b"definitely not a zip")

    def test_read_entry(self, make_bundle, bundle_layout):
        archive = BundleArchive(make_bundle())

        assert archive.read_entry(bundle_layout["png"]) == bundle_layout["png_bytes"]
        assert archive.read_entry("assets/unknown") is None
        assert archive.has_entry("metadata.json")

    def test_entry_timestamp(self, make_bundle):
        archive = BundleArchive(make_bundle(rollback=True))

        assert archive.entry_timestamp("metadata.json") == datetime(2025, 1, 15, 12, 30, 44)
        assert archive.entry_timestamp("rollback") == datetime(2025, 2, 1, 8, 0, 0)
        assert archive.entry_timestamp("missing") is None

    def test_zero_entry_date_reads_as_zip_epoch(self, make_bundle):
        archive = BundleArchive(make_bundle(date_time=(1980, 0, 0, 0, 0, 0)))

        assert archive.entry_timestamp("metadata.json") == ZIP_EPOCH
        assert archive.read_metadata().created_at == datetime(1980, 1, 1)

    def test_rollback_marker(self, make_bundle):
        assert not BundleArchive(make_bundle()).is_rollback()
        assert BundleArchive(make_bundle(rollback=True)).is_rollback()

    def test_open_bundle_from_storage(self, make_bundle, test_storage):
        key = test_storage.upload_file("updates/1.0.0/a.zip", make_bundle())

        archive = open_bundle(test_storage, key)

        assert archive.path == key
        assert archive.has_entry("metadata.json")

    def test_open_missing_bundle(self, test_storage):
        with pytest.raises(StorageError):
            open_bundle(test_storage, "updates/1.0.0/missing.zip")


class TestReadMetadata:
    """Tests for BundleArchive.read_metadata()"""

    def test_parses_platforms(self, make_bundle, bundle_layout):
        metadata = BundleArchive(make_bundle()).read_metadata()

        ios = metadata.for_platform(Platform.IOS)
        assert ios.bundle == bundle_layout["ios_bundle"]
        assert [asset.ext for asset in ios.assets] == ["png", "ttf"]
        assert ios.find_asset(bundle_layout["png"]).ext == "png"
        assert ios.find_asset("assets/none") is None

    def test_update_id_uses_raw_bytes(self, make_bundle):
        raw = json.dumps({"fileMetadata": {}}, indent=4).encode()
        metadata = BundleArchive(make_bundle(metadata_bytes=raw)).read_metadata()

        assert metadata.raw == raw
        assert metadata.update_id == derive_update_id(raw).update_id

    def test_created_at(self, make_bundle):
        metadata = BundleArchive(make_bundle()).read_metadata()
        assert metadata.created_at == datetime(2025, 1, 15, 12, 30, 44)

    def test_missing_metadata(self, make_bundle):
        with pytest.raises(InvalidBundleError) as exc_info:
            BundleArchive(make_bundle(include_metadata=False)).read_metadata()
        assert "metadata.json" in exc_info.value.message

    @pytest.mark.parametrize(
        "raw",
        [
            b"{not json",
            b'["a", "list"]',
            b'{"fileMetadata": {"ios": {"assets": []}}}',
            b'{"fileMetadata": {"ios": {"bundle": "b.js", "assets": [{"ext": "png"}]}}}',
        ],
    )
    def test_malformed_metadata(self, make_bundle, raw):
        with pytest.raises(InvalidBundleError):
            BundleArchive(make_bundle(metadata_bytes=raw)).read_metadata()

    def test_platform_not_exported(self, make_bundle, bundle_layout):
        file_metadata = {"ios": {"bundle": bundle_layout["ios_bundle"], "assets": []}}
        metadata = BundleArchive(make_bundle(file_metadata=file_metadata)).read_metadata()

        with pytest.raises(InvalidBundleError):
            metadata.for_platform(Platform.ANDROID)


class TestReadAppConfig:

    def test_absent(self, make_bundle):
        assert BundleArchive(make_bundle()).read_app_config() is None

    def test_present(self, make_bundle):
        config = {"name": "demo", "slug": "demo", "runtimeVersion": "1.0.0"}
        assert BundleArchive(make_bundle(app_config=config)).read_app_config() == config

    def test_must_be_object(self, make_bundle):
        with pytest.raises(InvalidBundleError):
            BundleArchive(make_bundle(app_config=["not", "an", "object"])).read_app_config()
