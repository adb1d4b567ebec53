"""
Unit tests for application settings.
"""

import pytest
from pydantic import ValidationError

from backend.src.config.settings import AppSettings


class TestAppSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OTA_HOSTNAME", raising=False)
        monkeypatch.delenv("PRIVATE_KEY_PATH", raising=False)

        settings = AppSettings()

        assert settings.hostname == "http://localhost:3000"
        assert settings.signing_key_id == "main"
        assert not settings.signing_configured

    def test_hostname_trailing_slash(self, monkeypatch):
        monkeypatch.setenv("OTA_HOSTNAME", "https://updates.example.com/")
        assert AppSettings().hostname == "https://updates.example.com"

    def test_signing_configured(self, monkeypatch):
        monkeypatch.setenv("PRIVATE_KEY_PATH", "/etc/ota/private-key.pem")
        assert AppSettings().signing_configured

    def test_storage_type_normalized(self, monkeypatch):
        monkeypatch.setenv("OTA_STORAGE_TYPE", " S3 ")
        assert AppSettings().storage_type == "s3"

    def test_invalid_storage_type(self, monkeypatch):
        monkeypatch.setenv("OTA_STORAGE_TYPE", "ftp")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_s3_configured(self, monkeypatch):
        monkeypatch.setenv("OTA_S3_BUCKET", "ota-bundles")
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
        assert AppSettings().s3_configured
