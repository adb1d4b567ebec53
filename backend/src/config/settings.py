"""
Application settings configuration for the OTA updates server.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


VALID_STORAGE_TYPES = ("local", "s3")


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        OTA_HOSTNAME: Public base URL used to build asset URLs (default: http://localhost:3000)
        PRIVATE_KEY_PATH: Path to a PEM RSA private key for code signing (default: "" = disabled)
        OTA_SIGNING_KEY_ID: Key identifier reported in signatures (default: "main")
        OTA_STORAGE_TYPE: Blob storage backend, "local" or "s3" (default: "local")
        OTA_STORAGE_DIR: Root directory for local blob storage (default: "storage")
        OTA_S3_BUCKET: Bucket holding update archives when OTA_STORAGE_TYPE=s3
        OTA_S3_REGION: Bucket region (default: us-east-1)
        OTA_S3_ENDPOINT_URL: Endpoint for S3-compatible services (default: AWS)
        AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: S3 credentials
        OTA_ENV: Environment name (default: development)
    """

    hostname: str = Field(
        default="http://localhost:3000",
        validation_alias="OTA_HOSTNAME",
        description="Public base URL of this server, used in manifest asset URLs"
    )

    # Code signing
    private_key_path: str = Field(
        default="",
        validation_alias="PRIVATE_KEY_PATH",
        description="PEM-encoded RSA private key. Empty = signing unavailable."
    )

    signing_key_id: str = Field(
        default="main",
        validation_alias="OTA_SIGNING_KEY_ID",
        min_length=1,
    )

    # Blob storage
    storage_type: str = Field(
        default="local",
        validation_alias="OTA_STORAGE_TYPE",
    )

    storage_dir: str = Field(
        default="storage",
        validation_alias="OTA_STORAGE_DIR",
    )

    s3_bucket: str = Field(default="", validation_alias="OTA_S3_BUCKET")
    s3_region: str = Field(default="us-east-1", validation_alias="OTA_S3_REGION")
    s3_endpoint_url: Optional[str] = Field(default=None, validation_alias="OTA_S3_ENDPOINT_URL")
    aws_access_key_id: str = Field(default="", validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field(default="", validation_alias="AWS_SECRET_ACCESS_KEY")

    environment: str = Field(
        default="development",
        validation_alias="OTA_ENV",
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("storage_type")
    @classmethod
    def validate_storage_type(cls, v: str) -> str:
        """Validate the storage backend name."""
        v = v.strip().lower()
        if v not in VALID_STORAGE_TYPES:
            raise ValueError(
                f"OTA_STORAGE_TYPE must be one of: {', '.join(VALID_STORAGE_TYPES)}"
            )
        return v

    @field_validator("hostname")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Asset URLs are built as ``{hostname}/api/assets``."""
        return v.rstrip("/")

    @property
    def signing_configured(self) -> bool:
        """Check if a code signing key path is configured."""
        return bool(self.private_key_path)

    @property
    def s3_configured(self) -> bool:
        """Check if S3 storage has the settings it needs."""
        return bool(self.s3_bucket and self.aws_access_key_id and self.aws_secret_access_key)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
