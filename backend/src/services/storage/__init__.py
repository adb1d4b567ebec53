"""
Blob storage adapters for uploaded update archives.

Adapters:
- LocalStorageAdapter: Local filesystem (no dependencies)
- S3StorageAdapter: Amazon S3 and S3-compatible storage (boto3)

The configured adapter is built once at startup by create_storage_adapter()
and injected into request handlers.
"""

from backend.src.config.settings import AppSettings
from backend.src.services.storage.base import StorageAdapter
from backend.src.services.storage.local_adapter import LocalStorageAdapter


def create_storage_adapter(settings: AppSettings) -> StorageAdapter:
    """
    Build the storage adapter selected by OTA_STORAGE_TYPE.

    Raises:
        ValueError: If the S3 backend is selected without bucket/credentials
    """
    if settings.storage_type == "s3":
        if not settings.s3_configured:
            raise ValueError(
                "OTA_STORAGE_TYPE=s3 requires OTA_S3_BUCKET, AWS_ACCESS_KEY_ID "
                "and AWS_SECRET_ACCESS_KEY"
            )
        # boto3 is only imported when S3 is selected
        from backend.src.services.storage.s3_adapter import S3StorageAdapter

        return S3StorageAdapter(
            settings.s3_bucket,
            {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
                "region": settings.s3_region,
                "endpoint_url": settings.s3_endpoint_url,
            },
        )
    return LocalStorageAdapter(settings.storage_dir)


__all__ = [
    "StorageAdapter",
    "LocalStorageAdapter",
    "create_storage_adapter",
]
