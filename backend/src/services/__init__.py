"""
Service layer for business logic.

This module exports all service classes for use in API endpoints.
"""

from backend.src.services.asset_service import AssetContent, AssetService
from backend.src.services.exceptions import (
    ServiceError,
    ValidationError,
    ConfigurationError,
    NotFoundError,
    InvalidBundleError,
    UpstreamError,
    StorageError,
    ProtocolViolationError,
)
from backend.src.services.protocol_service import (
    ManifestRequest,
    ProtocolOutcome,
    ProtocolResult,
    ProtocolService,
    ProtocolVersion,
)
from backend.src.services.release_service import ReleaseService
from backend.src.services.update_locator import LookupStatus, UpdateLocator, UpdateLookup
from backend.src.services.upload_service import UploadResult, UploadService

__all__ = [
    "AssetContent",
    "AssetService",
    "ServiceError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
    "InvalidBundleError",
    "UpstreamError",
    "StorageError",
    "ProtocolViolationError",
    "ManifestRequest",
    "ProtocolOutcome",
    "ProtocolResult",
    "ProtocolService",
    "ProtocolVersion",
    "ReleaseService",
    "LookupStatus",
    "UpdateLocator",
    "UpdateLookup",
    "UploadResult",
    "UploadService",
]
