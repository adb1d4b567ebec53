"""
Shared FastAPI dependencies.

The storage adapter, signer and settings are built once in the application
lifespan and kept on ``app.state``. Routers receive them (and the services
built from them) through these dependencies, so tests can swap any of them
with ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.src.config.settings import AppSettings
from backend.src.db.database import get_db
from backend.src.services.asset_service import AssetService
from backend.src.services.protocol_service import ProtocolService
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.services.upload_service import UploadService
from backend.src.utils.signing import ManifestSigner


def get_app_settings(request: Request) -> AppSettings:
    """Settings loaded at startup."""
    return request.app.state.settings


def get_storage(request: Request) -> StorageAdapter:
    """Blob storage adapter built at startup."""
    return request.app.state.storage


def get_signer(request: Request) -> Optional[ManifestSigner]:
    """Manifest signer, or None when no signing key is configured."""
    return getattr(request.app.state, "signer", None)


def get_release_service(db: Session = Depends(get_db)) -> ReleaseService:
    """Create ReleaseService instance with database session."""
    return ReleaseService(db=db)


def get_protocol_service(
    release_service: ReleaseService = Depends(get_release_service),
    storage: StorageAdapter = Depends(get_storage),
    signer: Optional[ManifestSigner] = Depends(get_signer),
    settings: AppSettings = Depends(get_app_settings),
) -> ProtocolService:
    """Create ProtocolService instance for one manifest request."""
    return ProtocolService(
        release_service=release_service,
        storage=storage,
        signer=signer,
        hostname=settings.hostname,
    )


def get_asset_service(
    release_service: ReleaseService = Depends(get_release_service),
    storage: StorageAdapter = Depends(get_storage),
) -> AssetService:
    """Create AssetService instance."""
    return AssetService(release_service=release_service, storage=storage)


def get_upload_service(
    release_service: ReleaseService = Depends(get_release_service),
    storage: StorageAdapter = Depends(get_storage),
) -> UploadService:
    """Create UploadService instance."""
    return UploadService(release_service=release_service, storage=storage)
