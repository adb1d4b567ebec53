"""
Health check endpoint.

Reports release store connectivity, the number of releases, download totals
and the non-secret configuration operators usually need when debugging a
deployment.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.api.dependencies import get_app_settings, get_storage
from backend.src.config.settings import AppSettings
from backend.src.db.database import get_db
from backend.src.schemas.health import EnvironmentInfo, HealthResponse
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    tags=["Health"],
)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    responses={500: {"model": HealthResponse, "description": "Release store unreachable"}},
)
def health_check(
    db: Session = Depends(get_db),
    storage: StorageAdapter = Depends(get_storage),
    settings: AppSettings = Depends(get_app_settings),
) -> JSONResponse:
    """
    Check the release store and storage backend.

    Returns 500 with status "unhealthy" when the release store cannot be read.
    Storage problems are reported but do not change the status.
    """
    environment = EnvironmentInfo(
        environment=settings.environment,
        database_dialect=db.get_bind().dialect.name,
        storage_type=storage.backend_name,
        signing_enabled=settings.signing_configured,
        hostname=settings.hostname,
    )
    _, storage_message = storage.test_connection()

    release_service = ReleaseService(db)
    try:
        releases_count = release_service.count_releases()
        downloads = release_service.get_tracking_metrics()
    except SQLAlchemyError as e:
        logger.error("Health check failed", extra={"error": str(e)})
        report = HealthResponse(
            status="unhealthy",
            database="disconnected",
            storage=storage_message,
            error=str(e),
            environment=environment,
            timestamp=datetime.now(timezone.utc),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=report.model_dump(mode="json", by_alias=True),
        )

    report = HealthResponse(
        status="healthy",
        database="connected",
        releases_count=releases_count,
        downloads=downloads,
        storage=storage_message,
        environment=environment,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(content=report.model_dump(mode="json", by_alias=True))
