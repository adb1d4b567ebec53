"""
FastAPI application entry point for the OTA updates server.

This module initializes the FastAPI application with:
- Application state (settings, blob storage adapter, manifest signer)
- Exception handlers mapping service errors to {"error": ...} bodies
- Startup checks that refuse to serve traffic without a reachable database
- Logging configuration

Environment Variables:
    OTA_DB_URL: Release store connection URL
    OTA_HOSTNAME: Public base URL used in asset URLs
    PRIVATE_KEY_PATH: PEM RSA key for code signing (optional)
    OTA_STORAGE_TYPE: local (default) or s3
    OTA_ENV: Environment (production/development, default: development)
    OTA_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
"""

import sys
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.src.config.settings import AppSettings, get_settings
from backend.src.db.database import check_database_connection, dispose_engine
from backend.src.services.exceptions import ServiceError, UpstreamError
from backend.src.services.storage import create_storage_adapter
from backend.src.utils.logging_config import init_logging, get_logger
from backend.src.utils.signing import ManifestSigner


APP_VERSION = "1.0.0"


def _fail_startup(title: str, detail: str, hint: str) -> None:
    """Print a startup error banner and exit."""
    print(
        "\n" + "=" * 70,
        f"\nERROR: {title}",
        f"\n\n{detail}",
        f"\n\n{hint}",
        "\n" + "=" * 70 + "\n",
        file=sys.stderr
    )
    sys.exit(1)


def validate_database() -> None:
    """
    Verify the release store answers a trivial query.

    Raises:
        SystemExit: If the database cannot be reached
    """
    try:
        check_database_connection()
    except SQLAlchemyError as e:
        get_logger("db").critical("Database unreachable at startup", extra={"error": str(e)})
        _fail_startup(
            "Cannot connect to the release database.",
            f"Connection check failed: {e}",
            "Check OTA_DB_URL and that the database server is running.",
        )


def load_signer(settings: AppSettings):
    """
    Load the code signing key when PRIVATE_KEY_PATH is set.

    Returns:
        ManifestSigner, or None when signing is not configured

    Raises:
        SystemExit: If a configured key cannot be loaded
    """
    if not settings.signing_configured:
        return None
    try:
        return ManifestSigner.from_pem_file(settings.private_key_path, key_id=settings.signing_key_id)
    except (OSError, ValueError) as e:
        _fail_startup(
            "PRIVATE_KEY_PATH does not point to a usable RSA private key.",
            f"Key loading failed: {e}",
            "To generate a new key pair, run:\n  python3 setup_signing_key.py",
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
    - Startup: Check the database, build storage adapter and signer
    - Shutdown: Dispose of pooled database connections

    Args:
        app: FastAPI application instance

    Yields:
        Control to the application
    """
    # Startup
    logger = get_logger("api")
    logger.info("Starting OTA updates server")

    settings = get_settings()

    logger.info("Checking release database connectivity")
    validate_database()

    try:
        storage = create_storage_adapter(settings)
    except ValueError as e:
        _fail_startup(
            "Blob storage is not configured correctly.",
            str(e),
            "Set OTA_STORAGE_TYPE=local or provide the S3 settings.",
        )
    signer = load_signer(settings)

    app.state.settings = settings
    app.state.storage = storage
    app.state.signer = signer
    logger.info(
        "OTA updates server started",
        extra={
            "storage": storage.backend_name,
            "signing_enabled": signer is not None,
            "environment": settings.environment,
        },
    )

    yield

    # Shutdown
    logger.info("Shutting down OTA updates server")
    dispose_engine()


# Initialize logging before creating app
init_logging()

# Create FastAPI application
app = FastAPI(
    title="OTA Updates Server",
    description="Over-the-air update server for mobile app runtimes. "
                "Serves signed manifests, rollback directives and bundle assets, "
                "and publishes uploaded bundles to runtime versions.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# Exception handlers


@app.exception_handler(ServiceError)
async def service_exception_handler(
    request: Request, exc: ServiceError
) -> JSONResponse:
    """
    Map service errors to their status code and an {"error": ...} body.

    Upstream failures are logged at ERROR; client errors at INFO.
    """
    logger = get_logger("api")
    extra = {
        "path": request.url.path,
        "method": request.method,
        "error_type": type(exc).__name__,
        "error": exc.message,
    }
    if isinstance(exc, UpstreamError):
        logger.error("Upstream failure", extra=extra)
    elif exc.status_code >= 500:
        logger.error("Service error", extra=extra)
    else:
        logger.info("Request rejected", extra=extra)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Args:
        request: HTTP request
        exc: FastAPI RequestValidationError

    Returns:
        JSON response with validation error details
    """
    logger = get_logger("api")
    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": str(exc.errors()),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Request validation failed",
            "details": jsonable_errors(exc),
        }
    )


def jsonable_errors(exc: RequestValidationError):
    """Validation errors reduced to JSON-safe location/message pairs."""
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """
    Handle SQLAlchemy database errors.

    Args:
        request: HTTP request
        exc: SQLAlchemy exception

    Returns:
        JSON response with database error message
    """
    logger = get_logger("db")
    logger.error(
        "Database error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "An error occurred while accessing the release database.",
        }
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    Args:
        request: HTTP request
        exc: Unhandled exception

    Returns:
        JSON response with generic error message
    """
    logger = get_logger("api")
    logger.error(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error": str(exc),
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
        }
    )


# API routers
from backend.src.api import assets, health, manifest, upload

app.include_router(manifest.router, prefix="/api")
app.include_router(assets.router, prefix="/api")
app.include_router(upload.router, prefix="/api")
app.include_router(health.router, prefix="/api")


# Root endpoint


@app.get("/", tags=["Root"])
async def root() -> Dict[str, Any]:
    """
    Root endpoint with service information.

    Returns:
        Service metadata and endpoint list
    """
    return {
        "message": "OTA Updates Server",
        "version": APP_VERSION,
        "endpoints": {
            "manifest": "/api/manifest",
            "assets": "/api/assets",
            "upload": "/api/upload",
            "health": "/api/health",
        },
        "docs": "/docs",
    }
