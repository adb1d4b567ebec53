"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.health import EnvironmentInfo, HealthResponse
from backend.src.schemas.upload import FailedVersion, ReleaseSummary, UploadResponse

__all__ = [
    "EnvironmentInfo",
    "HealthResponse",
    "FailedVersion",
    "ReleaseSummary",
    "UploadResponse",
]
