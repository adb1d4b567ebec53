"""
Pydantic schemas for the health and root endpoints.
"""

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class EnvironmentInfo(BaseModel):
    """Non-secret configuration relevant to operators."""
    environment: str
    database_dialect: str
    storage_type: str
    signing_enabled: bool
    hostname: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class HealthResponse(BaseModel):
    """Health report; status is unhealthy when the release store is unreachable."""
    status: Literal["healthy", "unhealthy"]
    database: Literal["connected", "disconnected"]
    releases_count: Optional[int] = Field(None, description="Number of releases stored")
    downloads: Optional[Dict[str, int]] = Field(
        None, description="Manifest downloads per platform"
    )
    storage: Optional[str] = Field(None, description="Storage backend connectivity message")
    error: Optional[str] = None
    environment: EnvironmentInfo
    timestamp: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
