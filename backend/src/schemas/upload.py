"""
Pydantic schemas for the upload endpoint.

Field names are snake_case in Python and camelCase on the wire, matching the
keys publishing scripts already read (updateId, deployedVersions, ...).
"""

from typing import List

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from backend.src.services.upload_service import UploadResult


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class FailedVersion(_CamelModel):
    """Runtime version that could not be published."""
    version: str = Field(..., description="Runtime version")
    error: str = Field(..., description="Why publishing to this version failed")


class ReleaseSummary(_CamelModel):
    """Release row created for one runtime version."""
    guid: str = Field(..., description="External identifier (rel_xxx)")
    runtime_version: str = Field(..., description="Runtime version")
    path: str = Field(..., description="Storage key of the archive copy")


class UploadResponse(_CamelModel):
    """Result of publishing a bundle to one or more runtime versions."""
    success: bool = Field(..., description="True when at least one version was published")
    update_id: str = Field(..., description="Content-derived update id")
    deployed_versions: List[str] = Field(default_factory=list)
    failed_versions: List[FailedVersion] = Field(default_factory=list)
    releases: List[ReleaseSummary] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: UploadResult) -> "UploadResponse":
        return cls(
            success=result.success,
            update_id=result.update_id,
            deployed_versions=result.deployed_versions,
            failed_versions=[
                FailedVersion(version=failure.version, error=failure.error)
                for failure in result.failed_versions
            ],
            releases=[
                ReleaseSummary(
                    guid=release.guid,
                    runtime_version=release.runtime_version,
                    path=release.path,
                )
                for release in result.releases
            ],
        )
