"""
Upload API endpoint.

Publishes an exported bundle (zip) to one or more runtime versions.

Form fields:
- file: zipped export output (must contain metadata.json)
- runtimeVersion: repeatable and/or comma-separated
- commitHash: required
- commitMessage: defaults to "No message provided"
- releaseNotes: optional

Response status: 200 when at least one runtime version was published, 500
when every target failed, 400 for missing fields or an unusable archive.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from backend.src.api.dependencies import get_upload_service
from backend.src.schemas.upload import UploadResponse
from backend.src.services.upload_service import UploadService, parse_runtime_versions
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    tags=["Releases"],
)


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Publish an update bundle",
    responses={
        400: {"description": "Missing fields or archive without metadata.json"},
        500: {"description": "Every runtime version failed", "model": UploadResponse},
    },
)
async def upload_bundle(
    file: Optional[UploadFile] = File(None, description="Zipped update bundle"),
    runtime_version: Optional[List[str]] = Form(None, alias="runtimeVersion"),
    commit_hash: Optional[str] = Form(None, alias="commitHash"),
    commit_message: Optional[str] = Form(None, alias="commitMessage"),
    release_notes: Optional[str] = Form(None, alias="releaseNotes"),
    upload_service: UploadService = Depends(get_upload_service),
) -> JSONResponse:
    """
    Publish a bundle.

    Fields are optional at the form level so that a missing one yields the
    400 error body rather than a 422 validation report.
    """
    content = await file.read() if file is not None else None
    runtime_versions = parse_runtime_versions(runtime_version)

    result = await run_in_threadpool(
        upload_service.upload,
        content,
        runtime_versions,
        commit_hash,
        commit_message,
        release_notes,
    )

    response = UploadResponse.from_result(result)
    status_code = status.HTTP_200_OK if result.success else status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.info(
        "Upload request completed",
        extra={
            "update_id": result.update_id,
            "deployed_versions": result.deployed_versions,
            "failed_versions": [failure.version for failure in result.failed_versions],
            "upload_filename": file.filename if file is not None else None,
        },
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(by_alias=True))
