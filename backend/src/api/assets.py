"""
Asset API endpoint.

Serves the files referenced by manifests. Assets are immutable (content
addressed), so responses are cacheable forever. Bodies above 4 MiB are sent
with chunked transfer instead of a single buffered write.
"""

from typing import Iterator, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse

from backend.src.api.dependencies import get_asset_service
from backend.src.services.asset_service import AssetService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    tags=["Updates"],
)

STREAMING_THRESHOLD = 4 * 1024 * 1024
STREAM_CHUNK_SIZE = 1024 * 1024
ASSET_CACHE_CONTROL = "public, max-age=31536000, immutable"


def iter_chunks(content: bytes, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield ``content`` in slices of at most ``chunk_size`` bytes."""
    view = memoryview(content)
    for offset in range(0, len(content), chunk_size):
        yield bytes(view[offset:offset + chunk_size])


@router.get(
    "/assets",
    summary="Download an update asset",
    description="Serve one file declared in the latest bundle for a runtime version",
)
def get_asset(
    asset: Optional[str] = Query(None, description="Asset path inside the bundle"),
    runtime_version: Optional[str] = Query(None, alias="runtimeVersion"),
    platform: Optional[str] = Query(None, description="ios or android"),
    asset_service: AssetService = Depends(get_asset_service),
) -> Response:
    """
    Serve an asset or launch bundle.

    Raises:
        ValidationError: Missing asset path, runtime version or platform (400)
        NotFoundError: Asset not declared in the bundle (404)
    """
    resolved = asset_service.get_asset(asset, runtime_version, platform)
    headers = {"Cache-Control": ASSET_CACHE_CONTROL}

    if resolved.size > STREAMING_THRESHOLD:
        logger.info(
            "Streaming large asset",
            extra={"asset": resolved.path, "size": resolved.size},
        )
        return StreamingResponse(
            iter_chunks(resolved.content),
            media_type=resolved.content_type,
            headers=headers,
        )

    return Response(
        content=resolved.content,
        media_type=resolved.content_type,
        headers=headers,
    )
