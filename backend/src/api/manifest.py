"""
Manifest API endpoint.

Client runtimes poll this endpoint on launch. The answer is always a
multipart/mixed body holding either a manifest (plus extensions) or a
directive; "no update" is a directive, never an HTTP error.

Request headers (query fallbacks in parentheses):
- expo-platform (platform): ios | android
- expo-runtime-version (runtime-version)
- expo-protocol-version: 0 (default) or 1, at most once
- expo-current-update-id / expo-embedded-update-id
- expo-expect-signature: request an expo-signature on the manifest part
"""

from fastapi import APIRouter, Depends, Request, Response

from backend.src.api.dependencies import get_protocol_service
from backend.src.services.protocol_service import ManifestRequest, ProtocolService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    tags=["Updates"],
)


@router.get(
    "/manifest",
    summary="Get the update manifest",
    description="Resolve the latest update for a runtime version and platform",
    responses={
        200: {"content": {"multipart/mixed": {}}},
        400: {"description": "Invalid request or signing not configured"},
        404: {"description": "No update (protocol 0) or bundle unavailable"},
    },
)
def get_manifest(
    request: Request,
    protocol_service: ProtocolService = Depends(get_protocol_service),
) -> Response:
    """
    Serve a manifest or directive for one client poll.

    Runs on the threadpool: archive reads and signing are blocking work.
    """
    headers = request.headers
    query = request.query_params

    manifest_request = ManifestRequest.parse(
        platform=headers.get("expo-platform") or query.get("platform"),
        runtime_version=headers.get("expo-runtime-version") or query.get("runtime-version"),
        protocol_versions=headers.getlist("expo-protocol-version"),
        current_update_id=headers.get("expo-current-update-id"),
        embedded_update_id=headers.get("expo-embedded-update-id"),
        expect_signature=headers.get("expo-expect-signature"),
    )

    result = protocol_service.handle(manifest_request)

    logger.debug(
        "Manifest request resolved",
        extra={
            "outcome": result.outcome.value,
            "update_id": result.update_id,
            "runtime_version": manifest_request.runtime_version,
        },
    )
    return Response(content=result.body, headers=result.headers)
