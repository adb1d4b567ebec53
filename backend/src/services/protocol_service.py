"""
Manifest protocol engine.

Decides, for one client poll, whether to send a manifest, a directive or
nothing new, and encodes the answer as a multipart response body.

Decision order:
1. Request fields are parsed once into a ManifestRequest (platform, runtime
   version, protocol version).
2. The latest release row is looked up. Protocol 1 clients already running
   it get noUpdateAvailable before blob storage is consulted; protocol 0
   clients are re-served the manifest.
3. With nothing uploaded, protocol 1 clients get noUpdateAvailable and
   protocol 0 clients a 404.
4. Rollback bundles produce a rollback directive, others a manifest.
5. Manifests are optionally signed, and each one sent is recorded as a
   download of the release.
"""

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backend.src.models import Platform
from backend.src.services.bundle_archive import ROLLBACK_ENTRY, open_bundle
from backend.src.services.directive_builder import (
    Directive,
    DirectiveType,
    build_no_update_available,
    build_rollback,
)
from backend.src.services.exceptions import (
    ConfigurationError,
    NotFoundError,
    ValidationError,
)
from backend.src.services.manifest_builder import Manifest, ManifestBuilder
from backend.src.services.release_service import ReleaseService
from backend.src.services.storage.base import StorageAdapter
from backend.src.services.update_locator import LookupStatus, UpdateLocator
from backend.src.utils.hashing import update_ids_match
from backend.src.utils.logging_config import get_logger
from backend.src.utils.multipart import MultipartPart, encode_multipart, response_headers
from backend.src.utils.signing import ManifestSigner


logger = get_logger("services")

SIGNATURE_HEADER = "expo-signature"


class ProtocolVersion(int, enum.Enum):
    """Update protocol revisions a client may speak."""
    V0 = 0
    V1 = 1

    @classmethod
    def parse(cls, values: Optional[List[str]]) -> "ProtocolVersion":
        """
        Parse the ``expo-protocol-version`` header values.

        A missing header means version 0. Repeated headers are rejected.

        Raises:
            ValidationError: If repeated, non-numeric or unsupported
        """
        if not values:
            return cls.V0
        if len(values) > 1:
            raise ValidationError(
                "Unsupported protocol version. Expected either 0 or 1.",
                field="expo-protocol-version",
            )
        try:
            return cls(int(values[0].strip()))
        except ValueError:
            raise ValidationError(
                "Unsupported protocol version. Expected either 0 or 1.",
                field="expo-protocol-version",
            )


class ProtocolOutcome(enum.Enum):
    MANIFEST_SENT = "manifest_sent"
    DIRECTIVE_SENT = "directive_sent"
    NO_UPDATE_SENT = "no_update_sent"


@dataclass(frozen=True)
class ManifestRequest:
    """Validated client poll."""
    platform: Platform
    runtime_version: str
    protocol_version: ProtocolVersion
    current_update_id: Optional[str] = None
    embedded_update_id: Optional[str] = None
    expect_signature: bool = False

    @classmethod
    def parse(
        cls,
        platform: Optional[str],
        runtime_version: Optional[str],
        protocol_versions: Optional[List[str]] = None,
        current_update_id: Optional[str] = None,
        embedded_update_id: Optional[str] = None,
        expect_signature: Optional[str] = None,
    ) -> "ManifestRequest":
        """
        Validate raw request values.

        Raises:
            ValidationError: If the platform is unsupported, the runtime
                version is missing or the protocol version is invalid
        """
        protocol_version = ProtocolVersion.parse(protocol_versions)

        try:
            parsed_platform = Platform((platform or "").strip().lower())
        except ValueError:
            raise ValidationError(
                "Unsupported platform. Expected either ios or android.",
                field="expo-platform",
            )

        runtime_version = (runtime_version or "").strip()
        if not runtime_version:
            raise ValidationError("No runtimeVersion provided.", field="expo-runtime-version")

        return cls(
            platform=parsed_platform,
            runtime_version=runtime_version,
            protocol_version=protocol_version,
            current_update_id=(current_update_id or "").strip() or None,
            embedded_update_id=(embedded_update_id or "").strip() or None,
            expect_signature=bool(expect_signature and expect_signature.strip()),
        )


@dataclass
class ProtocolResult:
    """Encoded protocol response, ready to hand to the web layer."""
    outcome: ProtocolOutcome
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    update_id: Optional[str] = None


def dump_json(document: Dict[str, Any]) -> str:
    """Compact JSON text; the signature covers exactly these characters."""
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


class ProtocolService:
    """
    Service answering manifest polls.

    Usage:
        >>> service = ProtocolService(release_service, storage, signer, hostname)
        >>> result = service.handle(ManifestRequest.parse("ios", "1.0.0", ["1"]))
        >>> result.outcome
        <ProtocolOutcome.MANIFEST_SENT: 'manifest_sent'>
    """

    def __init__(
        self,
        release_service: ReleaseService,
        storage: StorageAdapter,
        signer: Optional[ManifestSigner],
        hostname: str,
    ):
        self.release_service = release_service
        self.storage = storage
        self.signer = signer
        self.locator = UpdateLocator(release_service, storage)
        self.manifest_builder = ManifestBuilder(hostname)

    def handle(self, request: ManifestRequest) -> ProtocolResult:
        """
        Resolve one poll into a manifest, a directive or noUpdateAvailable.

        Raises:
            ValidationError: Rollback requested of a protocol 0 client, or
                rollback without an embedded update id
            ConfigurationError: Signature requested but no key configured
            NotFoundError: No release (protocol 0) or archive missing
            InvalidBundleError: Stored bundle cannot be described
            StorageError: Blob storage failure
        """
        if request.expect_signature and self.signer is None:
            raise ConfigurationError("Code signing requested but no key supplied when starting server.")

        release = self.locator.latest_release(request.runtime_version)

        if release is None:
            if request.protocol_version is ProtocolVersion.V0:
                raise NotFoundError(
                    "Update",
                    request.runtime_version,
                    f"No update found for runtime version: {request.runtime_version}",
                )
            return self._no_update(request)

        if (
            request.protocol_version is ProtocolVersion.V1
            and update_ids_match(request.current_update_id, release.update_id)
        ):
            return self._no_update(request)

        lookup = self.locator.check_archive(release)
        if lookup.status is LookupStatus.ARCHIVE_MISSING:
            raise NotFoundError(
                "Update bundle",
                release.path,
                f"Update bundle not found for runtime version: {request.runtime_version}",
            )

        archive = open_bundle(self.storage, lookup.path)

        if archive.is_rollback():
            directive = build_rollback(
                request.protocol_version,
                request.current_update_id,
                request.embedded_update_id,
                archive.entry_timestamp(ROLLBACK_ENTRY),
            )
            return self._directive_response(request, directive)

        metadata = archive.read_metadata()
        if (
            request.protocol_version is ProtocolVersion.V1
            and update_ids_match(request.current_update_id, metadata.update_id)
        ):
            return self._no_update(request)

        manifest = self.manifest_builder.build(
            archive,
            metadata,
            request.platform,
            request.runtime_version,
            release_notes=release.display_notes,
            app_config=archive.read_app_config(),
        )
        result = self._manifest_response(request, manifest)
        self._record_download(lookup.path, request.platform)
        return result

    # =========================================================================
    # Response assembly
    # =========================================================================

    def _no_update(self, request: ManifestRequest) -> ProtocolResult:
        return self._directive_response(request, build_no_update_available(request.protocol_version))

    def _directive_response(self, request: ManifestRequest, directive: Directive) -> ProtocolResult:
        part = self._json_part("directive", directive.to_dict(), request.expect_signature)
        body, boundary = encode_multipart([part])

        logger.info(
            "Sent directive",
            extra={
                "directive": directive.type.value,
                "runtime_version": request.runtime_version,
                "platform": request.platform.value,
                "protocol_version": int(request.protocol_version),
            },
        )
        if directive.type is DirectiveType.NO_UPDATE_AVAILABLE:
            outcome = ProtocolOutcome.NO_UPDATE_SENT
        else:
            outcome = ProtocolOutcome.DIRECTIVE_SENT
        return ProtocolResult(
            outcome=outcome,
            body=body,
            headers=response_headers(int(request.protocol_version), boundary),
        )

    def _manifest_response(self, request: ManifestRequest, manifest: Manifest) -> ProtocolResult:
        manifest_part = self._json_part("manifest", manifest.to_dict(), request.expect_signature)
        extensions_part = self._json_part(
            "extensions",
            {"assetRequestHeaders": {key: {} for key in manifest.asset_keys}},
            sign=False,
        )
        body, boundary = encode_multipart([manifest_part, extensions_part])

        logger.info(
            "Sent manifest",
            extra={
                "update_id": manifest.id,
                "runtime_version": request.runtime_version,
                "platform": request.platform.value,
                "protocol_version": int(request.protocol_version),
                "signed": request.expect_signature,
            },
        )
        return ProtocolResult(
            outcome=ProtocolOutcome.MANIFEST_SENT,
            body=body,
            headers=response_headers(int(request.protocol_version), boundary),
            update_id=manifest.id,
        )

    def _json_part(self, name: str, document: Dict[str, Any], sign: bool) -> MultipartPart:
        text = dump_json(document)
        headers = {}
        if sign:
            headers[SIGNATURE_HEADER] = self.signer.signature_header(text)
        return MultipartPart(name=name, body=text.encode("utf-8"), headers=headers)

    # =========================================================================
    # Download tracking
    # =========================================================================

    def _record_download(self, path: str, platform: Platform) -> None:
        """Record a manifest download; store failures never fail the poll."""
        try:
            release = self.release_service.get_by_path(path)
            if release is None:
                logger.warning("No release row for served bundle", extra={"path": path})
                return
            self.release_service.create_tracking(release, platform)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to record download",
                extra={"path": path, "platform": platform.value, "error": str(e)},
            )
