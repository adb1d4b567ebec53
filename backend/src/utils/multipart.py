"""
multipart/mixed encoding for protocol responses.

Manifest and directive responses are multipart bodies whose parts are named
through ``Content-Disposition: form-data; name="..."`` headers. Each part may
carry extra headers (``expo-signature``).
"""

import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


CRLF = b"\r\n"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

PROTOCOL_HEADERS = {
    "expo-sfv-version": "0",
    "cache-control": "private, max-age=0",
}


@dataclass
class MultipartPart:
    """One named part of a multipart body."""
    name: str
    body: bytes
    content_type: str = JSON_CONTENT_TYPE
    headers: Dict[str, str] = field(default_factory=dict)


def generate_boundary() -> str:
    """Random boundary, unlikely to collide with JSON payload text."""
    return f"----OTAUpdatesBoundary{secrets.token_hex(12)}"


def encode_multipart(
    parts: List[MultipartPart],
    boundary: Optional[str] = None,
) -> Tuple[bytes, str]:
    """
    Encode parts into a multipart body.

    Args:
        parts: Parts in emission order
        boundary: Explicit boundary (tests); random when omitted

    Returns:
        Tuple of (body bytes, boundary)

    Raises:
        ValueError: If the boundary occurs inside a part body
    """
    if boundary is None:
        boundary = generate_boundary()
    delimiter = f"--{boundary}".encode("ascii")

    chunks: List[bytes] = []
    for part in parts:
        if delimiter in part.body:
            raise ValueError("Multipart boundary collides with part content")
        chunks.append(delimiter + CRLF)
        chunks.append(
            f'Content-Disposition: form-data; name="{part.name}"'.encode("ascii") + CRLF
        )
        chunks.append(f"Content-Type: {part.content_type}".encode("ascii") + CRLF)
        for header_name, header_value in part.headers.items():
            chunks.append(f"{header_name}: {header_value}".encode("latin-1") + CRLF)
        chunks.append(CRLF)
        chunks.append(part.body)
        chunks.append(CRLF)
    chunks.append(delimiter + b"--" + CRLF)
    return b"".join(chunks), boundary


def response_headers(protocol_version: int, boundary: str) -> Dict[str, str]:
    """Top-level headers required on every manifest or directive response."""
    headers = {"expo-protocol-version": str(protocol_version)}
    headers.update(PROTOCOL_HEADERS)
    headers["content-type"] = f"multipart/mixed; boundary={boundary}"
    return headers

