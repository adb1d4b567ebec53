"""
MIME type resolution for bundle assets.

Asset extensions come from ``metadata.json`` without a leading dot. The
standard library table is host dependent, so the types an exported bundle
commonly carries are registered explicitly.
"""

import mimetypes
from typing import Any, Optional


LAUNCH_ASSET_CONTENT_TYPE = "application/javascript"

_ASSET_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "json": "application/json",
    "js": "application/javascript",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "mp4": "video/mp4",
}

_registry = mimetypes.MimeTypes()
for _ext, _type in _ASSET_TYPES.items():
    _registry.add_type(_type, f".{_ext}")


def content_type_for_extension(ext: Any) -> Optional[str]:
    """
    Resolve a MIME type for a bare or dotted extension.

    Args:
        ext: Extension such as ``"png"`` or ``".png"``; non-string values are unmapped

    Returns:
        MIME type string, or None when the extension has no known mapping
    """
    if not isinstance(ext, str) or not ext:
        return None
    normalized = ext.strip().lower().lstrip(".")
    if not normalized:
        return None
    content_type, _ = _registry.guess_type(f"asset.{normalized}", strict=False)
    return content_type
