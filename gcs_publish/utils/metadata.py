"""
Object metadata derivation for uploads.

Brotli-compressed assets (``app.js.br``) need the content type of the
original asset and ``Content-Encoding: br`` so browsers decode them; every
other file gets the standard MIME type for its extension. Keys use the GCS
JSON API resource names (contentType, contentEncoding, cacheControl, ...).
"""

import mimetypes
import re
from typing import Dict, Mapping, Optional

# Checked in order; first match wins
COMPRESSED_CONTENT_TYPES = [
    (re.compile(r"\.js\.br$"), "application/javascript"),
    (re.compile(r"\.css\.br$"), "text/css"),
    (re.compile(r"\.svg\.br$"), "image/svg+xml"),
    (re.compile(r"\.html\.br$"), "text/html"),
]

BROTLI_ENCODED = re.compile(r"\.(js|css|svg)\.br$")


def get_content_type(path: str) -> Optional[str]:
    """
    Resolve the content type for a file path.

    Args:
        path: File path or object key

    Returns:
        MIME type, or None when the extension is unknown
    """
    for pattern, content_type in COMPRESSED_CONTENT_TYPES:
        if pattern.search(path):
            return content_type

    content_type, _ = mimetypes.guess_type(path, strict=False)
    return content_type


def get_content_encoding(path: str) -> Optional[str]:
    """Return "br" for brotli-compressed js/css/svg assets, else None."""
    if BROTLI_ENCODED.search(path):
        return "br"
    return None


def prepare_metadata(path: str, overrides: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
    """
    Build upload metadata for a file.

    Derived contentType and contentEncoding are shallow-merged with the
    caller's overrides; overrides win on key collision.

    Args:
        path: File path
        overrides: Caller-supplied metadata

    Returns:
        Merged metadata mapping

    Example:
        >>> prepare_metadata("/dist/site.css.br", {"cacheControl": "public, max-age=300"})
        {'contentType': 'text/css', 'contentEncoding': 'br', 'cacheControl': 'public, max-age=300'}
    """
    meta: Dict[str, Optional[str]] = {"contentType": get_content_type(path)}

    encoding = get_content_encoding(path)
    if encoding:
        meta["contentEncoding"] = encoding

    return {**meta, **(overrides or {})}
