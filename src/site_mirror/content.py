from __future__ import annotations

import gzip
import zlib
from enum import Enum

from .errors import DecodeError


class ContentKind(str, Enum):
    DOCUMENT = "document"
    STYLESHEET = "stylesheet"
    OTHER = "other"


def is_document(content_type: str | None) -> bool:
    # Parameters such as charset are ignored; substring match on the header.
    return "text/html" in (content_type or "").lower()


def classify(local_path: str, *, content_type: str | None) -> ContentKind:
    """Classify a fetched response.

    Rules:
    - HTML by Content-Type only.
    - Stylesheets by the extension of their mapped local path.
    """

    if is_document(content_type):
        return ContentKind.DOCUMENT
    if local_path.lower().endswith(".css"):
        return ContentKind.STYLESHEET
    return ContentKind.OTHER


def is_gzip_encoded(content_encoding: str | None) -> bool:
    encodings = [e.strip().lower() for e in (content_encoding or "").split(",")]
    return "gzip" in encodings


def gunzip(body: bytes) -> bytes:
    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"gzip decode failed: {e}") from e
