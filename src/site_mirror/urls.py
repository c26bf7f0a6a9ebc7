from __future__ import annotations

import posixpath
from urllib.parse import ParseResult, quote, unquote, urljoin, urlparse, urlunparse

from .errors import InvalidURLError

_WEB_SCHEMES = {"http", "https"}
_SKIP_PREFIXES = ("data:", "javascript:", "mailto:", "tel:")

INDEX_DOCUMENT = "index.html"
GENERATED_NAME = "index"


def normalize_url(raw_url: str) -> str:
    """Normalize a URL into its crawl identity.

    - Lowercases scheme + hostname.
    - Strips fragments.
    - Keeps path and query as given; an empty path becomes "/".
    """

    parsed: ParseResult = urlparse(raw_url)
    parsed = parsed._replace(
        scheme=(parsed.scheme or "").lower(),
        netloc=(parsed.netloc or "").lower(),
        fragment="",
    )
    if parsed.netloc and not parsed.path:
        parsed = parsed._replace(path="/")
    return urlunparse(parsed)


def parse_root_url(raw_url: str) -> str:
    try:
        parsed = urlparse(raw_url.strip())
    except ValueError as e:
        raise InvalidURLError(f"cannot parse {raw_url!r}: {e}") from e
    if parsed.scheme.lower() not in _WEB_SCHEMES or not parsed.hostname:
        raise InvalidURLError(f"not an absolute http(s) URL: {raw_url!r}")
    return normalize_url(raw_url.strip())


def is_skippable_reference(raw: str) -> bool:
    """True for references that never name a fetchable resource."""

    ref = raw.strip()
    if not ref or ref.startswith("#"):
        return True
    return ref.lower().startswith(_SKIP_PREFIXES)


def resolve_reference(base_url: str, raw: str) -> str | None:
    """Resolve a markup reference against base_url.

    Returns the normalized absolute URL, or None when the reference is
    skippable, unparsable or not http(s).
    """

    if is_skippable_reference(raw):
        return None
    try:
        resolved = urljoin(base_url, raw.strip())
        parsed = urlparse(resolved)
        host = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme.lower() not in _WEB_SCHEMES or not host:
        return None
    return normalize_url(resolved)


def hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def same_site(a: str, b: str) -> bool:
    """Strict same-site test: hostnames must be equal (no subdomains)."""

    host_a = hostname(a)
    return bool(host_a) and host_a == hostname(b)


def _clean_segments(path: str) -> list[str]:
    out: list[str] = []
    for seg in path.split("/"):
        name = unquote(seg).replace("\\", "_").replace("/", "_")
        if name in {"", ".", ".."}:
            continue
        out.append(name)
    return out


def local_path_for_url(url: str, *, is_document: bool) -> str:
    """Map a URL to a slash-separated path relative to the output root."""

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = parsed.path
    segments = _clean_segments(path)
    open_ended = not path or path.endswith("/")

    if is_document:
        if open_ended or not segments or "." not in segments[-1]:
            segments.append(INDEX_DOCUMENT)
    elif open_ended or not segments:
        segments.append(segments[-1] if segments else GENERATED_NAME)

    return "/".join([host, *segments]).lstrip("/")


def relative_file_path(from_path: str, to_path: str) -> str:
    """Path of to_path relative to the directory containing from_path."""

    from_dir = posixpath.dirname(from_path) or "."
    return posixpath.relpath(to_path, from_dir)


def quote_local_path(path: str) -> str:
    return quote(path, safe="/")
