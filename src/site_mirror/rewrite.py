"""Post-crawl reference rewriting.

Attributes are rewritten by regex substitution over the saved bytes rather
than by re-serializing a parsed tree, so everything that is not a rewritten
reference stays byte-identical. The price is that badly malformed markup can
hide references from the patterns.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from pathlib import Path
from typing import Callable, Mapping
from urllib.parse import urldefrag

from .urls import (
    is_skippable_reference,
    quote_local_path,
    relative_file_path,
    resolve_reference,
)

logger = logging.getLogger("site_mirror.rewrite")

BASE_HREF = "./"

HTML_SUFFIXES = (".html", ".htm")
CSS_SUFFIXES = (".css",)

# <base> tags match whole and pass through, so the injected base href survives.
_ATTR_RE = re.compile(
    rb"(?P<base><base\b[^>]*>)|"
    rb"(?<![\w-])(?P<attr>href|src)(?P<eq>\s*=\s*)"
    rb"(?:(?P<q>[\"'])(?P<quoted>.*?)(?P=q)|(?P<bare>[^\s\"'>]+))",
    re.IGNORECASE | re.DOTALL,
)
_CSS_URL_RE = re.compile(
    rb"(?P<open>url\(\s*)(?P<q>[\"']?)(?P<value>[^)\"']+)(?P=q)(?P<close>\s*\))",
    re.IGNORECASE,
)


class ReferenceRewriter:
    """Rewrites references inside one saved file.

    source_url is the URL the file was fetched from; local_path is where it
    lives under the output root.
    """

    def __init__(
        self,
        *,
        source_url: str,
        local_path: str,
        url_to_local: Mapping[str, str],
    ) -> None:
        self.source_url = source_url
        self.local_path = local_path
        self.url_to_local = url_to_local
        self.replaced = 0

    def target_for(self, raw: str) -> str | None:
        """Relative replacement for a reference, or None to leave it alone."""

        value = html_lib.unescape(raw).strip()
        if is_skippable_reference(value):
            return None
        resolved = resolve_reference(self.source_url, value)
        if resolved is None:
            return None
        local = self.url_to_local.get(resolved)
        if local is None:
            return None

        rel = quote_local_path(relative_file_path(self.local_path, local))
        # Taken from the raw text so entities stay escaped in the attribute.
        fragment = urldefrag(raw.strip()).fragment
        if fragment:
            rel = f"{rel}#{fragment}"
        return rel

    def _swap(self, raw: bytes) -> bytes | None:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
        target = self.target_for(text)
        if target is None or target == text:
            return None
        self.replaced += 1
        return target.encode("utf-8")

    def _attr_sub(self, m: re.Match[bytes]) -> bytes:
        if m.group("base"):
            return m.group(0)
        quote = m.group("q")
        raw = m.group("quoted") if quote else m.group("bare")
        new = self._swap(raw)
        if new is None:
            return m.group(0)
        quote = quote or b""
        return m.group("attr") + m.group("eq") + quote + new + quote

    def _css_sub(self, m: re.Match[bytes]) -> bytes:
        new = self._swap(m.group("value"))
        if new is None:
            return m.group(0)
        q = m.group("q")
        return m.group("open") + q + new + q + m.group("close")

    def rewrite_html(self, body: bytes) -> bytes:
        body = _ATTR_RE.sub(self._attr_sub, body)
        return _CSS_URL_RE.sub(self._css_sub, body)

    def rewrite_css(self, body: bytes) -> bytes:
        return _CSS_URL_RE.sub(self._css_sub, body)


def _rewriter_for(local_path: str) -> str | None:
    lowered = local_path.lower()
    if lowered.endswith(HTML_SUFFIXES):
        return "html"
    if lowered.endswith(CSS_SUFFIXES):
        return "css"
    return None


def rewrite_file(
    out_dir: Path,
    *,
    source_url: str,
    local_path: str,
    url_to_local: Mapping[str, str],
) -> int:
    """Rewrite one saved file in place; returns the number of references."""

    kind = _rewriter_for(local_path)
    if kind is None:
        return 0

    path = out_dir.joinpath(*local_path.split("/"))
    body = path.read_bytes()
    rewriter = ReferenceRewriter(
        source_url=source_url,
        local_path=local_path,
        url_to_local=url_to_local,
    )
    rewrite: Callable[[bytes], bytes] = (
        rewriter.rewrite_html if kind == "html" else rewriter.rewrite_css
    )
    new_body = rewrite(body)
    if new_body != body:
        path.write_bytes(new_body)
    return rewriter.replaced


def rewrite_all(
    out_dir: Path,
    url_to_local: Mapping[str, str],
    local_to_source: Mapping[str, str] | None = None,
) -> dict[str, int]:
    """Rewrite every saved HTML and CSS file against the finished table.

    Each local path is rewritten exactly once, against the URL whose bytes
    ended up on disk (local_to_source). Without that map the last table
    entry for a path wins, matching save order. Must only run once the
    crawl is complete. I/O errors propagate to the caller.
    """

    if local_to_source is None:
        local_to_source = {local: url for url, local in url_to_local.items()}

    counts: dict[str, int] = {}
    for local_path, source_url in sorted(local_to_source.items()):
        replaced = rewrite_file(
            out_dir,
            source_url=source_url,
            local_path=local_path,
            url_to_local=url_to_local,
        )
        if replaced:
            counts[local_path] = replaced
            logger.debug("rewrote %d references in %s", replaced, local_path)
    return counts
