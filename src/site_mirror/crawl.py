from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .content import ContentKind, classify, gunzip, is_document, is_gzip_encoded
from .errors import (
    DecodeError,
    HTTPStatusError,
    MirrorError,
    ParseError,
    PersistenceError,
    TransportError,
)
from .extract import Extraction, extract_css_urls, extract_references
from .http_client import DEFAULT_USER_AGENT, HttpClient
from .manifest import ManifestWriter, utc_iso
from .rewrite import BASE_HREF, rewrite_all
from .storage import save_file
from .urls import local_path_for_url, normalize_url, parse_root_url, same_site

logger = logging.getLogger("site_mirror")

DEFAULT_OUT_DIR = Path("mirror_output")
DEFAULT_MAX_DEPTH = 2
DEFAULT_TIMEOUT_S = 15.0

_BASE_TAG_RE = re.compile(rb"<base\b", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(rb"<head(?:\s[^>]*)?>", re.IGNORECASE)


def inject_base_href(body: bytes) -> bytes:
    """Insert <base href="./"> after <head> unless the page has a <base>."""

    if _BASE_TAG_RE.search(body):
        return body
    m = _HEAD_OPEN_RE.search(body)
    if m is None:
        return body
    tag = b'\n<base href="' + BASE_HREF.encode("ascii") + b'">'
    return body[: m.end()] + tag + body[m.end() :]


@dataclass
class CrawlConfig:
    out_dir: Path = DEFAULT_OUT_DIR
    max_depth: int = DEFAULT_MAX_DEPTH
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class CrawlSummary:
    root_url: str
    started_at: str
    finished_at: str = ""
    visited: int = 0
    saved: int = 0
    failed: int = 0
    offsite: int = 0
    rewritten_files: int = 0
    rewritten_references: int = 0
    rewrite_error: str | None = None
    stats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "root_url": self.root_url,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "visited": self.visited,
            "saved": self.saved,
            "failed": self.failed,
            "offsite": self.offsite,
            "rewritten_files": self.rewritten_files,
            "rewritten_references": self.rewritten_references,
            "rewrite_error": self.rewrite_error,
            "stats": dict(self.stats),
        }


class Crawler:
    """Depth-first mirror of one site.

    All crawl state lives on the instance: the visited set (filled when a
    fetch starts), the url -> local path table (filled after a successful
    save), the local path -> source url map (last save wins, like the file
    on disk), and the failure/offsite records.
    """

    def __init__(
        self,
        *,
        http: HttpClient,
        config: CrawlConfig,
    ) -> None:
        self.http = http
        self.cfg = config

        self.out_dir = self.cfg.out_dir
        self.manifest = ManifestWriter(self.out_dir)

        self.visited: set[str] = set()
        self.url_to_local: dict[str, str] = {}
        self.local_to_source: dict[str, str] = {}
        self.failed: dict[str, str] = {}
        self.offsite: set[str] = set()
        self._stats: Counter[str] = Counter()

    def run(self, root_url: str) -> CrawlSummary:
        """Crawl from root_url, then rewrite the saved files.

        Raises InvalidURLError for a bad root. Per-URL failures are logged
        and counted, never raised. An I/O error stops the rewrite pass; it is
        logged and recorded as rewrite_error in the summary.
        """

        root = parse_root_url(root_url)
        summary = CrawlSummary(root_url=root, started_at=utc_iso())
        logger.info("Starting mirror of %s (depth=%d)", root, self.cfg.max_depth)

        self.descend(root, root, 0)

        rewritten: dict[str, int] = {}
        try:
            rewritten = rewrite_all(
                self.out_dir, self.url_to_local, self.local_to_source
            )
        except OSError as e:
            summary.rewrite_error = str(e)
            logger.error("rewrite pass failed: %s", e)
        for local_path, count in rewritten.items():
            self.manifest.rewritten(local_path, references=count)
        logger.info(
            "Rewrote %d references across %d files",
            sum(rewritten.values()),
            len(rewritten),
        )

        summary.finished_at = utc_iso()
        summary.visited = len(self.visited)
        summary.saved = len(self.url_to_local)
        summary.failed = len(self.failed)
        summary.offsite = len(self.offsite)
        summary.rewritten_files = len(rewritten)
        summary.rewritten_references = sum(rewritten.values())
        summary.stats = dict(self._stats)
        self.manifest.write_summary(
            {
                **summary.to_dict(),
                "config": {
                    "out_dir": str(self.out_dir),
                    "max_depth": self.cfg.max_depth,
                    "timeout_s": self.cfg.timeout_s,
                },
            }
        )
        return summary

    def descend(self, url: str, root: str, depth: int) -> None:
        if depth > self.cfg.max_depth:
            logger.debug("[%d] beyond max depth, skipping %s", depth, url)
            return
        url = normalize_url(url)
        if url in self.visited:
            return
        self.visited.add(url)

        logger.info("[%d] downloading %s", depth, url)
        try:
            body, content_type = self._fetch(url)
        except (TransportError, HTTPStatusError) as e:
            self._fail(url, depth, e)
            return

        local_path = local_path_for_url(url, is_document=is_document(content_type))
        kind = classify(local_path, content_type=content_type)
        if kind is ContentKind.DOCUMENT:
            body = inject_base_href(body)

        try:
            save_file(self.out_dir, local_path, body)
        except PersistenceError as e:
            self._fail(url, depth, e)
            return

        self.url_to_local[url] = local_path
        self.local_to_source[local_path] = url
        self._stats["saved"] += 1
        self.manifest.fetched(
            url, depth=depth, content_type=content_type, path=local_path
        )

        try:
            extraction = self._extract(kind, url, body)
        except ParseError as e:
            self._stats["parse_error"] += 1
            logger.warning("[%d] %s: %s", depth, url, e)
            return
        if extraction is None:
            return

        self._record_offsite(extraction, depth)
        for next_url in (*extraction.resources, *extraction.page_links):
            if not same_site(root, next_url) or next_url in self.visited:
                continue
            self.descend(next_url, root, depth + 1)

    def _fetch(self, url: str) -> tuple[bytes, str | None]:
        res = self.http.get(url)
        if res.status_code >= 400:
            raise HTTPStatusError(url, res.status_code)

        body = res.body
        if is_gzip_encoded(res.content_encoding):
            try:
                body = gunzip(body)
            except DecodeError as e:
                self._stats["decode_fallback"] += 1
                logger.warning("%s for %s; keeping raw body", e, url)
        return body, res.content_type

    def _extract(self, kind: ContentKind, url: str, body: bytes) -> Extraction | None:
        if kind is ContentKind.DOCUMENT:
            return extract_references(url, body)
        if kind is ContentKind.STYLESHEET:
            return extract_css_urls(url, body)
        return None

    def _fail(self, url: str, depth: int, error: MirrorError) -> None:
        self.failed[url] = str(error)
        self._stats["error"] += 1
        logger.warning("[%d] %s failed: %s", depth, url, error)
        self.manifest.error(url, depth=depth, error=str(error))

    def _record_offsite(self, extraction: Extraction, depth: int) -> None:
        for url in extraction.offsite:
            if url in self.offsite:
                continue
            self.offsite.add(url)
            logger.debug("[%d] offsite, not following %s", depth, url)
            self.manifest.offsite(url, depth=depth)
