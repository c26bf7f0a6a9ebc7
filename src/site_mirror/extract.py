from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, ParserRejectedMarkup

from .errors import ParseError
from .urls import resolve_reference, same_site

CSS_URL_RE = re.compile(r"url\(\s*([\"']?)([^)\"']+)\1\s*\)", re.IGNORECASE)
CSS_IMPORT_RE = re.compile(r"@import\s+([\"'])([^\"']+)\1", re.IGNORECASE)

_SRC_TAGS = {"img", "script", "iframe", "source", "audio", "video"}
_DATA_TAGS = {"object", "embed"}
_LINK_RELS = {"stylesheet", "manifest", "mask-icon"}
_META_HINTS = (".png", ".json", ".svg")


@dataclass(frozen=True)
class Extraction:
    page_links: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    offsite: tuple[str, ...] = ()


@dataclass
class _Collector:
    base_url: str
    page_links: dict[str, None] = field(default_factory=dict)
    resources: dict[str, None] = field(default_factory=dict)
    offsite: dict[str, None] = field(default_factory=dict)

    def add(self, raw: str, *, page: bool = False) -> None:
        resolved = resolve_reference(self.base_url, raw)
        if resolved is None:
            return
        if not same_site(self.base_url, resolved):
            self.offsite[resolved] = None
            return
        if page:
            self.page_links[resolved] = None
        else:
            self.resources[resolved] = None

    def result(self) -> Extraction:
        return Extraction(
            page_links=tuple(self.page_links),
            resources=tuple(self.resources),
            offsite=tuple(self.offsite),
        )


def _attr_text(val: object) -> str:
    # bs4 hands back multi-valued attributes (rel, class) as lists.
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val or "")


def _link_is_resource(rel: str, href: str) -> bool:
    rel = rel.lower()
    if "icon" in rel:
        return True
    if _LINK_RELS.intersection(rel.split()):
        return True
    return href.strip().lower().endswith(".svg")


def css_references(text: str) -> list[str]:
    """Raw url(...) and @import references in stylesheet text."""

    refs = [m.group(2) for m in CSS_URL_RE.finditer(text)]
    refs.extend(m.group(2) for m in CSS_IMPORT_RE.finditer(text))
    return refs


def _collect_css(collector: _Collector, body: bytes) -> None:
    text = body.decode("utf-8", errors="replace")
    for ref in css_references(text):
        collector.add(ref)


def extract_css_urls(base_url: str, body: bytes) -> Extraction:
    collector = _Collector(base_url)
    _collect_css(collector, body)
    return collector.result()


def extract_references(base_url: str, body: bytes) -> Extraction:
    """Collect same-site page links and resources referenced by a document.

    Offsite references are reported separately and never mixed into the
    crawlable sets.
    """

    try:
        soup = BeautifulSoup(body, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseError(f"cannot parse document at {base_url}: {e}") from e

    collector = _Collector(base_url)
    for el in soup.find_all(True):
        tag = el.name.lower()
        attrs = {k.lower(): _attr_text(v) for k, v in el.attrs.items()}

        if tag == "a" and "href" in attrs:
            collector.add(attrs["href"], page=True)
        elif tag in _SRC_TAGS and "src" in attrs:
            collector.add(attrs["src"])
        elif tag in _DATA_TAGS and "data" in attrs:
            collector.add(attrs["data"])
        elif tag == "link" and attrs.get("href"):
            if _link_is_resource(attrs.get("rel", ""), attrs["href"]):
                collector.add(attrs["href"])
        elif tag == "meta" and "content" in attrs:
            if any(hint in attrs["content"] for hint in _META_HINTS):
                collector.add(attrs["content"])

        for key, val in attrs.items():
            if key == "poster":
                collector.add(val)
            elif key.startswith("data-") and ("/" in val or "." in val):
                collector.add(val)

    # Inline <style> blocks and style="" attributes are invisible to the walk.
    _collect_css(collector, body)
    return collector.result()
