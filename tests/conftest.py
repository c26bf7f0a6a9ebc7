from __future__ import annotations

from pathlib import Path

import pytest

from site_mirror.crawl import CrawlConfig, Crawler
from site_mirror.http_client import FetchResult

HTML = "text/html; charset=utf-8"


def page(markup: str, *, status: int = 200) -> tuple[int, dict[str, str], bytes]:
    return status, {"Content-Type": HTML}, markup.encode("utf-8")


def asset(
    body: bytes, content_type: str, **headers: str
) -> tuple[int, dict[str, str], bytes]:
    hdrs = {"Content-Type": content_type}
    hdrs.update({k.replace("_", "-"): v for k, v in headers.items()})
    return 200, hdrs, body


class FakeHttp:
    """Serves an in-memory site; unknown URLs answer 404."""

    def __init__(self, pages: dict) -> None:
        self.pages = pages
        self.calls: list[str] = []

    def get(self, url: str) -> FetchResult:
        self.calls.append(url)
        entry = self.pages.get(url)
        if isinstance(entry, Exception):
            raise entry
        if entry is None:
            entry = page("not found", status=404)
        status, headers, body = entry
        return FetchResult(
            url=url,
            final_url=url,
            status_code=status,
            headers=dict(headers),
            fetched_at=0.0,
            body=body,
        )


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "mirror"


@pytest.fixture
def make_crawler(out_dir: Path):
    def _make(pages: dict, *, depth: int = 2) -> tuple[Crawler, FakeHttp]:
        http = FakeHttp(pages)
        cfg = CrawlConfig(out_dir=out_dir, max_depth=depth, timeout_s=1.0)
        return Crawler(http=http, config=cfg), http

    return _make
