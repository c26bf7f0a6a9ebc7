from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any


def utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class ManifestWriter:
    """Run log kept next to the mirrored hosts.

    manifest.jsonl gets one event per line as the crawl progresses;
    manifest.json is written once with the run summary.
    """

    out_dir: Path

    def __post_init__(self) -> None:
        self.jsonl_path = self.out_dir / "manifest.jsonl"
        self.json_path = self.out_dir / "manifest.json"

    def append(self, kind: str, **fields: Any) -> None:
        event = {"kind": kind, **fields}
        event.setdefault("at", utc_iso())
        self.jsonl_path.parent.mkdir(parents=True, exist_ok=True)
        with self.jsonl_path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

    def fetched(
        self, url: str, *, depth: int, content_type: str | None, path: str
    ) -> None:
        self.append(
            "fetched", url=url, depth=depth, content_type=content_type, path=path
        )

    def error(self, url: str, *, depth: int, error: str) -> None:
        self.append("error", url=url, depth=depth, error=error)

    def offsite(self, url: str, *, depth: int) -> None:
        self.append("offsite", url=url, depth=depth)

    def rewritten(self, path: str, *, references: int) -> None:
        self.append("rewritten", path=path, references=references)

    def write_summary(self, summary: dict[str, Any]) -> None:
        self.json_path.parent.mkdir(parents=True, exist_ok=True)
        self.json_path.write_text(
            json.dumps(summary, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
