from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import requests

from .crawl import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUT_DIR,
    DEFAULT_TIMEOUT_S,
    CrawlConfig,
    Crawler,
)
from .errors import MirrorError
from .http_client import HttpClient

logger = logging.getLogger("site_mirror.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="site-mirror",
        description="Mirror a website into a local directory for offline use",
    )
    parser.add_argument("url", help="Absolute http(s) URL to start from")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help=f"Output directory (default: {DEFAULT_OUT_DIR})",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum link/resource hops from the root URL",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_S,
        help="Per-request timeout in seconds",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    verbosity.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors",
    )
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args)

    if args.depth < 0:
        print("--depth must be >= 0", file=sys.stderr)
        return 2
    if args.timeout <= 0:
        print("--timeout must be > 0", file=sys.stderr)
        return 2

    cfg = CrawlConfig(
        out_dir=args.out or DEFAULT_OUT_DIR,
        max_depth=int(args.depth),
        timeout_s=float(args.timeout),
    )
    session = requests.Session()
    http = HttpClient(session, timeout_s=cfg.timeout_s, user_agent=cfg.user_agent)
    crawler = Crawler(http=http, config=cfg)

    start = time.perf_counter()
    status = 0
    try:
        summary = crawler.run(args.url)
    except (MirrorError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        status = 2
    else:
        logger.info(
            "saved=%d failed=%d offsite=%d rewritten_files=%d",
            summary.saved,
            summary.failed,
            summary.offsite,
            summary.rewritten_files,
        )
        if summary.rewrite_error:
            logger.warning(
                "mirror saved but not fully rewritten: %s", summary.rewrite_error
            )
    finally:
        session.close()

    print(f"Finished in {time.perf_counter() - start:.2f}s")
    return status
