"""Command-line entry point for the gallery crawler."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .cache import ResultCache
from .config import COLLECTIONS, GalleryConfig
from .crawler import CrawlCoordinator, CrawlError
from .snapshot import count_by_year, load_snapshot, write_snapshot

logger = logging.getLogger("wpgallery.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("page", *argv)


def _add_upstream_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--base-url",
        default=None,
        help="WordPress REST root, e.g. https://example.com/wp-json/wp/v2 "
        "(defaults to $WPGALLERY_BASE_URL)",
    )
    parser.add_argument(
        "--collection",
        choices=COLLECTIONS,
        default=None,
        help="Walk posts (default) or the media library",
    )
    parser.add_argument(
        "--per-page",
        type=int,
        default=None,
        help="Items requested per upstream page",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Attempts per request before giving up",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a WordPress REST feed into gallery records.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Crawl every page and write the aggregate to a JSON file"
    )
    _add_upstream_arguments(snapshot_parser)
    snapshot_parser.add_argument(
        "--output",
        default="photoblog.json",
        type=Path,
        help="Where to write the snapshot",
    )

    page_parser = subparsers.add_parser(
        "page", help="Print one page of the cached aggregate as JSON"
    )
    page_parser.add_argument("page_number", nargs="?", type=int, default=1)
    _add_upstream_arguments(page_parser)
    page_parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Items per page",
    )
    page_parser.add_argument(
        "--snapshot",
        type=Path,
        default=None,
        help="Serve from a snapshot written by the snapshot command",
    )

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    args = parser.parse_args(argv)
    needs_upstream = args.command == "snapshot" or args.snapshot is None
    if needs_upstream and not (args.base_url or GalleryConfig.from_env().base_url):
        parser.error("--base-url is required (or set WPGALLERY_BASE_URL)")
    return args


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> GalleryConfig:
    return GalleryConfig.from_env(
        base_url=args.base_url,
        collection=args.collection,
        per_page=args.per_page,
        timeout=args.timeout,
        max_retries=args.retries,
        page_size=getattr(args, "page_size", None),
    )


def _run_snapshot(args: argparse.Namespace) -> int:
    config = _build_config(args)
    coordinator = CrawlCoordinator(config)
    overall_start = time.perf_counter()
    try:
        aggregate = coordinator.crawl_all()
    except CrawlError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        coordinator.client.close()

    path = write_snapshot(aggregate, args.output)
    logger.info(
        "Finished in %.2fs (%d items written to %s)",
        time.perf_counter() - overall_start,
        len(aggregate),
        path,
    )
    for year, count in count_by_year(aggregate).items():
        logger.info("   %d: %d item(s)", year, count)
    return 0


def _run_page(args: argparse.Namespace) -> int:
    config = _build_config(args)
    coordinator = CrawlCoordinator(config)
    cache = ResultCache(
        coordinator.crawl_all,
        ttl=config.cache_ttl,
        page_size=config.page_size,
    )
    if args.snapshot:
        cache.prime(load_snapshot(args.snapshot))
    try:
        result = cache.get_page(args.page_number)
    finally:
        coordinator.client.close()
    sys.stdout.write(json.dumps(result.to_dict(), ensure_ascii=False, indent=2) + "\n")
    sys.stdout.flush()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    # Page output goes to stdout, so keep the log quiet unless asked.
    _configure_logging(args.verbose)
    if args.command == "page" and not args.verbose:
        logging.getLogger().setLevel(logging.WARNING)
    if args.command == "snapshot":
        return _run_snapshot(args)
    return _run_page(args)


if __name__ == "__main__":
    raise SystemExit(main())
