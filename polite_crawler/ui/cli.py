from __future__ import annotations

import argparse
import json
import logging
from typing import List

from ..config import CrawlConfig
from ..engines.base import CrawlSummary
from ..engines.crawler import Crawler
from ..errors import EngineError
from ..spiders.registry import SpiderRegistry
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ENGINE_ERROR = 1
EXIT_CANCELLED = 2
EXIT_INTERRUPTED = 130


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Polite two-stage web crawler")
    p.add_argument("spider", nargs="?", default=None,
                   help="Spider name (see --list-spiders) or dotted path (module:ClassName)")
    p.add_argument("urls", nargs="*", help="Start URLs (overrides the spider's defaults where supported)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--crawling-concurrency", type=int, default=None, help="Parallel fetch workers")
    p.add_argument("--processing-concurrency", type=int, default=None, help="Parallel persistence workers")
    p.add_argument("--delay", type=float, default=None,
                   help="Minimum seconds between the start of two requests, across all workers")
    p.add_argument("--channel-capacity", type=int, default=None, help="Items buffered between the two stages")
    p.add_argument("--timeout", type=float, default=None, help="Stop the run after this many seconds")
    p.add_argument("--allowed-domains", type=str, default=None,
                   help="Comma-separated list of allowed domains (default restricts to each start URL domain)")
    p.add_argument("--output-dir", type=str, default=None, help="Output directory")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--list-spiders", action="store_true", help="List available spiders and exit")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    if args.spider:
        cfg.spider = args.spider
    if args.urls:
        cfg.start_urls = list(args.urls)
    if args.crawling_concurrency is not None:
        cfg.crawling_concurrency = args.crawling_concurrency
    if args.processing_concurrency is not None:
        cfg.processing_concurrency = args.processing_concurrency
    if args.delay is not None:
        cfg.min_request_interval = args.delay
    if args.channel_capacity is not None:
        cfg.item_channel_capacity = args.channel_capacity
    if args.timeout is not None:
        cfg.run_timeout = args.timeout
    if args.allowed_domains:
        cfg.allowed_domains = [d.strip() for d in args.allowed_domains.split(",") if d.strip()]
    if args.output_dir:
        cfg.output_dir = args.output_dir

    cfg.validate()
    return cfg


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    registry = SpiderRegistry()
    registry.discover_entry_points()

    if args.list_spiders:
        for name in registry.names:
            print(name)
        return EXIT_OK

    try:
        cfg = _load_config(args)
        spider_cls = registry.resolve(cfg.spider)
        spider = spider_cls.from_config(cfg)
        summary: CrawlSummary = Crawler(cfg).run(spider)
    except EngineError as exc:
        logger.error("Crawl aborted: %s", exc)
        return EXIT_ENGINE_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED

    print(json.dumps(summary.to_dict(), indent=2))
    return EXIT_OK if summary.completed else EXIT_CANCELLED
