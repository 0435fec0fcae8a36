"""Polite, pluggable two-stage web crawling engine."""

from .config import CrawlConfig
from .engines.base import CrawlSummary
from .engines.crawler import Crawler, run
from .errors import ConfigError, CrawlerError, EngineError, ProcessError, ScrapeError
from .spiders.base import CrawlOutcome, Spider
from .version import __version__

__all__ = [
    "ConfigError",
    "CrawlConfig",
    "CrawlOutcome",
    "CrawlSummary",
    "Crawler",
    "CrawlerError",
    "EngineError",
    "ProcessError",
    "ScrapeError",
    "Spider",
    "__version__",
    "run",
]
