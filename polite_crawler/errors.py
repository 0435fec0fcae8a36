from __future__ import annotations

from typing import Any, Hashable, Optional


class CrawlerError(Exception):
    """Base class for every error raised by the crawler."""


class ScrapeError(CrawlerError):
    """A single location could not be fetched or parsed."""

    def __init__(self, message: str, location: Optional[Hashable] = None) -> None:
        super().__init__(message)
        self.location = location


class ProcessError(CrawlerError):
    """A single item could not be persisted."""

    def __init__(self, message: str, item: Any = None) -> None:
        super().__init__(message)
        self.item = item


class EngineError(CrawlerError):
    """Fatal condition in the engine itself; aborts the run."""


class ConfigError(EngineError, ValueError):
    """Invalid configuration."""
