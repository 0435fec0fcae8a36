from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Hashable, List, NamedTuple, Sequence

if TYPE_CHECKING:
    from ..config import CrawlConfig


class CrawlOutcome(NamedTuple):
    """What one scrape produced: items to persist and locations to crawl next."""

    items: Sequence[Any] = ()
    discovered: Sequence[Hashable] = ()

    @classmethod
    def coerce(cls, value: Any) -> "CrawlOutcome":
        """Accept a CrawlOutcome or any ``(items, discovered)`` pair."""
        items, discovered = value
        return cls(list(items or ()), list(discovered or ()))


class Spider(ABC):
    """
    Interface for site-specific crawling logic.
    Keep this small and stable: the engine owns scheduling, politeness and
    dedup; the spider owns fetching, parsing and persistence.
    """

    name: str = "base"

    @classmethod
    def from_config(cls, config: "CrawlConfig") -> "Spider":
        """Build the spider from the shared crawl config. Override to read options."""
        return cls()

    @abstractmethod
    def start_urls(self) -> List[Hashable]:
        """Initial seed locations. Called once per crawl."""
        ...

    @abstractmethod
    async def scrape(self, location: Hashable) -> CrawlOutcome:
        """
        Fetch one location and return ``(items, discovered)``.
        Raise ScrapeError on failure; retries, if any, belong here.
        """
        ...

    @abstractmethod
    async def process(self, item: Any) -> None:
        """Persist one item. Raise ProcessError on failure."""
        ...

    async def open(self) -> None:
        """Called once on the crawl's event loop before any scrape."""

    async def close(self) -> None:
        """Called once after all workers have exited."""
