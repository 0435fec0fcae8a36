from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict
from abc import ABC, abstractmethod

from ..spiders.base import Spider


@dataclass
class CrawlSummary:
    spider: str
    crawled: int = 0
    items_produced: int = 0
    items_processed: int = 0
    scrape_errors: int = 0
    process_errors: int = 0
    items_dropped: int = 0
    # False when the run was cut short by a deadline or stop()
    completed: bool = True
    elapsed: float = 0.0

    @property
    def errors(self) -> int:
        return self.scrape_errors + self.process_errors

    @property
    def status(self) -> str:
        return "completed" if self.completed else "cancelled"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["errors"] = self.errors
        data["status"] = self.status
        return data


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def crawl(self, spider: Spider) -> CrawlSummary:  # pragma: no cover - interface
        ...
