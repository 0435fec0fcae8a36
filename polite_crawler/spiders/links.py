from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from aiohttp import ClientSession

from .base import CrawlOutcome, Spider
from ..config import CrawlConfig
from ..errors import ConfigError, ProcessError, ScrapeError
from ..export.base import Exporter
from ..export.json_exporter import JSONLinesExporter
from ..utils.http import create_session, fetch_text
from ..utils.parsing import domain_of, extract_links, extract_title, filter_domains, normalize_url


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class PageRecord:
    url: str
    title: Optional[str] = None
    links: List[str] = field(default_factory=list)
    fetched_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "title": self.title, "links": self.links, "fetched_at": self.fetched_at}


class LinkSpider(Spider):
    """
    A generic, site-agnostic spider.
    Follows every link inside the allowed domains and records one PageRecord
    per page. Allowed domains default to the hosts of the start URLs.
    """

    name = "links"

    def __init__(
        self,
        start_urls: Sequence[str],
        *,
        allowed_domains: Optional[Iterable[str]] = None,
        output_dir: str = "output",
        user_agent: Optional[str] = None,
        request_timeout: float = 15.0,
        retries: int = 0,
    ) -> None:
        if not start_urls:
            raise ConfigError("the links spider needs at least one start URL")
        self._start_urls = [normalize_url(u) for u in start_urls]
        self.allowed_domains = {d.lower() for d in (allowed_domains or [domain_of(u) for u in self._start_urls])}
        self.output_path = os.path.join(output_dir, f"{self.name}.jsonl")
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.retries = retries
        self._session: Optional[ClientSession] = None
        self._exporter: Exporter = JSONLinesExporter()

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "LinkSpider":
        return cls(
            config.start_urls,
            allowed_domains=config.allowed_domains,
            output_dir=config.output_dir,
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            retries=config.retries,
        )

    async def open(self) -> None:
        self._session = create_session(self.user_agent, timeout=self.request_timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def start_urls(self) -> List[str]:
        return list(self._start_urls)

    async def scrape(self, location: str) -> CrawlOutcome:
        if self._session is None:
            raise ScrapeError("spider session is not open", location=location)
        html = await fetch_text(self._session, location, timeout=self.request_timeout, retries=self.retries)
        return self.parse_page(location, html)

    def parse_page(self, url: str, html: str) -> CrawlOutcome:
        links = sorted(extract_links(html, base_url=url))
        record = PageRecord(url=url, title=extract_title(html), links=links)
        return CrawlOutcome([record], sorted(filter_domains(links, self.allowed_domains)))

    async def process(self, item: PageRecord) -> None:
        try:
            await asyncio.to_thread(self._exporter.export, item.to_dict(), self.output_path)
        except OSError as exc:
            raise ProcessError(f"cannot append to {self.output_path}: {exc}", item=item) from exc
