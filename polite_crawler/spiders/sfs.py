from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from aiohttp import ClientSession

from .base import CrawlOutcome, Spider
from ..config import CrawlConfig
from ..errors import ProcessError, ScrapeError
from ..export.base import Exporter
from ..export.json_exporter import JSONExporter
from ..utils.http import create_session, fetch_json
from ..utils.parsing import normalize_url
from ..version import __version__

logger = logging.getLogger(__name__)

START_URL = (
    "https://data.riksdagen.se/dokumentlista/?sok=&doktyp=SFS&rm=&from=&tom=&ts=&bet=&tempbet=&nr=&org=&iid="
    "&avd=&webbtv=&talare=&exakt=&planering=&facets=&sort=rel&sortorder=desc&rapport=&utformat=json&a=s#soktraff"
)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass
class SfsDocument:
    """One entry of a Riksdag document list (Svensk författningssamling)."""

    id: str
    dok_id: str
    titel: Optional[str] = None
    undertitel: Optional[str] = None
    datum: Optional[str] = None
    publicerad: Optional[str] = None
    dokument_url_text: Optional[str] = None
    dokument_url_html: Optional[str] = None
    source_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: Any, source_url: Optional[str] = None) -> Optional["SfsDocument"]:
        if not isinstance(raw, dict):
            return None
        dok_id = raw.get("dok_id")
        doc_id = raw.get("id") or dok_id
        if not dok_id:
            return None

        def _str(key: str) -> Optional[str]:
            value = raw.get(key)
            return str(value) if value not in (None, "") else None

        extra = {k: raw[k] for k in ("rm", "beteckning", "organ", "doktyp") if raw.get(k)}
        return cls(
            id=str(doc_id),
            dok_id=str(dok_id),
            titel=_str("titel"),
            undertitel=_str("undertitel"),
            datum=_str("datum"),
            publicerad=_str("publicerad"),
            dokument_url_text=_absolute(_str("dokument_url_text")),
            dokument_url_html=_absolute(_str("dokument_url_html")),
            source_url=source_url,
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "dok_id": self.dok_id,
            "titel": self.titel,
            "undertitel": self.undertitel,
            "datum": self.datum,
            "publicerad": self.publicerad,
            "dokument_url_text": self.dokument_url_text,
            "dokument_url_html": self.dokument_url_html,
            "source_url": self.source_url,
        }
        clean = {k: v for k, v in data.items() if v is not None}
        if self.extra:
            clean["extra"] = self.extra
        return clean


def _absolute(url: Optional[str]) -> Optional[str]:
    # The API hands out protocol-relative links ("//data.riksdagen.se/...").
    if url and url.startswith("//"):
        return "https:" + url
    return url


class SfsSpider(Spider):
    """
    Walks the paginated Riksdag document list for SFS documents.
    Each page yields its documents as items and the next page as the only
    discovered location.
    """

    name = "sfs"

    def __init__(
        self,
        *,
        output_dir: str = "output",
        user_agent: str = f"polite_crawler/{__version__}",
        request_timeout: float = 15.0,
        retries: int = 2,
        start_urls: Optional[Sequence[str]] = None,
    ) -> None:
        self.output_dir = output_dir
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.retries = retries
        self._start_urls = [normalize_url(u) for u in (start_urls or [START_URL])]
        self._session: Optional[ClientSession] = None
        self._exporter: Exporter = JSONExporter()

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "SfsSpider":
        return cls(
            output_dir=config.output_dir,
            user_agent=config.user_agent,
            request_timeout=config.request_timeout,
            retries=config.retries,
            start_urls=config.start_urls or None,
        )

    async def open(self) -> None:
        logger.info("Opening %s spider with user agent %s", self.name, self.user_agent)
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
        payload = await fetch_json(
            self._session, location, timeout=self.request_timeout, retries=self.retries
        )
        return self.parse_payload(payload, source_url=location)

    @staticmethod
    def parse_payload(payload: Any, *, source_url: str) -> CrawlOutcome:
        lista = payload.get("dokumentlista") if isinstance(payload, dict) else None
        if not isinstance(lista, dict):
            raise ScrapeError("malformed response: missing 'dokumentlista'", location=source_url)

        raw_docs = lista.get("dokument") or []
        if isinstance(raw_docs, dict):
            raw_docs = [raw_docs]
        if not isinstance(raw_docs, list):
            raise ScrapeError("malformed response: 'dokument' is not a list", location=source_url)

        documents = [doc for doc in (SfsDocument.from_json(raw, source_url) for raw in raw_docs) if doc]
        if len(documents) < len(raw_docs):
            logger.debug("Skipped %s document(s) without dok_id on %s", len(raw_docs) - len(documents), source_url)

        next_page = lista.get("@nasta_sida")
        discovered = [normalize_url(_absolute(next_page))] if next_page else []
        return CrawlOutcome(documents, discovered)

    def path_for(self, document: SfsDocument) -> str:
        return os.path.join(self.output_dir, self.name, f"{_UNSAFE.sub('_', document.dok_id)}.json")

    async def process(self, item: SfsDocument) -> None:
        path = self.path_for(item)
        try:
            # Disk writes run off-loop so a slow sink never stalls fetching.
            await asyncio.to_thread(self._exporter.export, item.to_dict(), path)
        except OSError as exc:
            raise ProcessError(f"cannot write {path}: {exc}", item=item) from exc
