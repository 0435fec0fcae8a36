from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar
from aiohttp import ClientResponse, ClientSession, ClientTimeout
import aiohttp
import logging

from ..errors import ScrapeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _fetch(
    session: ClientSession,
    url: str,
    read: Callable[[ClientResponse], Awaitable[T]],
    *,
    timeout: Optional[float],
    retries: int,
) -> T:
    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        if attempt:
            await asyncio.sleep(min(2 ** (attempt - 1), 5))
        try:
            kwargs: dict[str, Any] = {}
            if timeout is not None:
                kwargs["timeout"] = ClientTimeout(total=timeout)
            async with session.get(url, **kwargs) as resp:
                resp.raise_for_status()
                return await read(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            last_exc = exc
            logger.debug("fetch attempt %s failed for %s: %r", attempt + 1, url, exc)
    raise ScrapeError(f"GET {url} failed after {retries + 1} attempt(s): {last_exc!r}", location=url) from last_exc


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: Optional[float] = None,
    retries: int = 0,
) -> str:
    """
    Fetch a URL and return body text. Raises ScrapeError once retries are exhausted.
    """
    async def _read(resp: ClientResponse) -> str:
        return await resp.text()

    return await _fetch(session, url, _read, timeout=timeout, retries=retries)


async def fetch_json(
    session: ClientSession,
    url: str,
    *,
    timeout: Optional[float] = None,
    retries: int = 0,
) -> Any:
    """
    Fetch a URL and decode its JSON body, whatever Content-Type the server claims.
    """
    async def _read(resp: ClientResponse) -> Any:
        return await resp.json(content_type=None)

    return await _fetch(session, url, _read, timeout=timeout, retries=retries)


def create_session(user_agent: Optional[str] = None, timeout: float = 15.0) -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; pacing is the engine's rate limiter
    headers = {"User-Agent": user_agent} if user_agent else None
    return aiohttp.ClientSession(
        connector=connector,
        headers=headers,
        timeout=ClientTimeout(total=timeout),
        auto_decompress=True,
    )
