from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, List, Optional

from .base import CrawlEngine, CrawlSummary
from .channel import CLOSED, ChannelClosed, ItemChannel
from .frontier import Frontier
from .rate_limiter import RateLimiter
from .termination import TerminationTracker
from ..config import CrawlConfig
from ..errors import ConfigError, EngineError, ProcessError, ScrapeError
from ..spiders.base import CrawlOutcome, Spider

logger = logging.getLogger(__name__)


class _Run:
    """Per-run state; created fresh by every crawl() and discarded afterwards."""

    def __init__(self, spider: Spider, config: CrawlConfig) -> None:
        self.spider = spider
        self.frontier = Frontier()
        self.channel = ItemChannel(config.item_channel_capacity)
        self.tracker = TerminationTracker(self.frontier, self.channel)
        self.limiter = RateLimiter(config.min_request_interval)
        self.summary = CrawlSummary(spider=spider.name)


class Crawler(CrawlEngine):
    """
    Two-stage crawl engine.
    - Crawl workers pull locations from the frontier, wait on the shared rate
      limiter and call ``Spider.scrape``.
    - Process workers pull items from a bounded channel and call ``Spider.process``.
    - A termination tracker ends the run once both stages are idle and empty.
    """
    def __init__(self, config: CrawlConfig | None = None) -> None:
        self.config = config or CrawlConfig()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stop_requested = False

    # ---- Public API ----

    def run(self, spider: Spider) -> CrawlSummary:
        """Crawl to completion on a fresh event loop. Blocks the caller."""
        self.config.validate()
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise EngineError("run() cannot be called from a running event loop; await crawl() instead")
        return asyncio.run(self.crawl(spider))

    def stop(self) -> None:
        """Request early shutdown. Safe to call from any thread."""
        self._stop_requested = True
        loop, event = self._loop, self._stop_event
        if loop is not None and event is not None and not loop.is_closed():
            loop.call_soon_threadsafe(event.set)

    async def crawl(self, spider: Spider) -> CrawlSummary:
        cfg = self.config
        cfg.validate()
        started = time.monotonic()

        self._loop = asyncio.get_running_loop()
        stop_event = self._stop_event = asyncio.Event()
        if self._stop_requested:
            stop_event.set()

        state = _Run(spider, cfg)
        try:
            await self._open_spider(spider)
            try:
                completed = await self._crawl(state, stop_event)
            finally:
                await self._close_spider(spider)
        finally:
            self._loop = None
            self._stop_event = None
            self._stop_requested = False

        summary = state.summary
        summary.completed = completed
        summary.elapsed = time.monotonic() - started
        logger.info(
            "Crawl %r %s in %.2fs | crawled: %s | items: %s/%s processed | errors: %s | dropped: %s",
            spider.name,
            summary.status,
            summary.elapsed,
            summary.crawled,
            summary.items_processed,
            summary.items_produced,
            summary.errors,
            summary.items_dropped,
        )
        return summary

    # ---- Lifecycle ----

    async def _open_spider(self, spider: Spider) -> None:
        try:
            await spider.open()
        except Exception as exc:
            raise EngineError(f"spider {spider.name!r} failed to open: {exc!r}") from exc

    async def _close_spider(self, spider: Spider) -> None:
        try:
            await spider.close()
        except Exception as exc:
            logger.warning("Spider %r failed to close cleanly: %r", spider.name, exc)

    async def _crawl(self, state: _Run, stop_event: asyncio.Event) -> bool:
        cfg = self.config
        try:
            start_urls = list(state.spider.start_urls())
        except Exception as exc:
            raise EngineError(f"spider {state.spider.name!r} failed to provide start urls: {exc!r}") from exc
        try:
            seeded = state.frontier.seed(start_urls)
        except TypeError as exc:
            raise EngineError(f"spider {state.spider.name!r} returned an unhashable start location: {exc}") from exc

        logger.info(
            "Starting crawl %r: %s start location(s), %s crawl / %s process worker(s), %.2fs between requests",
            state.spider.name,
            seeded,
            cfg.crawling_concurrency,
            cfg.processing_concurrency,
            cfg.min_request_interval,
        )

        workers: List[asyncio.Task[None]] = []
        try:
            for i in range(cfg.crawling_concurrency):
                workers.append(asyncio.create_task(self._crawl_worker(state), name=f"crawl-{i}"))
            for i in range(cfg.processing_concurrency):
                workers.append(asyncio.create_task(self._process_worker(state), name=f"process-{i}"))

            # An empty seed never triggers a decrement, so check once up front.
            state.tracker.check()
            completed = await self._supervise(state, workers, stop_event)

            if not completed:
                state.tracker.force_drain()
            state.frontier.close()
            state.channel.close()
            if completed:
                await asyncio.gather(*workers, return_exceptions=True)
                _raise_if_crashed(workers)
            else:
                for task in workers:
                    task.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                dropped = state.channel.discard()
                state.summary.items_dropped += dropped
                if state.summary.items_dropped:
                    logger.warning("Dropped %s unprocessed item(s) on shutdown", state.summary.items_dropped)
            state.tracker.mark_done()
            return completed
        finally:
            pending = [task for task in workers if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _supervise(
        self, state: _Run, workers: List[asyncio.Task[None]], stop_event: asyncio.Event
    ) -> bool:
        """
        Wait for natural completion, a stop request, the run deadline or a
        crashed worker. Returns True on natural completion.
        """
        drained = asyncio.ensure_future(state.tracker.wait())
        stopped = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {drained, stopped, *workers},
                timeout=self.config.run_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            drained.cancel()
            stopped.cancel()

        # Workers only return after the frontier/channel close, so any finished one crashed.
        _raise_if_crashed([task for task in workers if task in done])
        if drained in done:
            return True

        if stopped in done:
            logger.warning("Stop requested; shutting down crawl %r", state.spider.name)
        else:
            logger.warning(
                "Run timeout of %ss reached; shutting down crawl %r", self.config.run_timeout, state.spider.name
            )
        return False

    # ---- Workers ----

    async def _crawl_worker(self, state: _Run) -> None:
        while True:
            location = await state.frontier.get()
            if location is None:
                return
            # Counted before the next suspension point so the claim is never seen as idle.
            state.tracker.crawl_started()
            try:
                await self._scrape_one(state, location)
            finally:
                state.tracker.crawl_finished()

    async def _scrape_one(self, state: _Run, location: Any) -> None:
        spider, summary = state.spider, state.summary
        await state.limiter.acquire()
        try:
            items, discovered = CrawlOutcome.coerce(await spider.scrape(location))
            _check_hashable(discovered, location)
        except ScrapeError as exc:
            summary.scrape_errors += 1
            logger.warning("Scrape failed for %s: %s", location, exc)
            return
        except Exception:
            summary.scrape_errors += 1
            logger.exception("Spider %r raised while scraping %s", spider.name, location)
            return

        summary.crawled += 1
        added = sum(1 for link in discovered if state.frontier.try_enqueue(link))
        logger.debug("Scraped %s: %s item(s), %s new location(s)", location, len(items), added)

        for i, item in enumerate(items):
            state.tracker.item_queued()
            try:
                await state.channel.put(item)
            except ChannelClosed:
                state.tracker.item_finished()
                summary.items_dropped += len(items) - i
                return
            except asyncio.CancelledError:
                summary.items_dropped += len(items) - i
                raise
            summary.items_produced += 1

    async def _process_worker(self, state: _Run) -> None:
        spider, summary = state.spider, state.summary
        while True:
            item = await state.channel.get()
            if item is CLOSED:
                return
            try:
                await spider.process(item)
            except ProcessError as exc:
                summary.process_errors += 1
                logger.warning("Processing failed in %r: %s", spider.name, exc)
            except Exception:
                summary.process_errors += 1
                logger.exception("Spider %r raised while processing an item", spider.name)
            else:
                summary.items_processed += 1
            finally:
                state.tracker.item_finished()


def _check_hashable(discovered: List[Any], location: Any) -> None:
    for link in discovered:
        try:
            hash(link)
        except TypeError as exc:
            raise ScrapeError(f"unhashable discovered location {link!r}: {exc}", location=location) from exc


def _raise_if_crashed(tasks: List[asyncio.Task[None]]) -> None:
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            raise EngineError(f"worker {task.get_name()} died: {exc!r}") from exc


def run(
    spider: Spider,
    crawling_concurrency: int = 4,
    processing_concurrency: int = 2,
    min_request_interval: float = 0.5,
    **options: Any,
) -> CrawlSummary:
    """Convenience entry point: build a config and crawl ``spider`` to completion."""
    try:
        config = CrawlConfig(
            crawling_concurrency=crawling_concurrency,
            processing_concurrency=processing_concurrency,
            min_request_interval=min_request_interval,
            **options,
        )
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    return Crawler(config).run(spider)
