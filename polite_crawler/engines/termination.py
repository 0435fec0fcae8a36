from __future__ import annotations

import asyncio
import enum
import logging

from .channel import ItemChannel
from .frontier import Frontier
from ..errors import EngineError

logger = logging.getLogger(__name__)


class CrawlState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class TerminationTracker:
    """
    Decides when a self-feeding crawl has run out of work.

    Counting in-flight work explicitly is what makes this safe: a crawl task
    stays counted until its discovered locations and items have been attached,
    so "frontier empty" is never read while a worker is about to refill it.
    The completion check runs after every decrement (and once after seeding)
    and requires, in the same synchronous step:

    - no pending locations in the frontier
    - ``crawl_in_flight == 0``
    - an empty item channel
    - ``items_in_flight == 0``
    """

    def __init__(self, frontier: Frontier, channel: ItemChannel) -> None:
        self._frontier = frontier
        self._channel = channel
        self.crawl_in_flight = 0
        self.items_in_flight = 0
        self.state = CrawlState.RUNNING
        self._draining = asyncio.Event()

    # ---- Counters ----

    def crawl_started(self) -> None:
        self.crawl_in_flight += 1

    def crawl_finished(self) -> None:
        if self.crawl_in_flight <= 0:
            raise EngineError("crawl_in_flight would become negative")
        self.crawl_in_flight -= 1
        self.check()

    def item_queued(self) -> None:
        self.items_in_flight += 1

    def item_finished(self) -> None:
        if self.items_in_flight <= 0:
            raise EngineError("items_in_flight would become negative")
        self.items_in_flight -= 1
        self.check()

    # ---- State machine ----

    def is_quiescent(self) -> bool:
        return (
            self._frontier.pending_count == 0
            and self.crawl_in_flight == 0
            and self._channel.empty()
            and self.items_in_flight == 0
        )

    def check(self) -> bool:
        """Move to DRAINING if no more work is possible. Returns True on transition."""
        if self.state is not CrawlState.RUNNING or not self.is_quiescent():
            return False
        logger.debug("No work left; draining workers")
        self.state = CrawlState.DRAINING
        self._draining.set()
        return True

    def force_drain(self) -> None:
        """Enter DRAINING regardless of outstanding work (external cancellation)."""
        if self.state is CrawlState.RUNNING:
            logger.debug(
                "Forced drain with %s crawl task(s) and %s item(s) in flight",
                self.crawl_in_flight,
                self.items_in_flight,
            )
            self.state = CrawlState.DRAINING
            self._draining.set()

    def mark_done(self) -> None:
        self.state = CrawlState.DONE

    async def wait(self) -> None:
        """Block until the tracker leaves RUNNING."""
        await self._draining.wait()

    @property
    def done(self) -> bool:
        return self.state is CrawlState.DONE
