from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, FrozenSet, Hashable, Iterable, Optional, Set

logger = logging.getLogger(__name__)

Location = Hashable


class Frontier:
    """
    Pending/visited bookkeeping for one crawl run.

    A location is *claimed* the first time it is enqueued and *visited* once it
    is dequeued. Claiming is checked and recorded without an intervening
    suspension point, so the same location reaches ``pending`` at most once per
    run no matter how many workers discover it.

    All methods must be called from the event loop that owns the frontier.
    """

    def __init__(self) -> None:
        self._claimed: Set[Location] = set()
        self._visited: Set[Location] = set()
        self._pending: Deque[Location] = deque()
        self._closed = False
        self._has_work = asyncio.Event()

    # ---- Mutation ----

    def seed(self, locations: Iterable[Location]) -> int:
        """Enqueue start locations; returns how many were actually added."""
        added = sum(1 for location in locations if self.try_enqueue(location))
        logger.debug("Seeded frontier with %s location(s)", added)
        return added

    def try_enqueue(self, location: Location) -> bool:
        if self._closed or location in self._claimed:
            return False
        self._claimed.add(location)
        self._pending.append(location)
        self._has_work.set()
        return True

    def dequeue(self) -> Optional[Location]:
        """Pop the next pending location (FIFO), or None if nothing is pending."""
        if self._closed or not self._pending:
            return None
        location = self._pending.popleft()
        self._visited.add(location)
        return location

    async def get(self) -> Optional[Location]:
        """
        Wait for the next pending location.
        Returns None once the frontier is closed.
        """
        while True:
            location = self.dequeue()
            if location is not None or self._closed:
                return location
            self._has_work.clear()
            await self._has_work.wait()

    def close(self) -> None:
        """Stop handing out work and release every waiting worker."""
        self._closed = True
        self._has_work.set()

    # ---- Introspection ----

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def visited(self) -> FrozenSet[Location]:
        return frozenset(self._visited)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def claimed_count(self) -> int:
        return len(self._claimed)

    def __contains__(self, location: object) -> bool:
        return location in self._claimed

    def __len__(self) -> int:
        return len(self._pending)
