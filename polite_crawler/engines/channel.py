from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Deque


class ChannelClosed(Exception):
    """Raised by ItemChannel.put once the channel has been closed."""


#: Returned by ItemChannel.get when the channel is closed and drained.
CLOSED = object()


class ItemChannel:
    """
    Bounded FIFO between crawl workers and process workers.

    ``put`` suspends while the channel holds ``capacity`` items, which is what
    throttles fetching down to the speed of the sink.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self.capacity = capacity
        self._items: Deque[Any] = deque()
        self._closed = False
        self._not_empty = asyncio.Event()
        self._not_full = asyncio.Event()

    async def put(self, item: Any) -> None:
        while True:
            if self._closed:
                raise ChannelClosed("item channel is closed")
            if len(self._items) < self.capacity:
                self._items.append(item)
                self._not_empty.set()
                return
            self._not_full.clear()
            await self._not_full.wait()

    async def get(self) -> Any:
        while True:
            if self._items:
                item = self._items.popleft()
                self._not_full.set()
                return item
            if self._closed:
                return CLOSED
            self._not_empty.clear()
            await self._not_empty.wait()

    def close(self) -> None:
        self._closed = True
        self._not_empty.set()
        self._not_full.set()

    def discard(self) -> int:
        """Drop everything still buffered; returns the number of items dropped."""
        dropped = len(self._items)
        self._items.clear()
        self._not_full.set()
        return dropped

    @property
    def closed(self) -> bool:
        return self._closed

    def empty(self) -> bool:
        return not self._items

    def full(self) -> bool:
        return len(self._items) >= self.capacity

    def __len__(self) -> int:
        return len(self._items)
