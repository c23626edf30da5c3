"""Bounded, closable FIFO channel connecting the pipeline's tasks."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Generic, TypeVar

from .errors import ChannelClosed

T = TypeVar("T")


class Channel(Generic[T]):
    """Bounded FIFO queue between one producer task and one consumer task.

    `send` suspends while the channel is full, it never drops. `close` wakes
    both sides: afterwards `send` raises `ChannelClosed`, and `recv` drains
    whatever is still queued before raising `ChannelClosed` too.

    Like the other asyncio primitives, a channel is bound to the event loop
    that first awaits on it.
    """

    def __init__(self, maxsize: int):
        if maxsize <= 0:
            raise ValueError("Channel capacity must be positive.")
        self._maxsize = maxsize
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return len(self._items) >= self._maxsize

    async def send(self, item: T) -> None:
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or not self.full())
            if self._closed:
                raise ChannelClosed("send on closed channel")
            self._items.append(item)
            self._cond.notify_all()

    async def recv(self) -> T:
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or self._items)
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            raise ChannelClosed("receive on closed channel")

    async def close(self) -> None:
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        try:
            return await self.recv()
        except ChannelClosed:
            raise StopAsyncIteration
