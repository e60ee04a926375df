"""
Wire - event channel between a running agent loop and a streaming reader.

One Wire per streamed run. The run loop writes RunEvents as they happen; the
caller reads them with `async for event in wire.read()` until the loop
closes the wire.
"""

import asyncio
from typing import TYPE_CHECKING, AsyncIterator

if TYPE_CHECKING:
    from relay.domain import RunEvent


class Wire:
    """
    Thin wrapper around asyncio.Queue:
    - write(): put an event into the channel
    - read(): async iterate over events until closed
    - close(): signal that no more events will be written
    """

    _SENTINEL = object()

    def __init__(self, maxsize: int = 0):
        """
        Args:
            maxsize: Maximum queue size (0 = unlimited)
        """
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    async def write(self, event: "RunEvent") -> None:
        # Writes after close are ignored
        if self._closed:
            return
        await self._queue.put(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(self._SENTINEL)

    async def read(self) -> AsyncIterator["RunEvent"]:
        """
        Read events until the wire is closed.

        Yields:
            RunEvent: Events in write order
        """
        while True:
            item = await self._queue.get()
            if item is self._SENTINEL:
                # Re-put sentinel for other readers
                await self._queue.put(self._SENTINEL)
                break
            yield item

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return f"Wire(closed={self._closed}, qsize={self._queue.qsize()})"


__all__ = ["Wire"]
