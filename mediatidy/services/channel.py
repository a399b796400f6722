"""Closable channel between the engine thread and the reporter."""
from __future__ import annotations

import queue
import threading
from typing import Iterator

from ..core.config import CHANNEL_MAXSIZE
from ..core.models import ProgressEvent


_CLOSED = object()


class ChannelClosed(RuntimeError):
    """Raised when sending on a closed channel."""


class ProgressChannel:
    """Bounded FIFO of progress events with an explicit close.

    The producer blocks on `send` while the queue is full. Iterating blocks
    on the next event and ends once the channel is closed and every event
    sent before the close has been consumed.
    """

    def __init__(self, maxsize: int = CHANNEL_MAXSIZE):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: ProgressEvent) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosed("send on closed channel")
        self._queue.put(event)

    def close(self) -> None:
        """Close the channel. Closing twice is a no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item
