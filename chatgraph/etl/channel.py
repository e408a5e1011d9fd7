"""
Bounded channel between the parsing producer and the ingestion consumer.

One writer, one reader, first-in first-out. The writer blocks while the
channel is full and the reader blocks while it is empty, so memory stays
bounded by capacity times the average thread size.

Lifecycle:
    open    -> send() and receive() work normally
    closed  -> writer is done; reader drains what is left, then gets None
    aborted -> either side gave up; buffered threads are discarded and both
               send() and receive() raise ChannelClosedError
"""

from collections import deque
from typing import Deque, Iterator, Optional
import threading

from chatgraph.etl.models import Thread


class ChannelClosedError(Exception):
    """The channel no longer accepts (or, once aborted, yields) threads."""


class ThreadChannel:
    """Bounded, ordered, single-reader/single-writer queue of Threads."""

    def __init__(self, capacity: int):
        """
        Args:
            capacity: Maximum number of buffered threads.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: Deque[Thread] = deque()
        self._closed = False
        self._abort_reason: Optional[BaseException] = None
        self._cond = threading.Condition()

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def __iter__(self) -> Iterator[Thread]:
        while True:
            thread = self.receive()
            if thread is None:
                return
            yield thread

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def aborted(self) -> bool:
        return self._abort_reason is not None

    def send(self, thread: Thread) -> None:
        """
        Append a thread, blocking while the channel is full.

        Raises:
            ChannelClosedError: If the channel is closed, or the reader aborted
                (before or while waiting).
        """
        with self._cond:
            while len(self._items) >= self.capacity and not self._stopped():
                self._cond.wait()
            if self._abort_reason is not None:
                raise ChannelClosedError("Reader aborted") from self._abort_reason
            if self._closed:
                raise ChannelClosedError("Channel is closed")
            self._items.append(thread)
            self._cond.notify_all()

    def receive(self) -> Optional[Thread]:
        """
        Take the oldest thread, blocking while the channel is empty and open.

        Returns:
            The next thread, or None once the channel is closed and drained.

        Raises:
            ChannelClosedError: If the channel was aborted.
        """
        with self._cond:
            while not self._items and not self._stopped():
                self._cond.wait()
            if self._abort_reason is not None:
                raise ChannelClosedError("Channel aborted") from self._abort_reason
            if not self._items:
                return None
            thread = self._items.popleft()
            self._cond.notify_all()
            return thread

    def close(self) -> None:
        """Mark the end of the stream. Buffered threads stay receivable."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abort(self, reason: BaseException) -> None:
        """Stop the stream, discard buffered threads and wake the other side."""
        with self._cond:
            self._abort_reason = reason
            self._items.clear()
            self._cond.notify_all()

    def _stopped(self) -> bool:
        return self._closed or self._abort_reason is not None
