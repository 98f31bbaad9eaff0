"""Thread-safe channels and the combined value/error result stream."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, TypeVar

from hubwire.connection import Context

T = TypeVar("T")

_POLL_INTERVAL = 0.05


class ChannelClosed(Exception):
    """The channel is closed and, for receiving, empty."""


class Channel(Generic[T]):
    """A closable FIFO shared between threads, optionally bounded."""

    def __init__(self, capacity: int | None = None) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = threading.Condition()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, item: T) -> None:
        """Append an item, waiting while the channel is full."""
        with self._cond:
            while (
                not self._closed
                and self._capacity is not None
                and len(self._items) >= self._capacity
            ):
                self._cond.wait()
            if self._closed:
                raise ChannelClosed("send on closed channel")
            self._items.append(item)
            self._cond.notify_all()

    def receive(self, timeout: float | None = None) -> T:
        """Take the next item; buffered items stay readable after close."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._items or self._closed, timeout):
                raise TimeoutError("no item received within timeout")
            if self._items:
                item = self._items.popleft()
                self._cond.notify_all()
                return item
            raise ChannelClosed("receive from closed channel")

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.receive()
            except ChannelClosed:
                return


@dataclass(frozen=True)
class InvokeResult:
    """Result of an asynchronous invocation: a value or an error."""

    value: Any = None
    error: BaseException | None = None


def new_invoke_result_chan(
    ctx: Context, result_chan: Channel[Any], err_chan: Channel[BaseException | None]
) -> Channel[InvokeResult]:
    """Merge a value channel and an error channel into one result channel.

    The result channel closes when both inputs are closed or ctx is cancelled.
    """
    out: Channel[InvokeResult] = Channel(capacity=1)
    lock = threading.Lock()
    remaining = 2
    remove = ctx.on_done(out.close)

    def finish() -> None:
        nonlocal remaining
        with lock:
            remaining -= 1
            last = remaining == 0
        if last:
            out.close()
            remove()

    def forward(source: Channel[Any], wrap: Callable[[Any], InvokeResult]) -> None:
        while not ctx.done:
            try:
                item = source.receive(timeout=_POLL_INTERVAL)
            except TimeoutError:
                continue
            except ChannelClosed:
                finish()
                return
            try:
                out.send(wrap(item))
            except ChannelClosed:
                return

    for source, wrap in (
        (result_chan, lambda v: InvokeResult(value=v)),
        (err_chan, lambda e: InvokeResult(error=e)),
    ):
        threading.Thread(target=forward, args=(source, wrap), daemon=True).start()
    return out