"""Transport connections and cancellation contexts."""

from __future__ import annotations

import abc
import itertools
import queue
import threading
from typing import Any, Callable


class ContextCancelled(Exception):
    """Work was abandoned because its context was cancelled."""


class Context:
    """A cancellation signal that propagates from parents to children."""

    def __init__(self, parent: Context | None = None) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._err: BaseException | None = None
        self._callbacks: dict[int, Callable[[], Any]] = {}
        self._tokens = itertools.count()
        self._detach: Callable[[], None] | None = None
        if parent is not None:
            detach = parent.on_done(lambda: self.cancel(parent.err))
            if not self.done:
                self._detach = detach

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def err(self) -> BaseException | None:
        return self._err

    def child(self) -> Context:
        """Return a context that is cancelled together with this one."""
        return Context(parent=self)

    def cancel(self, error: BaseException | None = None) -> None:
        """Cancel this context and its children; later calls do nothing."""
        with self._lock:
            if self._event.is_set():
                return
            self._err = error if error is not None else ContextCancelled("context canceled")
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            self._event.set()
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()
        for callback in callbacks:
            callback()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled; False if the timeout passed first."""
        return self._event.wait(timeout)

    def on_done(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Run callback on cancellation; returns a function that unregisters it."""
        with self._lock:
            if not self._event.is_set():
                token = next(self._tokens)
                self._callbacks[token] = callback

                def remove() -> None:
                    with self._lock:
                        self._callbacks.pop(token, None)

                return remove
        callback()
        return lambda: None


class Connection(abc.ABC):
    """A byte stream between two hub parties."""

    @abc.abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to size bytes."""

    @abc.abstractmethod
    def write(self, data: bytes) -> int:
        """Write data and return the number of bytes written."""

    @property
    @abc.abstractmethod
    def context(self) -> Context:
        """Context that is cancelled when the connection ends."""

    @property
    @abc.abstractmethod
    def connection_id(self) -> str:
        """Identifier of the connection."""


class ConnectionBase(Connection):
    """Base for connections: holds the context and the connection id."""

    def __init__(self, context: Context | None = None, connection_id: str = "") -> None:
        self._id_lock = threading.Lock()
        self._context = context if context is not None else Context()
        self._connection_id = connection_id

    @property
    def context(self) -> Context:
        return self._context

    @property
    def connection_id(self) -> str:
        with self._id_lock:
            return self._connection_id

    @connection_id.setter
    def connection_id(self, value: str) -> None:
        with self._id_lock:
            self._connection_id = value


def read_write_with_context(
    ctx: Context,
    do_rw: Callable[[], Any],
    unblock_rw: Callable[[], Any] | None = None,
) -> Any:
    """Run a blocking read or write, giving up when ctx is cancelled.

    On cancellation unblock_rw is called to release the blocked operation
    and the context's error is raised.
    """
    if ctx.done:
        raise ctx.err
    outcome: queue.SimpleQueue = queue.SimpleQueue()

    def job() -> None:
        try:
            outcome.put((True, do_rw()))
        except BaseException as exc:  # handed over to the caller
            outcome.put((False, exc))

    threading.Thread(target=job, daemon=True).start()
    remove = ctx.on_done(lambda: outcome.put(None))
    try:
        result = outcome.get()
    finally:
        remove()
    if result is None:
        if unblock_rw is not None:
            unblock_rw()
        raise ctx.err
    ok, value = result
    if ok:
        return value
    raise value