"""Sending and receiving hub messages over a transport connection."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from hubwire.connection import Connection, Context, ContextCancelled, read_write_with_context
from hubwire.invokeresult import Channel, ChannelClosed
from hubwire.messages import (
    CloseMessage,
    CompletionMessage,
    HubMessage,
    InvocationMessage,
    StreamItemMessage,
    fmt_msg,
    PING,
    INVOCATION,
    STREAM_INVOCATION,
)

_RECEIVE_CAPACITY = 20


@dataclass(frozen=True)
class ReceiveResult:
    """A received message or the error that occurred while receiving."""

    message: Any = None
    error: BaseException | None = None


class _PipeReader:
    """Reader over chunks handed from the connection reading thread."""

    def __init__(self, pipe: Channel[Any]) -> None:
        self._pipe = pipe
        self.drained = False

    def read(self, size: int = -1) -> bytes:
        try:
            item = self._pipe.receive()
        except ChannelClosed:
            self.drained = True
            return b""
        if isinstance(item, BaseException):
            raise item
        return item


class HubConnection:
    """A transport connection combined with a hub protocol."""

    def __init__(
        self,
        connection: Connection,
        protocol: Any,
        maximum_receive_message_size: int = 1 << 15,
        logger: logging.Logger | None = None,
    ) -> None:
        self._connection = connection
        self._protocol = protocol
        self._context = connection.context.child()
        self._max_size = maximum_receive_message_size
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._last_write_stamp = 0.0
        self.items: dict[Any, Any] = {}
        set_transfer_mode = getattr(connection, "set_transfer_mode", None)
        if callable(set_transfer_mode):
            set_transfer_mode(protocol.transfer_mode())

    @property
    def connection_id(self) -> str:
        return self._connection.connection_id

    @property
    def context(self) -> Context:
        return self._context

    @property
    def last_write_stamp(self) -> float:
        """Monotonic time of the last attempted write."""
        with self._lock:
            return self._last_write_stamp

    def abort(self) -> None:
        self._context.cancel()

    def close(self, error: str = "", allow_reconnect: bool = False) -> None:
        """Send a close message straight to the connection."""
        self._protocol.write_message(
            CloseMessage(error=error, allow_reconnect=allow_reconnect), self._connection
        )

    def receive(self) -> Channel[ReceiveResult]:
        """Start receiving; messages and errors arrive on the returned channel.

        The channel is closed when the connection is aborted or its input ends.
        """
        ctx = self._context
        recv: Channel[ReceiveResult] = Channel(capacity=_RECEIVE_CAPACITY)
        pipe: Channel[Any] = Channel()
        remove_recv = ctx.on_done(recv.close)
        remove_pipe = ctx.on_done(pipe.close)

        def read_connection() -> None:
            try:
                while not ctx.done:
                    try:
                        data = self._connection.read(self._max_size)
                    except Exception as exc:
                        pipe.send(exc)
                        return
                    if not data:
                        pipe.send(EOFError("connection closed"))
                        return
                    pipe.send(data)
            except ChannelClosed:
                return
            finally:
                pipe.close()
                remove_pipe()

        def put(result: ReceiveResult) -> bool:
            try:
                recv.send(result)
                return True
            except ChannelClosed:
                return False

        def parse() -> None:
            reader = _PipeReader(pipe)
            remain = bytearray()
            try:
                while not ctx.done:
                    try:
                        messages = self._protocol.parse_messages(reader, remain)
                    except Exception as exc:
                        if ctx.done or reader.drained:
                            return
                        if not put(ReceiveResult(error=exc)):
                            return
                        continue
                    for message in messages:
                        if not put(ReceiveResult(message=message)):
                            return
            finally:
                recv.close()
                remove_recv()

        threading.Thread(target=read_connection, daemon=True).start()
        threading.Thread(target=parse, daemon=True).start()
        return recv

    def send_invocation(self, invocation_id: str, target: str, args: list[Any] | None) -> None:
        self._write_message(
            InvocationMessage(
                type=INVOCATION,
                invocation_id=invocation_id,
                target=target,
                arguments=list(args) if args is not None else [],
            )
        )

    def send_stream_invocation(
        self, invocation_id: str, target: str, args: list[Any] | None
    ) -> None:
        self._write_message(
            InvocationMessage(
                type=STREAM_INVOCATION,
                invocation_id=invocation_id,
                target=target,
                arguments=list(args) if args is not None else [],
            )
        )

    def send_invocation_with_stream_ids(
        self, invocation_id: str, target: str, args: list[Any] | None, stream_ids: list[str]
    ) -> None:
        self._write_message(
            InvocationMessage(
                type=INVOCATION,
                invocation_id=invocation_id,
                target=target,
                arguments=args,
                stream_ids=stream_ids,
            )
        )

    def stream_item(self, invocation_id: str, item: Any) -> None:
        self._write_message(StreamItemMessage(invocation_id=invocation_id, item=item))

    def completion(self, invocation_id: str, result: Any = None, error: str = "") -> None:
        self._write_message(
            CompletionMessage(invocation_id=invocation_id, result=result, error=error)
        )

    def ping(self) -> None:
        self._write_message(HubMessage(type=PING))

    def _write_message(self, message: Any) -> None:
        with self._lock:
            self._last_write_stamp = time.monotonic()
        ctx = self._context
        try:
            if ctx.done:
                raise ContextCancelled(f"hubConnection canceled: {ctx.err}")
            try:
                read_write_with_context(
                    ctx, lambda: self._protocol.write_message(message, self._connection)
                )
            except Exception as exc:
                if ctx.done and exc is ctx.err:
                    raise ContextCancelled(f"hubConnection canceled: {exc}") from exc
                self.abort()
                raise
        except Exception as exc:
            self._logger.info("send message=%s error=%s", fmt_msg(message), exc)
            raise