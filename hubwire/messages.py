"""Message types of the hub protocol and helpers to render them."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Any

INVOCATION = 1
STREAM_ITEM = 2
COMPLETION = 3
STREAM_INVOCATION = 4
CANCEL_INVOCATION = 5
PING = 6
CLOSE = 7


class TransferMode(enum.IntEnum):
    """How a transport carries messages."""

    TEXT = 1
    BINARY = 2


@dataclass
class HubMessage:
    """A message known only by its type, mostly a ping."""

    type: int = PING


@dataclass
class InvocationMessage:
    """Invocation of a method on the other party."""

    target: str = ""
    arguments: list[Any] | None = field(default_factory=list)
    invocation_id: str = ""
    stream_ids: list[str] | None = None
    type: int = INVOCATION


@dataclass
class StreamItemMessage:
    """One item of a stream."""

    invocation_id: str = ""
    item: Any = None
    type: int = STREAM_ITEM


@dataclass
class CompletionMessage:
    """End of an invocation, with an optional result or error."""

    invocation_id: str = ""
    result: Any = None
    error: str = ""
    type: int = COMPLETION


@dataclass
class CancelInvocationMessage:
    """Request to stop a running stream invocation."""

    invocation_id: str = ""
    type: int = CANCEL_INVOCATION


@dataclass
class CloseMessage:
    """Announces that the connection is closed."""

    error: str = ""
    allow_reconnect: bool = False
    type: int = CLOSE


@dataclass
class HandshakeRequest:
    """First message a client sends."""

    protocol: str = "json"
    version: int = 1


@dataclass
class HandshakeResponse:
    """Answer to a handshake request; an empty error means success."""

    error: str = ""


def message_to_dict(message: Any) -> dict[str, Any]:
    """Return the wire representation of a message as a dict."""
    if isinstance(message, InvocationMessage):
        data: dict[str, Any] = {"type": message.type, "target": message.target}
        if message.invocation_id:
            data["invocationId"] = message.invocation_id
        data["arguments"] = message.arguments
        if message.stream_ids:
            data["streamIds"] = list(message.stream_ids)
        return data
    if isinstance(message, StreamItemMessage):
        return {
            "type": message.type,
            "invocationId": message.invocation_id,
            "item": message.item,
        }
    if isinstance(message, CompletionMessage):
        data = {"type": message.type, "invocationId": message.invocation_id}
        if message.result is not None:
            data["result"] = message.result
        if message.error:
            data["error"] = message.error
        return data
    if isinstance(message, CancelInvocationMessage):
        return {"type": message.type, "invocationId": message.invocation_id}
    if isinstance(message, CloseMessage):
        return {
            "type": message.type,
            "error": message.error,
            "allowReconnect": message.allow_reconnect,
        }
    if isinstance(message, HandshakeRequest):
        return {"protocol": message.protocol, "version": message.version}
    if isinstance(message, HandshakeResponse):
        return {"error": message.error} if message.error else {}
    if isinstance(message, HubMessage):
        return {"type": message.type}
    raise TypeError(f"not a hub message: {message!r}")


def _readable(argument: Any) -> Any:
    if isinstance(argument, (bytes, bytearray)):
        return bytes(argument).decode("utf-8", errors="replace")
    return argument


def fmt_msg(message: Any) -> str:
    """Render a message for logging, showing raw arguments as text."""
    if isinstance(message, InvocationMessage) and message.arguments:
        message = dataclasses.replace(
            message, arguments=[_readable(a) for a in message.arguments]
        )
    return repr(message)