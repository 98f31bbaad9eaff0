"""JSON hub protocol: record-separator framed JSON messages."""

from __future__ import annotations

import dataclasses
import json
import logging
import types
import typing
from typing import Any, Union

from hubwire.messages import (
    CancelInvocationMessage,
    CloseMessage,
    CompletionMessage,
    HubMessage,
    InvocationMessage,
    StreamItemMessage,
    TransferMode,
    fmt_msg,
    message_to_dict,
)

RECORD_SEPARATOR = b"\x1e"
_READ_SIZE = 1 << 15

_BUILTIN_TYPE_NAMES: dict[str, Any] = {
    "int": int,
    "str": str,
    "float": float,
    "bool": bool,
    "list": list,
    "dict": dict,
    "bytes": bytes,
    "Any": Any,
    "object": object,
}


class RawJson(bytes):
    """Undecoded JSON text of one value."""

    __slots__ = ()


class JsonError(ValueError):
    """Malformed JSON or JSON that does not fit the expected shape."""

    def __init__(self, raw: bytes | str, err: BaseException) -> None:
        self.raw = raw if isinstance(raw, str) else bytes(raw).decode("utf-8", "replace")
        self.err = err
        super().__init__(f"{err} (source: {self.raw})")


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_encode_default)


def _raw(value: Any) -> RawJson:
    return RawJson(_dumps(value).encode("utf-8"))


def _encode_default(obj: Any) -> Any:
    if isinstance(obj, RawJson):
        return json.loads(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.metadata.get("json", f.name): getattr(obj, f.name)
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"value of type {type(obj).__name__} is not JSON serializable")


def _check(value: Any, kind: type, target: Any) -> None:
    if not isinstance(value, kind):
        raise TypeError(f"cannot convert {type(value).__name__} into {target!r}")


def _convert_key(key: str, target: Any) -> Any:
    if target is int:
        return int(key)
    if target in (str, Any, object):
        return key
    return _convert(key, target)


def _field_type(f: dataclasses.Field) -> Any:
    """The declared type of a dataclass field; string annotations of builtins are resolved."""
    declared = f.type
    if isinstance(declared, str):
        return _BUILTIN_TYPE_NAMES.get(declared.strip(), Any)
    return declared


def _convert(value: Any, target: Any) -> Any:
    if target in (None, Any, object) or value is None:
        return value
    origin = typing.get_origin(target)
    if origin is not None:
        args = typing.get_args(target)
        if origin is list:
            _check(value, list, target)
            item_type = args[0] if args else Any
            return [_convert(v, item_type) for v in value]
        if origin is dict:
            _check(value, dict, target)
            key_type, value_type = args if args else (Any, Any)
            return {_convert_key(k, key_type): _convert(v, value_type) for k, v in value.items()}
        if origin is Union or origin is types.UnionType:
            for arg in args:
                try:
                    return _convert(value, arg)
                except (TypeError, ValueError):
                    continue
            raise TypeError(f"cannot convert {value!r} into {target!r}")
        raise TypeError(f"unsupported target type {target!r}")
    if dataclasses.is_dataclass(target):
        _check(value, dict, target)
        kwargs = {}
        for f in dataclasses.fields(target):
            key = f.metadata.get("json", f.name)
            if key in value:
                kwargs[f.name] = _convert(value[key], _field_type(f))
        return target(**kwargs)
    if target is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"cannot convert {value!r} into float")
        return float(value)
    if target is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"cannot convert {value!r} into int")
        return value
    _check(value, target, target)
    return value


def _field(frame: bytes, obj: dict, key: str, kind: type, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    valid = isinstance(value, kind) and not (kind is int and isinstance(value, bool))
    if valid and kind is list and key == "streamIds":
        valid = all(isinstance(v, str) for v in value)
    if not valid:
        raise JsonError(frame, TypeError(f"invalid value {value!r} for field {key!r}"))
    return value


def _parse_message(frame: bytes, obj: Any) -> Any:
    if not isinstance(obj, dict):
        raise JsonError(frame, TypeError("message is not a JSON object"))
    message_type = _field(frame, obj, "type", int, 0)
    if message_type in (1, 4):
        return InvocationMessage(
            type=message_type,
            target=_field(frame, obj, "target", str, ""),
            invocation_id=_field(frame, obj, "invocationId", str, ""),
            arguments=[_raw(a) for a in _field(frame, obj, "arguments", list, [])],
            stream_ids=_field(frame, obj, "streamIds", list, None),
        )
    if message_type == 2:
        return StreamItemMessage(
            type=message_type,
            invocation_id=_field(frame, obj, "invocationId", str, ""),
            item=_raw(obj["item"]) if "item" in obj else None,
        )
    if message_type == 3:
        return CompletionMessage(
            type=message_type,
            invocation_id=_field(frame, obj, "invocationId", str, ""),
            result=_raw(obj["result"]) if "result" in obj else None,
            error=_field(frame, obj, "error", str, ""),
        )
    if message_type == 5:
        return CancelInvocationMessage(
            type=message_type,
            invocation_id=_field(frame, obj, "invocationId", str, ""),
        )
    if message_type == 7:
        return CloseMessage(
            type=message_type,
            error=_field(frame, obj, "error", str, ""),
            allow_reconnect=_field(frame, obj, "allowReconnect", bool, False),
        )
    return HubMessage(type=message_type)


def parse_json_frames(buf: bytearray) -> list[bytes]:
    """Take all complete frames out of buf, leaving the incomplete rest in it."""
    *frames, rest = bytes(buf).split(RECORD_SEPARATOR)
    buf[:] = rest
    return frames


def read_json_frames(reader: Any, remain: bytearray) -> list[bytes]:
    """Read until at least one frame is complete; keep leftover bytes in remain."""
    buf = bytearray(remain)
    remain.clear()
    while True:
        frames = parse_json_frames(buf)
        if frames:
            remain.extend(buf)
            return frames
        data = reader.read(_READ_SIZE)
        if not data:
            remain.extend(buf)
            raise EOFError("stream ended before a complete frame was received")
        buf.extend(data)


class JsonHubProtocol:
    """The JSON based hub protocol."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def set_debug_logger(self, logger: logging.Logger) -> None:
        self._logger = logger

    def transfer_mode(self) -> TransferMode:
        return TransferMode.TEXT

    def unmarshal_argument(self, src: Any, target_type: Any = object) -> Any:
        """Decode a raw argument into a value of target_type."""
        if not isinstance(src, RawJson):
            raise TypeError(f"invalid source {src!r} for unmarshal_argument")
        try:
            value = json.loads(src)
        except ValueError as exc:
            raise JsonError(src, exc) from exc
        try:
            result = _convert(value, target_type)
        except (TypeError, ValueError) as exc:
            raise JsonError(src, exc) from exc
        self._logger.debug("unmarshal_argument argument=%s value=%r", src.decode("utf-8", "replace"), result)
        return result

    def parse_messages(self, reader: Any, remain: bytearray) -> list[Any]:
        """Read all complete messages; incomplete bytes stay in remain."""
        messages = []
        for frame in read_json_frames(reader, remain):
            self._logger.debug("read %s", frame.decode("utf-8", "replace"))
            try:
                obj = json.loads(frame)
            except ValueError as exc:
                raise JsonError(frame, exc) from exc
            messages.append(_parse_message(frame, obj))
        return messages

    def write_message(self, message: Any, writer: Any) -> None:
        """Write one message, terminated by the record separator."""
        payload = message if isinstance(message, dict) else message_to_dict(message)
        data = _dumps(payload).encode("utf-8") + RECORD_SEPARATOR
        self._logger.debug("write %s (%s)", data.decode("utf-8", "replace"), fmt_msg(message))
        writer.write(data)