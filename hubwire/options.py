"""Client-only options: connection, connector, receiver, backoff and format."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

Option = Callable[[Any], None]


class OptionError(ValueError):
    """An option is invalid, misplaced or conflicts with another one."""


@dataclass
class ClientOptions:
    """Settings of a client that options fill in."""

    connection: Any = None
    connection_factory: Callable[[], Any] | None = None
    receiver: Any = None
    backoff_factory: Callable[[], Any] | None = None
    format: str = "json"


def _client_only(target: Any, name: str) -> ClientOptions:
    if not isinstance(target, ClientOptions):
        raise OptionError(f"option {name} is client only")
    return target


_CONFLICT = "options with_connection and with_connector can not be used together"


def with_connection(connection: Any) -> Option:
    """Use an existing connection."""

    def apply(target: Any) -> None:
        options = _client_only(target, "with_connection")
        if options.connection_factory is not None:
            raise OptionError(_CONFLICT)
        options.connection = connection

    return apply


def with_connector(connection_factory: Callable[[], Any]) -> Option:
    """Build connections with a factory, also when reconnecting."""

    def apply(target: Any) -> None:
        options = _client_only(target, "with_connector")
        if options.connection is not None:
            raise OptionError(_CONFLICT)
        options.connection_factory = connection_factory

    return apply


def with_receiver(receiver: Any) -> Option:
    """Set the object that receives calls from the server."""

    def apply(target: Any) -> None:
        _client_only(target, "with_receiver").receiver = receiver

    return apply


def with_backoff(backoff_factory: Callable[[], Any]) -> Option:
    """Set the factory for the backoff used between connection attempts."""

    def apply(target: Any) -> None:
        _client_only(target, "with_backoff").backoff_factory = backoff_factory

    return apply


_FORMATS = {"Text": "json", "Binary": "messagepack"}


def transfer_format(format_name: str) -> Option:
    """Set the transfer format: "Text" or "Binary"."""

    def apply(target: Any) -> None:
        options = _client_only(target, "transfer_format")
        try:
            options.format = _FORMATS[format_name]
        except KeyError:
            raise OptionError(f"invalid transferformat {format_name}") from None

    return apply


def apply_options(options: ClientOptions, *args: Option | None) -> ClientOptions:
    """Apply the given options, skipping None, and check a connection is set."""
    for option in args:
        if option is not None:
            option(options)
    if options.connection is None and options.connection_factory is None:
        raise OptionError("neither with_connection nor with_connector option was given")
    return options