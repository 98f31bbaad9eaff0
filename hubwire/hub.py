"""Hubs and the context they are invoked in."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from hubwire.connection import Context

_logger = logging.getLogger("hubwire.hub")


@dataclass
class HubContext:
    """What a hub sees of the connection that invokes it.

    clients gives proxies to call methods on connected clients, groups adds
    connections to named groups and removes them, items holds values scoped
    to the connection.
    """

    connection: Any
    abort_func: Callable[[], Any]
    clients: Any
    groups: Any
    info: Any = None
    dbg: Any = None

    @property
    def items(self) -> dict[Any, Any]:
        return self.connection.items

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def context(self) -> Context:
        return self.connection.context

    def abort(self) -> None:
        """Abort the current connection."""
        self.abort_func()

    def logger(self) -> tuple[Any, Any]:
        """Return the info and debug loggers of the server."""
        return self.info, self.dbg


class Hub:
    """Base class for hubs; its public methods can be invoked by clients."""

    _hub_context: HubContext | None = None

    def _require_context(self) -> HubContext:
        hub_context = self._hub_context
        if hub_context is None:
            raise RuntimeError("hub is not initialized")
        return hub_context

    def _debug_logger(self) -> Any:
        hub_context = self._hub_context
        if hub_context is not None and hub_context.dbg is not None:
            return hub_context.dbg
        return _logger

    def initialize(self, hub_context: HubContext) -> None:
        """Bind the hub to the context of the current invocation."""
        self._hub_context = hub_context

    @property
    def clients(self) -> Any:
        """Proxies to the clients of this hub."""
        return self._require_context().clients

    @property
    def groups(self) -> Any:
        """The group manager of this hub."""
        return self._require_context().groups

    @property
    def items(self) -> dict[Any, Any]:
        """Items held for the current connection."""
        return self._require_context().items

    @property
    def connection_id(self) -> str:
        """Id of the current connection."""
        return self._require_context().connection_id

    @property
    def context(self) -> Context:
        """Context of the current connection."""
        return self._require_context().context

    def abort(self) -> None:
        """Abort the current connection."""
        self._require_context().abort()

    def logger(self) -> tuple[Any, Any]:
        """Return the loggers of the server, so hubs can log alike."""
        return self._require_context().logger()

    def on_connected(self, connection_id: str) -> None:
        """Called when a connection to the hub is established; logs it."""
        self._debug_logger().debug("hub connected connection=%s", connection_id)

    def on_disconnected(self, connection_id: str) -> None:
        """Called when a connection to the hub has ended; logs it."""
        self._debug_logger().debug("hub disconnected connection=%s", connection_id)