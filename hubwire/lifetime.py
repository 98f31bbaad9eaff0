"""Tracking of hub connections and groups, and proxies for calling clients."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any


class HubLifetimeManager:
    """Keeps the connected clients and their groups and sends them invocations."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._lock = threading.Lock()
        self._clients: dict[str, Any] = {}
        self._groups: dict[str, dict[str, Any]] = {}
        self._logger = logger or logging.getLogger(__name__)

    def on_connected(self, conn: Any) -> None:
        with self._lock:
            self._clients[conn.connection_id] = conn

    def on_disconnected(self, conn: Any) -> None:
        with self._lock:
            self._clients.pop(conn.connection_id, None)

    def _send_async(self, conn: Any, target: str, args: list[Any]) -> None:
        def run() -> None:
            try:
                conn.send_invocation("", target, args)
            except Exception as exc:
                self._logger.debug(
                    "invoke target=%s connection=%s error=%s", target, conn.connection_id, exc
                )

        threading.Thread(target=run, daemon=True).start()

    def invoke_all(self, target: str, args: list[Any]) -> None:
        with self._lock:
            conns = list(self._clients.values())
        for conn in conns:
            self._send_async(conn, target, args)

    def invoke_client(self, connection_id: str, target: str, args: list[Any]) -> None:
        with self._lock:
            conn = self._clients.get(connection_id)
        if conn is not None:
            self._send_async(conn, target, args)

    def invoke_group(self, group_name: str, target: str, args: list[Any]) -> None:
        with self._lock:
            conns = list(self._groups.get(group_name, {}).values())
        for conn in conns:
            self._send_async(conn, target, args)

    def add_to_group(self, group_name: str, connection_id: str) -> None:
        """Add a connected client to a group; unknown connections are ignored."""
        with self._lock:
            conn = self._clients.get(connection_id)
            if conn is not None:
                self._groups.setdefault(group_name, {})[connection_id] = conn

    def remove_from_group(self, group_name: str, connection_id: str) -> None:
        with self._lock:
            group = self._groups.get(group_name)
            if group is not None:
                group.pop(connection_id, None)


@dataclass(frozen=True)
class AllClientProxy:
    """Sends to every connected client."""

    lifetime_manager: HubLifetimeManager

    def send(self, target: str, *args: Any) -> None:
        self.lifetime_manager.invoke_all(target, list(args))


@dataclass(frozen=True)
class SingleClientProxy:
    """Sends to one client."""

    connection_id: str
    lifetime_manager: HubLifetimeManager

    def send(self, target: str, *args: Any) -> None:
        self.lifetime_manager.invoke_client(self.connection_id, target, list(args))


@dataclass(frozen=True)
class GroupClientProxy:
    """Sends to all clients of a group."""

    group_name: str
    lifetime_manager: HubLifetimeManager

    def send(self, target: str, *args: Any) -> None:
        self.lifetime_manager.invoke_group(self.group_name, target, list(args))


@dataclass(frozen=True)
class GroupManager:
    """Adds clients to and removes them from named groups."""

    lifetime_manager: HubLifetimeManager

    def add_to_group(self, group_name: str, connection_id: str) -> None:
        self.lifetime_manager.add_to_group(group_name, connection_id)

    def remove_from_group(self, group_name: str, connection_id: str) -> None:
        self.lifetime_manager.remove_from_group(group_name, connection_id)


@dataclass
class HubClients:
    """Proxies for all clients, single clients and groups.

    caller_id names the calling connection, if there is one.
    """

    lifetime_manager: HubLifetimeManager
    caller_id: str | None = None
    _all: AllClientProxy = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._all = AllClientProxy(self.lifetime_manager)

    def all(self) -> AllClientProxy:
        return self._all

    def caller(self) -> SingleClientProxy:
        """Proxy to the calling client; there is none outside of an invocation."""
        if self.caller_id is None:
            raise LookupError("no calling client outside of an invocation")
        return SingleClientProxy(self.caller_id, self.lifetime_manager)

    def client(self, connection_id: str) -> SingleClientProxy:
        return SingleClientProxy(connection_id, self.lifetime_manager)

    def group(self, group_name: str) -> GroupClientProxy:
        return GroupClientProxy(group_name, self.lifetime_manager)


@dataclass(frozen=True)
class CallerHubClients:
    """HubClients seen from within an invocation of one connection."""

    hub_clients: HubClients
    connection_id: str

    def all(self) -> AllClientProxy:
        return self.hub_clients.all()

    def caller(self) -> SingleClientProxy:
        return self.hub_clients.client(self.connection_id)

    def client(self, connection_id: str) -> SingleClientProxy:
        return self.hub_clients.client(connection_id)

    def group(self, group_name: str) -> GroupClientProxy:
        return self.hub_clients.group(group_name)