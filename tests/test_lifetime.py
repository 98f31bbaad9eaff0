import queue

import pytest

from hubwire.lifetime import (
    AllClientProxy,
    CallerHubClients,
    GroupManager,
    HubClients,
    HubLifetimeManager,
    SingleClientProxy,
)


class RecordingConnection:
    def __init__(self, connection_id, fail=False):
        self.connection_id = connection_id
        self.calls = queue.Queue()
        self.fail = fail

    def send_invocation(self, invocation_id, target, args):
        if self.fail:
            raise OSError("fail")
        self.calls.put((invocation_id, target, list(args)))


def received(conn, timeout=1.0):
    return conn.calls.get(timeout=timeout)


def assert_silent(conn):
    with pytest.raises(queue.Empty):
        conn.calls.get(timeout=0.1)


@pytest.fixture
def setup():
    manager = HubLifetimeManager()
    conns = [RecordingConnection(str(i)) for i in range(3)]
    for conn in conns:
        manager.on_connected(conn)
    return manager, conns


def test_invoke_all(setup):
    manager, conns = setup
    manager.invoke_all("clientFunc", [1])
    for conn in conns:
        assert received(conn) == ("", "clientFunc", [1])


def test_invoke_client_only_addressed(setup):
    manager, conns = setup
    manager.invoke_client("1", "clientFunc", [])
    assert received(conns[1]) == ("", "clientFunc", [])
    assert_silent(conns[0])
    assert_silent(conns[2])


def test_invoke_group(setup):
    manager, conns = setup
    manager.add_to_group("local", "1")
    manager.add_to_group("local", "2")
    manager.invoke_group("local", "clientFunc", [])
    assert received(conns[1])[1] == "clientFunc"
    assert received(conns[2])[1] == "clientFunc"
    assert_silent(conns[0])


def test_remove_from_group(setup):
    manager, conns = setup
    manager.add_to_group("local", "1")
    manager.add_to_group("local", "2")
    manager.remove_from_group("local", "2")
    manager.invoke_group("local", "clientFunc", [])
    assert received(conns[1])[1] == "clientFunc"
    assert_silent(conns[2])


def test_add_unknown_connection_is_ignored(setup):
    manager, conns = setup
    manager.add_to_group("local", "missing")
    manager.invoke_group("local", "clientFunc", [])
    for conn in conns:
        assert_silent(conn)


def test_disconnected_client_not_invoked(setup):
    manager, conns = setup
    manager.on_disconnected(conns[0])
    manager.invoke_all("clientFunc", [])
    assert received(conns[1])[1] == "clientFunc"
    assert_silent(conns[0])


def test_send_errors_do_not_stop_others(setup):
    manager, conns = setup
    manager.on_connected(RecordingConnection("bad", fail=True))
    manager.invoke_all("clientFunc", [])
    for conn in conns:
        assert received(conn)[1] == "clientFunc"


def test_proxies_send_arguments(setup):
    manager, conns = setup
    AllClientProxy(manager).send("receive", "a", 2)
    for conn in conns:
        assert received(conn) == ("", "receive", ["a", 2])
    SingleClientProxy("0", manager).send("receive", "b")
    assert received(conns[0]) == ("", "receive", ["b"])


def test_group_manager_delegates(setup):
    manager, conns = setup
    groups = GroupManager(manager)
    groups.add_to_group("group", "2")
    HubClients(manager).group("group").send("receive", "x")
    assert received(conns[2]) == ("", "receive", ["x"])
    groups.remove_from_group("group", "2")
    HubClients(manager).group("group").send("receive", "y")
    assert_silent(conns[2])


def test_caller_hub_clients(setup):
    manager, conns = setup
    caller_clients = CallerHubClients(HubClients(manager), "1")
    caller_clients.caller().send("receive", "me")
    assert received(conns[1]) == ("", "receive", ["me"])
    assert_silent(conns[0])
    caller_clients.all().send("receive")
    for conn in conns:
        assert received(conn)[1] == "receive"
    assert caller_clients.client("0").connection_id == "0"
    assert caller_clients.group("g").group_name == "g"