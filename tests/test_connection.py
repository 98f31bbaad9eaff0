import threading

import pytest

from hubwire.connection import (
    Connection,
    ConnectionBase,
    Context,
    ContextCancelled,
    read_write_with_context,
)


class Loopback(ConnectionBase):
    def __init__(self, context=None, connection_id=""):
        super().__init__(context, connection_id)
        self.buffer = bytearray()

    def read(self, size):
        data = bytes(self.buffer[:size])
        del self.buffer[:size]
        return data

    def write(self, data):
        self.buffer.extend(data)
        return len(data)


def test_cancel_sets_error():
    ctx = Context()
    assert ctx.done is False
    ctx.cancel()
    assert ctx.done is True
    assert isinstance(ctx.err, ContextCancelled)


def test_cancel_keeps_first_error():
    ctx = Context()
    first = RuntimeError("first")
    ctx.cancel(first)
    ctx.cancel(RuntimeError("second"))
    assert ctx.err is first


def test_child_follows_parent():
    parent = Context()
    child = parent.child()
    error = RuntimeError("stop")
    parent.cancel(error)
    assert child.done is True
    assert child.err is error


def test_child_does_not_cancel_parent():
    parent = Context()
    child = parent.child()
    child.cancel()
    assert child.done is True
    assert parent.done is False


def test_child_of_cancelled_parent_is_cancelled():
    parent = Context()
    parent.cancel()
    assert parent.child().done is True


def test_on_done_runs_once():
    ctx = Context()
    calls = []
    ctx.on_done(lambda: calls.append(1))
    ctx.cancel()
    ctx.cancel()
    assert calls == [1]


def test_on_done_after_cancel_runs_immediately():
    ctx = Context()
    ctx.cancel()
    calls = []
    ctx.on_done(lambda: calls.append(1))
    assert calls == [1]


def test_on_done_can_be_removed():
    ctx = Context()
    calls = []
    remove = ctx.on_done(lambda: calls.append(1))
    remove()
    ctx.cancel()
    assert calls == []


def test_wait_times_out():
    assert Context().wait(0.01) is False
    ctx = Context()
    ctx.cancel()
    assert ctx.wait(0.01) is True


def test_connection_is_abstract():
    with pytest.raises(TypeError):
        Connection()
    with pytest.raises(TypeError):
        ConnectionBase()


def test_connection_base_holds_id_and_context():
    ctx = Context()
    conn = Loopback(ctx, "X")
    assert conn.connection_id == "X"
    assert conn.context is ctx
    conn.connection_id = "Y"
    assert conn.connection_id == "Y"
    conn.write(b"abc")
    assert conn.read(2) == b"ab"


def test_read_write_returns_result():
    assert read_write_with_context(Context(), lambda: 5, lambda: None) == 5


def test_read_write_passes_error():
    def fail():
        raise OSError("fail")

    with pytest.raises(OSError, match="fail"):
        read_write_with_context(Context(), fail, lambda: None)


def test_read_write_on_cancelled_context_does_not_run():
    ctx = Context()
    ctx.cancel()
    calls = []
    with pytest.raises(ContextCancelled):
        read_write_with_context(ctx, lambda: calls.append(1), lambda: None)
    assert calls == []


def test_read_write_cancelled_while_blocked_unblocks():
    ctx = Context()
    release = threading.Event()

    def blocking():
        release.wait(5)
        return 0

    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()
    with pytest.raises(ContextCancelled):
        read_write_with_context(ctx, blocking, release.set)
    assert release.is_set()