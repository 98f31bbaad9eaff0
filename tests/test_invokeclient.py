import pytest

from hubwire.invokeclient import HubChanTimeoutError, InvokeClient
from hubwire.invokeresult import ChannelClosed
from hubwire.jsonprotocol import JsonHubProtocol, RawJson
from hubwire.messages import CompletionMessage


@pytest.fixture
def client():
    return InvokeClient(JsonHubProtocol(), chan_receive_timeout=0.2)


def test_new_invocation_is_handled(client):
    client.new_invocation("1")
    assert client.handles_invocation_id("1")
    assert not client.handles_invocation_id("2")


def test_delete_invocation_closes_channels(client):
    result_chan, err_chan = client.new_invocation("1")
    client.delete_invocation("1")
    assert not client.handles_invocation_id("1")
    with pytest.raises(ChannelClosed):
        result_chan.receive(timeout=1)
    with pytest.raises(ChannelClosed):
        err_chan.receive(timeout=1)


def test_completion_with_result(client):
    result_chan, err_chan = client.new_invocation("1")
    client.receive_completion_item(CompletionMessage(invocation_id="1", result=RawJson(b'"A1"')))
    assert result_chan.receive(timeout=1) == "A1"
    assert err_chan.receive(timeout=1) is None
    assert not client.handles_invocation_id("1")


def test_completion_with_error(client):
    result_chan, err_chan = client.new_invocation("9")
    client.receive_completion_item(CompletionMessage(invocation_id="9", error="Failed"))
    error = err_chan.receive(timeout=1)
    assert str(error) == "Failed"
    with pytest.raises(ChannelClosed):
        result_chan.receive(timeout=1)


def test_completion_without_result_closes_channels(client):
    result_chan, err_chan = client.new_invocation("8")
    client.receive_completion_item(CompletionMessage(invocation_id="8"))
    with pytest.raises(ChannelClosed):
        result_chan.receive(timeout=1)
    with pytest.raises(ChannelClosed):
        err_chan.receive(timeout=1)


def test_unknown_completion_id(client):
    with pytest.raises(ValueError, match="unknown completion id"):
        client.receive_completion_item(CompletionMessage(invocation_id="nope"))


def test_timeout_when_receiver_does_not_take_error(client):
    _, err_chan = client.new_invocation("1")
    err_chan.send(RuntimeError("blocking"))
    with pytest.raises(HubChanTimeoutError):
        client.receive_completion_item(CompletionMessage(invocation_id="1", error="Failed"))
    assert not client.handles_invocation_id("1")


def test_cancel_all_invokes(client):
    result_a, err_a = client.new_invocation("a")
    result_b, err_b = client.new_invocation("b")
    client.cancel_all_invokes()
    assert not client.handles_invocation_id("a")
    assert not client.handles_invocation_id("b")
    for result_chan, err_chan in ((result_a, err_a), (result_b, err_b)):
        with pytest.raises(ChannelClosed):
            result_chan.receive(timeout=1)
        assert str(err_chan.receive(timeout=1)) == "message loop ended"