import pytest

from hubwire.connection import ConnectionBase, Context
from hubwire.options import (
    ClientOptions,
    OptionError,
    apply_options,
    transfer_format,
    with_backoff,
    with_connection,
    with_connector,
    with_receiver,
)


class NullConnection(ConnectionBase):
    def __init__(self):
        super().__init__(Context(), "")

    def read(self, size):
        return b""

    def write(self, data):
        return len(data)


def test_none_of_connection_and_connector_fails():
    with pytest.raises(OptionError):
        apply_options(ClientOptions())


def test_both_connection_and_connector_fail():
    conn = NullConnection()
    with pytest.raises(OptionError):
        apply_options(ClientOptions(), with_connection(conn), with_connector(lambda: conn))


def test_connector_then_connection_fails():
    conn = NullConnection()
    with pytest.raises(OptionError):
        apply_options(ClientOptions(), with_connector(lambda: conn), with_connection(conn))


def test_only_connection_succeeds():
    conn = NullConnection()
    options = apply_options(ClientOptions(), with_connection(conn))
    assert options.connection is conn
    assert options.connection_factory is None


def test_only_connector_succeeds():
    conn = NullConnection()
    options = apply_options(ClientOptions(), with_connector(lambda: conn))
    assert options.connection is None
    assert options.connection_factory() is conn


def test_backoff_with_connection_succeeds():
    conn = NullConnection()

    def factory():
        return "backoff"

    options = apply_options(ClientOptions(), with_connection(conn), with_backoff(factory))
    assert options.backoff_factory is factory


def test_none_options_are_skipped():
    conn = NullConnection()
    options = apply_options(ClientOptions(), None, with_connection(conn))
    assert options.connection is conn


def test_receiver_is_stored():
    receiver = object()
    options = apply_options(ClientOptions(), with_connection(NullConnection()), with_receiver(receiver))
    assert options.receiver is receiver


def test_default_format_is_json():
    options = apply_options(ClientOptions(), with_connection(NullConnection()))
    assert options.format == "json"


@pytest.mark.parametrize("name, expected", [("Text", "json"), ("Binary", "messagepack")])
def test_transfer_format(name, expected):
    options = apply_options(ClientOptions(), with_connection(NullConnection()), transfer_format(name))
    assert options.format == expected


def test_invalid_transfer_format():
    with pytest.raises(OptionError, match="invalid transferformat XML"):
        transfer_format("XML")(ClientOptions())


@pytest.mark.parametrize(
    "option",
    [
        with_connection(None),
        with_connector(lambda: None),
        with_receiver(None),
        with_backoff(lambda: None),
        transfer_format("Text"),
    ],
)
def test_options_are_client_only(option):
    with pytest.raises(OptionError, match="client only"):
        option(object())