# hubwire

`hubwire` holds the building blocks of the SignalR hub protocol, in which two parties call procedures on each other over a byte stream. A call can return zero or more results or an error. The package covers the message types, the JSON protocol, hub connections over any readable and writable transport, bookkeeping for pending invocations, and the server-side pieces for tracking clients, groups and hubs.

## Installation

```
pip install hubwire
```

To run the tests:

```
pip install "hubwire[test]"
pytest
```

## Modules

- `hubwire.messages` defines the message dataclasses:
  - `InvocationMessage`, `StreamItemMessage`, `CompletionMessage`, `CancelInvocationMessage`, `CloseMessage` and `HubMessage` (pings);
  - `HandshakeRequest` and `HandshakeResponse`;
  - the `TransferMode` enum.
  
  `message_to_dict` gives a message's wire form. `fmt_msg` renders a message for logging.
- `hubwire.jsonprotocol` provides `JsonHubProtocol`. It writes messages as JSON terminated by the record separator `0x1e`, and it parses them back. Frames that are not yet complete stay in a `bytearray` until the rest arrives. Received arguments, items and results are kept as `RawJson` until `unmarshal_argument` decodes them into a target type such as `int`, `list[int]`, `dict[int, str]` or a dataclass. Bad input raises `JsonError`. `read_json_frames` and `parse_json_frames` split raw bytes into frames.
- `hubwire.connection` provides the following:
  - `Context`, a cancellation signal that passes from parent to child contexts;
  - the abstract `Connection` (`read`, `write`, `context`, `connection_id`) and `ConnectionBase`;
  - `read_write_with_context`, which runs a blocking read or write and gives up when the context is cancelled.
- `hubwire.invokeresult` provides `Channel`, a closable and optionally bounded FIFO shared between threads, together with `InvokeResult` and `new_invoke_result_chan`. The last one merges a value channel and an error channel into one channel of results.
- `hubwire.invokeclient` provides `InvokeClient`. It tracks pending invocations by id and routes `CompletionMessage`s to them. If a receiver does not take a delivered result within the receive timeout, it raises `HubChanTimeoutError`.
- `hubwire.hubconnection` provides `HubConnection`, which joins a `Connection` and a protocol:
  - it sends invocations, stream invocations, stream items, completions, pings and close messages;
  - `receive()` returns a `Channel` of `ReceiveResult`s;
  - `abort()` cancels the connection's context.
- `hubwire.lifetime` provides `HubLifetimeManager`, which tracks connected clients and named groups and sends invocations to them. It also provides the proxies `AllClientProxy`, `SingleClientProxy` and `GroupClientProxy`, plus `GroupManager`, `HubClients` and `CallerHubClients`.
- `hubwire.hub` provides `Hub`, a base class for hubs, and `HubContext`, which holds what a hub sees of its connection:
  - `clients` and `groups`;
  - per-connection `items`;
  - `connection_id` and `context`;
  - `abort()` and `logger()`.
- `hubwire.options` provides options that fill in a `ClientOptions`: `with_connection`, `with_connector`, `with_receiver`, `with_backoff` and `transfer_format` (`"Text"` or `"Binary"`). `apply_options` applies them and raises `OptionError` on conflicts, on an invalid format, or when neither a connection nor a connector was given.

## Examples

Writing and parsing a message:

```python
import io

from hubwire.jsonprotocol import JsonHubProtocol
from hubwire.messages import InvocationMessage

protocol = JsonHubProtocol()
buf = io.BytesIO()
protocol.write_message(InvocationMessage(target="Add", invocation_id="1", arguments=[1, 2]), buf)
# buf now holds b'{"type":1,"target":"Add","invocationId":"1","arguments":[1,2]}\x1e'
buf.seek(0)
[message] = protocol.parse_messages(buf, bytearray())
first = protocol.unmarshal_argument(message.arguments[0], int)  # 1
```

Sending to groups of clients:

```python
from hubwire.lifetime import HubLifetimeManager, HubClients

manager = HubLifetimeManager()
manager.on_connected(hub_connection)  # any object with connection_id and send_invocation
manager.add_to_group("room", hub_connection.connection_id)

clients = HubClients(manager)
clients.group("room").send("receive", "hello")
```

Collecting client options:

```python
from hubwire.options import ClientOptions, apply_options, with_connection, transfer_format

options = apply_options(ClientOptions(), with_connection(connection), transfer_format("Binary"))
options.format  # "messagepack"
```

## What the package does not do

The package has no client object that performs the handshake, runs the message loop, sends keep-alive pings or reconnects. `ClientOptions` only collects settings. Nothing dispatches incoming invocations to the methods of a `Hub`. There is no HTTP, WebSocket or Server-Sent Events transport, and no server that accepts connections. Only the JSON protocol is implemented: the `"Binary"` transfer format can be recorded in `ClientOptions`, but no MessagePack protocol exists to use it.