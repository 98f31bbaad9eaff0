"""Bookkeeping for invocations that wait for a completion from the other party."""

from __future__ import annotations

import threading
from typing import Any, Iterable

from hubwire.invokeresult import Channel, ChannelClosed
from hubwire.messages import CompletionMessage


class HubChanTimeoutError(TimeoutError):
    """The receiver of a result did not take it within the receive timeout."""


class InvokeClient:
    """Tracks pending invocations and routes their completions."""

    def __init__(self, protocol: Any, chan_receive_timeout: float = 5.0) -> None:
        self._lock = threading.Lock()
        self._result_chans: dict[str, tuple[Channel[Any], Channel[BaseException | None]]] = {}
        self._protocol = protocol
        self._chan_receive_timeout = chan_receive_timeout

    def new_invocation(
        self, invocation_id: str
    ) -> tuple[Channel[Any], Channel[BaseException | None]]:
        """Register an invocation and return its result and error channels."""
        chans: tuple[Channel[Any], Channel[BaseException | None]] = (
            Channel(capacity=1),
            Channel(capacity=1),
        )
        with self._lock:
            self._result_chans[invocation_id] = chans
        return chans

    def delete_invocation(self, invocation_id: str) -> None:
        """Forget an invocation and close its channels."""
        with self._lock:
            chans = self._result_chans.pop(invocation_id, None)
        if chans is not None:
            for chan in chans:
                chan.close()

    def cancel_all_invokes(self) -> None:
        """End every pending invocation with a "message loop ended" error."""
        with self._lock:
            pending = list(self._result_chans.values())
            self._result_chans = {}
        for result_chan, err_chan in pending:
            result_chan.close()
            threading.Thread(target=self._fail, args=(err_chan,), daemon=True).start()

    @staticmethod
    def _fail(err_chan: Channel[BaseException | None]) -> None:
        try:
            err_chan.send(RuntimeError("message loop ended"))
        except ChannelClosed:
            return
        finally:
            err_chan.close()

    def handles_invocation_id(self, invocation_id: str) -> bool:
        with self._lock:
            return invocation_id in self._result_chans

    def receive_completion_item(self, completion: CompletionMessage) -> None:
        """Deliver a completion to its invocation, then forget the invocation."""
        try:
            with self._lock:
                chans = self._result_chans.get(completion.invocation_id)
            if chans is None:
                raise ValueError(f'unknown completion id "{completion.invocation_id}"')
            result_chan, err_chan = chans
            if completion.error:
                self._deliver([(err_chan, RuntimeError(completion.error))], "error")
                return
            if completion.result is not None:
                result = self._protocol.unmarshal_argument(completion.result)
                self._deliver([(result_chan, result), (err_chan, None)], "value")
        finally:
            self.delete_invocation(completion.invocation_id)

    def _deliver(self, sends: Iterable[tuple[Channel[Any], Any]], what: str) -> None:
        delivered = threading.Event()

        def run() -> None:
            try:
                for chan, item in sends:
                    chan.send(item)
            except ChannelClosed:
                return
            delivered.set()

        threading.Thread(target=run, daemon=True).start()
        if not delivered.wait(self._chan_receive_timeout):
            raise HubChanTimeoutError(
                f"timeout ({self._chan_receive_timeout}s) waiting for hub to receive client sent {what}"
            )