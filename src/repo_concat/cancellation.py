"""Cancellation of a running download.

The CLI routes SIGINT and SIGTERM to a token instead of letting them interrupt a
network call; the traversal checks the token before each remote request and
stops without writing any output. The first signal restores the previous
handler, so a second Ctrl-C interrupts the pending request immediately.
"""

from __future__ import annotations

import signal
from threading import Event
from typing import TYPE_CHECKING, Any

from repo_concat.exceptions import AggregationCancelledError

if TYPE_CHECKING:
    from types import FrameType, TracebackType

HANDLED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class CancellationToken:
    """Thread-safe flag telling the traversal to stop.

    Attributes:
        signum: Number of the signal that cancelled the run, if any.
        previous_handlers: Handlers to reinstate once a signal has been received.
    """

    def __init__(self) -> None:
        self._event = Event()
        self.previous_handlers: dict[int, Any] = {}
        self.signum: int | None = None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, path: str = "") -> None:
        """Raise AggregationCancelledError if the token has been set.

        Args:
            path: Repository path about to be requested, reported in the error.
        """
        if self._event.is_set():
            raise AggregationCancelledError(path=path)

    def handle_signal(self, signum: int, frame: FrameType | None) -> None:  # noqa: ARG002
        """Signal handler: record the signal, set the flag, restore the old handler."""
        self.signum = signum
        self.cancel()
        previous = self.previous_handlers.get(signum)
        if previous is not None:
            signal.signal(signum, previous)


class SignalCancellation:
    """Route SIGINT/SIGTERM to a CancellationToken for the duration of a `with` block.

    The handlers in place before entering are restored on exit.
    """

    def __init__(self, token: CancellationToken | None = None) -> None:
        self.token = token or CancellationToken()

    def __enter__(self) -> CancellationToken:
        previous = {sig: signal.getsignal(sig) for sig in HANDLED_SIGNALS}
        self.token.previous_handlers = dict(previous)
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, self.token.handle_signal)
        return self.token

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        for sig, handler in self.token.previous_handlers.items():
            if handler is not None:
                signal.signal(sig, handler)
