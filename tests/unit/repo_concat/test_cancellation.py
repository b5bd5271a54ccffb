import signal

import pytest

from repo_concat.cancellation import CancellationToken, SignalCancellation
from repo_concat.exceptions import AggregationCancelledError


@pytest.mark.unit
def test_token_starts_clear() -> None:
    token = CancellationToken()

    assert token.cancelled is False
    token.raise_if_cancelled("src")


@pytest.mark.unit
def test_cancelled_token_raises_with_path() -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AggregationCancelledError) as exc_info:
        token.raise_if_cancelled("src/a.ts")

    assert exc_info.value.path == "src/a.ts"
    assert str(exc_info.value) == "Download cancelled at src/a.ts"


@pytest.mark.unit
def test_sigint_sets_token_and_restores_previous_handler() -> None:
    before = signal.getsignal(signal.SIGINT)

    with SignalCancellation() as token:
        signal.raise_signal(signal.SIGINT)

        assert token.cancelled is True
        assert token.signum == signal.SIGINT
        assert signal.getsignal(signal.SIGINT) == before

    assert signal.getsignal(signal.SIGINT) == before


@pytest.mark.unit
def test_handlers_restored_on_exit_without_signal() -> None:
    before = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}

    with SignalCancellation() as token:
        assert signal.getsignal(signal.SIGTERM) == token.handle_signal

    assert {sig: signal.getsignal(sig) for sig in before} == before
    assert token.cancelled is False
