"""Tests for the revenue poller."""

import asyncio
import threading
from unittest import mock

import pytest

from salesmon.alerts import AlertSink
from salesmon.normalizer import to_snapshot
from salesmon.poller import Poller
from salesmon.revenue_schema import MonitorState, RevenueSnapshot
from salesmon.sources import (
    MalformedResponseError,
    RevenueSource,
    UpstreamAuthError,
    UpstreamUnavailableError,
)


def _snapshot(total: int) -> RevenueSnapshot:
    return RevenueSnapshot(pending=0, available=total, converted=0)


@pytest.fixture
def source():
    """A revenue source whose fetch is a mock."""
    fake = mock.MagicMock(spec=RevenueSource)
    fake.METHOD = "test"
    return fake


@pytest.fixture
def sink():
    """An alert sink whose send is a mock."""
    return mock.MagicMock(spec=AlertSink)


def test_first_cycle_sets_baseline_silently(source, sink):
    """Test that the first successful cycle never notifies."""
    source.fetch.return_value = _snapshot(500)
    poller = Poller(source, sink)

    assert poller.run_once() is None

    assert poller.state.initialized is True
    assert poller.state.last_known_total == 500  # noqa: PLR2004
    sink.send.assert_not_called()


def test_increase_is_delivered(source, sink):
    """Test that an increase reaches the sink exactly once."""
    source.fetch.side_effect = [_snapshot(500), _snapshot(800)]
    poller = Poller(source, sink)

    poller.run_once()
    message = poller.run_once()

    assert message is not None
    sink.send.assert_called_once_with(message)
    assert dict(message.fields)["New Revenue"] == "300 Robux"


@pytest.mark.parametrize(
    "error",
    [
        UpstreamAuthError(403, "ROBLOX_COOKIE"),
        UpstreamUnavailableError("HTTP 503"),
        MalformedResponseError("no revenueByType"),
    ],
)
def test_fetch_failure_leaves_state_unchanged(source, sink, error):
    """Test that a failed fetch is a no-op for state and the sink."""
    state = MonitorState(last_known_total=1000, initialized=True)
    before = MonitorState(**vars(state))
    source.fetch.side_effect = error
    poller = Poller(source, sink, state=state)

    assert poller.run_once() is None

    assert state == before
    sink.send.assert_not_called()
    assert poller.in_flight is False


def test_auth_failure_is_logged_distinctly(source, sink, caplog):
    """Test that auth failures name the credential to rotate."""
    source.fetch.side_effect = UpstreamAuthError(401, "ROBLOX_API_KEY")
    poller = Poller(source, sink)

    poller.run_once()

    assert "Authentication failed - check your ROBLOX_API_KEY" in caplog.text


def test_generic_failure_is_logged(source, sink, caplog):
    """Test that other fetch errors are logged as fetch errors."""
    source.fetch.side_effect = UpstreamUnavailableError("HTTP 502")
    poller = Poller(source, sink)

    poller.run_once()

    assert "Error fetching group revenue: HTTP 502" in caplog.text
    assert "Authentication failed" not in caplog.text


def test_overlapping_cycles_do_not_double_count(source, sink):
    """Test that a cycle fired while another is in flight is skipped."""
    release = threading.Event()

    def slow_fetch():
        release.wait(timeout=5)
        return _snapshot(250)

    source.fetch.side_effect = slow_fetch
    state = MonitorState(last_known_total=100, initialized=True)
    poller = Poller(source, sink, state=state)

    async def overlap():
        first = asyncio.create_task(poller.run_cycle())
        await asyncio.sleep(0)  # let the first cycle start its fetch
        assert poller.in_flight is True
        second = await poller.run_cycle()
        release.set()
        result = await first
        await poller.drain()
        return result, second

    first, second = asyncio.run(overlap())

    assert second is None
    assert first is not None
    assert source.fetch.call_count == 1
    sink.send.assert_called_once_with(first)
    assert dict(first.fields)["New Revenue"] == "150 Robux"
    assert state.last_known_total == 250  # noqa: PLR2004


def test_delivery_is_not_awaited(source, sink):
    """Test that run_cycle returns before a slow sink finishes."""
    delivered = threading.Event()
    release = threading.Event()

    def slow_send(_message):
        release.wait(timeout=5)
        delivered.set()

    sink.send.side_effect = slow_send
    source.fetch.return_value = _snapshot(900)
    poller = Poller(source, sink, state=MonitorState(last_known_total=100, initialized=True))

    async def cycle():
        message = await poller.run_cycle()
        finished_first = not delivered.is_set()
        release.set()
        await poller.drain()
        return message, finished_first

    message, finished_first = asyncio.run(cycle())

    assert message is not None
    assert finished_first is True
    assert delivered.is_set()


def test_run_polls_immediately_and_on_each_tick(source, sink):
    """Test that run() fetches at startup and then every interval."""
    source.fetch.return_value = _snapshot(10)
    poller = Poller(source, sink, interval=0.01)

    async def run_briefly():
        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run_briefly())

    assert source.fetch.call_count >= 2  # noqa: PLR2004
    sink.send.assert_not_called()


def test_unexpected_error_does_not_stop_polling(source, sink, caplog):
    """Test that an unexpected exception from a source is logged and absorbed."""
    source.fetch.side_effect = [RuntimeError("boom"), _snapshot(70)]
    poller = Poller(source, sink)

    assert poller.run_once() is None
    assert "Unexpected error fetching group revenue" in caplog.text
    assert poller.state.initialized is False

    poller.run_once()
    assert poller.state.last_known_total == 70  # noqa: PLR2004


def test_non_finite_upstream_amount_is_malformed(sink, caplog):
    """Test that an infinite balance upstream is a malformed response, not a crash."""
    source = mock.MagicMock(spec=RevenueSource)
    source.METHOD = "test"
    source.fetch.side_effect = lambda: to_snapshot(
        {"revenueByType": {"Pending": float("inf")}},
        "GroupRevenue",
    )
    poller = Poller(source, sink)

    assert poller.run_once() is None

    assert "Error fetching group revenue" in caplog.text
    assert "Unexpected error" not in caplog.text
    assert poller.state.initialized is False
