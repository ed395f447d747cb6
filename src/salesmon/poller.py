"""Fixed-cadence revenue polling on the asyncio event loop."""

import asyncio
import logging

from salesmon.alerts import AlertSink
from salesmon.config import DEFAULT_POLL_INTERVAL
from salesmon.detector import observe
from salesmon.revenue_schema import MonitorState, NotificationMessage
from salesmon.sources import FetchError, RevenueSource, UpstreamAuthError

logger = logging.getLogger(__name__)


class Poller:
    """Drives a revenue source on a timer and feeds the delta detector.

    Cycles never overlap: a tick that fires while the previous cycle is still
    waiting on upstream is skipped. The blocking fetch runs in a worker
    thread, but the monitor state is only touched on the event loop.
    """

    def __init__(
        self,
        source: RevenueSource,
        sink: AlertSink,
        state: MonitorState | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.source = source
        self.sink = sink
        self.state = state if state is not None else MonitorState()
        self.interval = interval
        self._in_flight = False
        self._deliveries: set[asyncio.Future] = set()

    @property
    def in_flight(self) -> bool:
        """Whether a poll cycle is currently waiting on upstream."""
        return self._in_flight

    async def run_cycle(self) -> NotificationMessage | None:
        """Run one fetch/observe/notify cycle.

        Returns:
            The notification handed to the sink, or None if there was nothing
            to report, the fetch failed, or another cycle was in flight

        """
        if self._in_flight:
            logger.warning("Previous poll still in flight, skipping this tick")
            return None

        self._in_flight = True
        try:
            snapshot = await asyncio.to_thread(self.source.fetch)
        except UpstreamAuthError as e:
            logger.error(  # noqa: TRY400
                "Authentication failed - check your %s (HTTP %d)",
                e.credential,
                e.status_code,
            )
            return None
        except FetchError as e:
            logger.error("Error fetching group revenue: %s", e)  # noqa: TRY400
            return None
        except Exception:
            # The poller has to survive anything a source throws
            logger.exception("Unexpected error fetching group revenue")
            return None
        finally:
            self._in_flight = False

        message = observe(snapshot, self.state)
        if message is not None:
            self._dispatch(message)
        return message

    def _dispatch(self, message: NotificationMessage) -> None:
        """Hand a message to the sink without waiting for delivery."""
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.sink.send, message)
        self._deliveries.add(future)
        future.add_done_callback(self._deliveries.discard)

    async def drain(self) -> None:
        """Wait for every dispatched notification to finish delivering."""
        if self._deliveries:
            await asyncio.gather(*self._deliveries)

    async def run(self) -> None:
        """Poll now and then every ``interval`` seconds until cancelled."""
        logger.info(
            "Starting group sales monitoring every %ss via %s",
            self.interval,
            self.source.METHOD,
        )
        cycles: set[asyncio.Task] = set()
        try:
            while True:
                # Launched on schedule; run_cycle skips itself if one is pending
                task = asyncio.create_task(self.run_cycle())
                cycles.add(task)
                task.add_done_callback(cycles.discard)
                await asyncio.sleep(self.interval)
        finally:
            for task in cycles:
                task.cancel()

    def run_once(self) -> NotificationMessage | None:
        """Run a single cycle outside any event loop and wait for delivery."""

        async def _cycle() -> NotificationMessage | None:
            message = await self.run_cycle()
            await self.drain()
            return message

        return asyncio.run(_cycle())
