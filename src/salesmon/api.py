"""HTTP surface: sale ingestion from the game server and a health check.

Run through the CLI (``salesmon``) or directly:
    uvicorn salesmon.api:create_app --factory --port 3000
"""

import asyncio
import logging
import time
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import (
    BaseModel,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

from salesmon.alerts import AlertSink, get_alert_sink
from salesmon.config import Settings
from salesmon.health import health_report
from salesmon.poller import Poller
from salesmon.revenue_schema import (
    MonitorState,
    NotificationMessage,
    SaleEvent,
    format_robux,
    format_timestamp,
)
from salesmon.sources import RevenueSource, select_source

logger = logging.getLogger(__name__)

REQUIRED_SALE_FIELDS = ("playerName", "playerId", "productName", "price")
SALE_TITLE = "New Sale."


class SaleRequest(BaseModel):
    """Body of POST /api/sales, in the game server's camelCase.

    Strict types: a price of `true` or `"100"` is rejected, not coerced.
    """

    playerName: StrictStr
    playerId: StrictInt | StrictStr
    productName: StrictStr
    price: StrictInt | StrictFloat


class AppState:
    """Holds the sink, the monitor state and the optional poller."""

    def __init__(self, settings: Settings, sink: AlertSink) -> None:
        self.settings = settings
        self.sink = sink
        self.monitor = MonitorState()
        self.poller: Poller | None = None
        self.poll_task: asyncio.Task | None = None
        self.start_time: float = time.monotonic()


def format_sale_message(event: SaleEvent) -> NotificationMessage:
    """Build the alert for a pushed sale event."""
    return NotificationMessage(
        title=SALE_TITLE,
        description=f"{event.player_name} purchased an item",
        fields=(
            ("Player", event.player_name),
            ("Player ID", str(event.player_id)),
            ("Product", event.product_name),
            ("Price", f"{format_robux(event.price)} Robux"),
            ("Timestamp", format_timestamp(event.received_at)),
        ),
        emitted_at=event.received_at,
    )


def missing_sale_fields(body: dict[str, Any]) -> list[str]:
    """List required fields that are absent, null or blank strings."""
    missing = []
    for name in REQUIRED_SALE_FIELDS:
        value = body.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def _error(detail: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": detail})


def create_app(
    settings: Settings | None = None,
    sink: AlertSink | None = None,
    source_factory: Callable[[Settings], RevenueSource | None] = select_source,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Process configuration, read from the environment if omitted
        sink: Alert sink shared by both notification paths
        source_factory: Picks the revenue source when polling is enabled

    Returns:
        Configured FastAPI app

    """
    settings = settings or Settings.from_env()
    state = AppState(settings, sink or get_alert_sink(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ANN202, ARG001
        """Start the poller if configured, cancel it on shutdown."""
        state.start_time = time.monotonic()
        if settings.enable_polling:
            source = source_factory(settings)
            if source is not None:
                state.poller = Poller(
                    source,
                    state.sink,
                    state=state.monitor,
                    interval=settings.poll_interval,
                )
                state.poll_task = asyncio.create_task(state.poller.run())
        else:
            logger.info("Polling disabled (set ENABLE_POLLING=true to enable)")

        yield

        if state.poll_task is not None:
            state.poll_task.cancel()
            try:
                await state.poll_task
            except asyncio.CancelledError:
                logger.info("Poller stopped")

    app = FastAPI(
        title="Roblox Group Sales Monitor",
        description="Relays group revenue increases and game sales to Discord.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.runtime = state

    @app.post("/api/sales")
    async def record_sale(request: Request, background_tasks: BackgroundTasks):
        """Accept a sale pushed by the game and relay it to the sink."""
        try:
            body = await request.json()
        except ValueError:
            return _error("Request body must be JSON")
        if not isinstance(body, dict):
            return _error("Request body must be a JSON object")

        missing = missing_sale_fields(body)
        if missing:
            logger.warning("Rejected sale, missing fields: %s", ", ".join(missing))
            return _error("Missing required fields")

        try:
            sale = SaleRequest.model_validate(body)
            event = SaleEvent(
                player_name=sale.playerName,
                player_id=sale.playerId,
                product_name=sale.productName,
                price=sale.price,
            )
        except (ValidationError, ValueError) as e:
            logger.warning("Rejected sale, invalid payload: %s", e)
            return _error("Invalid sale payload")

        # Runs after the response is sent; the caller never waits on Discord
        background_tasks.add_task(state.sink.send, format_sale_message(event))
        logger.info("Sale logged: %s bought %s", event.player_name, event.product_name)
        return {"success": True, "message": "Sale logged"}

    @app.get("/health")
    async def health():
        """Liveness, uptime and the time of the last successful poll."""
        return health_report(state.monitor, state.start_time, settings.group_id)

    return app
