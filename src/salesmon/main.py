"""Command-line entry point for the group sales monitor."""

import logging
import sys
from dataclasses import replace

import click
import uvicorn
from dotenv import load_dotenv

from salesmon.alerts import get_alert_sink
from salesmon.api import create_app
from salesmon.config import Settings
from salesmon.poller import Poller
from salesmon.sources import select_source

LOG_FORMAT = "[%(asctime)s] %(name)s %(levelname)s: %(message)s"

logger = logging.getLogger("salesmon")


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a single stream handler to the package logger."""
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(handler)


def _mark(value: str | None) -> str:
    return "✓" if value else "✗"


def log_banner(settings: Settings) -> None:
    """Report which features the current configuration enables."""
    logger.info("Roblox Group Sales Monitor")
    logger.info("Server: http://localhost:%d", settings.port)
    logger.info("Group ID: %s", settings.group_id or "Not configured")
    logger.info("Discord Webhook: %s", _mark(settings.webhook_url))
    logger.info("Revenue API Auth: %s", _mark(settings.cookie))
    logger.info("Open Cloud API: %s", _mark(settings.api_key))


@click.command()
@click.option(
    "--port",
    type=int,
    help="Port to listen on (default: PORT or 3000)",
)
@click.option(
    "--interval",
    type=int,
    help="Polling interval in seconds (default: POLL_INTERVAL_SECONDS or 60)",
)
@click.option(
    "--once",
    is_flag=True,
    help="Poll revenue once, print the baseline, and exit",
)
def cli(
    port: int | None = None,
    interval: int | None = None,
    once: bool = False,  # noqa: FBT001, FBT002
) -> None:
    """Relay Roblox group revenue increases and game sales to Discord.

    Serves POST /api/sales and GET /health, and polls group revenue when
    ENABLE_POLLING=true. Press Ctrl+C to exit.
    """
    load_dotenv()
    configure_logging()

    try:
        settings = Settings.from_env()
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    overrides = {}
    if port is not None:
        overrides["port"] = port
    if interval is not None:
        overrides["poll_interval"] = interval
    if overrides:
        settings = replace(settings, **overrides)

    if once:
        source = select_source(settings)
        if source is None:
            click.echo("No revenue source configured, nothing to poll.", err=True)
            sys.exit(1)
        poller = Poller(source, get_alert_sink(settings))
        poller.run_once()
        if not poller.state.initialized:
            click.echo("Revenue poll failed, see log for details.", err=True)
            sys.exit(1)
        click.echo(f"Baseline total: {poller.state.last_known_total} Robux")
        return

    log_banner(settings)
    try:
        app = create_app(settings)
        uvicorn.run(app, host="0.0.0.0", port=settings.port)  # noqa: S104
    except KeyboardInterrupt:
        click.echo("\nExiting salesmon...", err=True)


if __name__ == "__main__":
    cli()
