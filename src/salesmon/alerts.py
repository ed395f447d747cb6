"""Alert sink implementations for relaying revenue and sale notifications."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import requests

from salesmon.revenue_schema import NotificationMessage

if TYPE_CHECKING:
    from salesmon.config import Settings

logger = logging.getLogger(__name__)

EMBED_COLOR = 3447003
FOOTER_TEXT = "Roblox Group Sales Monitor"


class AlertSink(ABC):
    """Abstract base class for alert notifications."""

    @abstractmethod
    def send(self, message: NotificationMessage) -> None:
        """Deliver a notification.

        Implementations must not raise: delivery is best effort and the
        caller never retries.

        Args:
            message: The notification to deliver

        """
        ...


class StdoutSink(AlertSink):
    """Simple alert sink that prints messages to standard output."""

    def send(self, message: NotificationMessage) -> None:
        """Print the message to standard output.

        Args:
            message: The message to print

        """
        details = " | ".join(f"{label}: {value}" for label, value in message.fields)
        line = f"{message.title} {message.description} | {details}"
        try:
            print(line)  # noqa: T201 - Intentional print for stdout sink
        except (OSError, ValueError) as e:
            logger.error("Failed to print notification: %s", e)  # noqa: TRY400


class DiscordSink(AlertSink):
    """Alert sink that posts rich embeds to a Discord webhook."""

    TIMEOUT = 10  # seconds

    def __init__(self, webhook_url: str) -> None:
        """Initialize the Discord alert sink.

        Args:
            webhook_url: The Discord webhook URL to post alerts to

        Raises:
            RuntimeError: If webhook_url is empty

        """
        if not webhook_url:
            msg = (
                "Discord webhook URL not provided. "
                "Set DISCORD_WEBHOOK_URL environment variable."
            )
            raise RuntimeError(msg)
        self.webhook_url = webhook_url

    @staticmethod
    def format_embed(message: NotificationMessage) -> dict[str, Any]:
        """Format a notification as a Discord embed dict.

        Args:
            message: Notification to render

        Returns:
            A dict suitable for the "embeds" array of a webhook payload

        """
        return {
            "title": message.title,
            "description": message.description,
            "color": EMBED_COLOR,
            "fields": [
                {"name": label, "value": value, "inline": True}
                for label, value in message.fields
            ],
            "footer": {"text": FOOTER_TEXT},
            "timestamp": message.emitted_at.isoformat(),
        }

    def send(self, message: NotificationMessage) -> None:
        """Post the notification to the Discord webhook.

        Failures are logged and swallowed.

        Args:
            message: The notification to send to Discord

        """
        try:
            response = requests.post(
                self.webhook_url,
                json={"embeds": [self.format_embed(message)]},
                timeout=self.TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Failed to send Discord notification: %s", e)  # noqa: TRY400
            return
        logger.info("Notified Discord: %s", message.title)


def get_alert_sink(settings: "Settings") -> AlertSink:
    """Get the appropriate alert sink for the configuration.

    Returns:
        DiscordSink if a webhook URL is set, StdoutSink otherwise

    """
    try:
        return DiscordSink(settings.webhook_url or "")
    except RuntimeError:
        logger.warning("Discord webhook not configured, printing alerts to stdout")
        return StdoutSink()
