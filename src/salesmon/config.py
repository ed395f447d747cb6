"""Environment-backed configuration for the sales monitor."""

import os
from dataclasses import dataclass

DEFAULT_PORT = 3000
DEFAULT_POLL_INTERVAL = 60  # seconds


def _blank_to_none(value: str | None) -> str | None:
    """Treat empty or whitespace-only variables as unset."""
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Process configuration.

    Missing values never fail startup; they disable the feature that needs
    them (polling variant, Discord delivery) and are reported at boot.
    """

    group_id: str | None = None
    cookie: str | None = None
    api_key: str | None = None
    universe_id: str | None = None
    webhook_url: str | None = None
    enable_polling: bool = False
    port: int = DEFAULT_PORT
    poll_interval: int = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Settings populated from the environment

        Raises:
            ValueError: If PORT or POLL_INTERVAL_SECONDS is not an integer

        """
        env = os.environ if environ is None else environ
        return cls(
            group_id=_blank_to_none(env.get("ROBLOX_GROUP_ID")),
            cookie=_blank_to_none(env.get("ROBLOX_COOKIE")),
            api_key=_blank_to_none(env.get("ROBLOX_API_KEY")),
            universe_id=_blank_to_none(env.get("ROBLOX_UNIVERSE_ID")),
            webhook_url=_blank_to_none(env.get("DISCORD_WEBHOOK_URL")),
            enable_polling=env.get("ENABLE_POLLING", "").lower() == "true",
            port=int(env.get("PORT") or DEFAULT_PORT),
            poll_interval=int(
                env.get("POLL_INTERVAL_SECONDS") or DEFAULT_POLL_INTERVAL,
            ),
        )
