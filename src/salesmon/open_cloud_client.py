"""REST client for the Roblox Open Cloud earnings API (API-key authenticated)."""

import logging
import os
from typing import Any

from salesmon.normalizer import to_snapshot
from salesmon.revenue_schema import RevenueSnapshot
from salesmon.sources import RevenueSource

logger = logging.getLogger(__name__)


class OpenCloudClient(RevenueSource):
    """Client for developer-exchange earnings via Open Cloud."""

    DEFAULT_BASE_URL = "https://apis.roblox.com"
    CREDENTIAL_NAME = "ROBLOX_API_KEY"
    METHOD = "Open Cloud API"

    def __init__(self, api_key: str, universe_id: str) -> None:
        """Initialize the Open Cloud client.

        Args:
            api_key: Open Cloud API key
            universe_id: Universe (experience) the key is scoped to

        """
        super().__init__()
        self.api_key = api_key
        self.universe_id = universe_id

    def _get_base_url(self) -> str:
        """Return the API host, honouring ROBLOX_APIS_BASE_URL if set."""
        return os.getenv("ROBLOX_APIS_BASE_URL", self.DEFAULT_BASE_URL)

    def _get_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "x-api-key": self.api_key}

    def get_earnings(self) -> dict[str, Any]:
        """Get the raw earnings payload.

        Returns:
            Raw earnings JSON data as dictionary, unnormalized

        """
        payload = self._make_request(
            f"{self._get_base_url()}/developer-exchange/v1/earnings",
        )
        logger.info("Retrieved earnings via Open Cloud API")
        return payload

    def fetch(self) -> RevenueSnapshot:
        """Fetch the earnings payload and normalize it."""
        return to_snapshot(self.get_earnings(), "OpenCloud")
