"""REST client for the Roblox groups revenue API (cookie-authenticated)."""

import logging
import os
from typing import Any

from salesmon.normalizer import to_snapshot
from salesmon.revenue_schema import RevenueSnapshot, format_robux
from salesmon.sources import RevenueSource

logger = logging.getLogger(__name__)


class GroupRevenueClient(RevenueSource):
    """Client for a group's revenue summary.

    Authenticates with a ``.ROBLOSECURITY`` session cookie, so it sees the
    same breakdown the group owner sees on the website.
    """

    DEFAULT_BASE_URL = "https://groups.roblox.com/v1"
    CREDENTIAL_NAME = "ROBLOX_COOKIE"
    METHOD = "Revenue API (authenticated)"
    USER_AGENT = "Mozilla/5.0"

    def __init__(self, group_id: str, cookie: str) -> None:
        """Initialize the groups API client.

        Args:
            group_id: Numeric group identifier, as a string
            cookie: Value of the .ROBLOSECURITY cookie

        """
        super().__init__()
        self.group_id = group_id
        self.cookie = cookie

    def _get_base_url(self) -> str:
        """Return the API host, honouring ROBLOX_GROUPS_BASE_URL if set."""
        return os.getenv("ROBLOX_GROUPS_BASE_URL", self.DEFAULT_BASE_URL)

    def _get_headers(self) -> dict[str, str]:
        """Get headers for API requests.

        Returns:
            Dict of headers carrying the session cookie

        """
        return {
            "Accept": "application/json",
            "Cookie": f".ROBLOSECURITY={self.cookie}",
            "User-Agent": self.USER_AGENT,
        }

    def get_revenue(self) -> dict[str, Any]:
        """Get the raw revenue summary for the group.

        Returns:
            Raw revenue JSON data as dictionary

        """
        url = f"{self._get_base_url()}/groups/{self.group_id}/revenue"
        return self._make_request(url)

    def fetch(self) -> RevenueSnapshot:
        """Fetch and normalize the group's current revenue."""
        snapshot = to_snapshot(self.get_revenue(), "GroupRevenue")
        logger.info(
            "Group Revenue: pending=%s available=%s converted=%s total=%s Robux",
            format_robux(snapshot.pending),
            format_robux(snapshot.available),
            format_robux(snapshot.converted),
            format_robux(snapshot.total),
        )
        return snapshot
