"""Revenue source contract, fetch errors and startup source selection."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import requests

from salesmon.revenue_schema import RevenueSnapshot

if TYPE_CHECKING:
    from salesmon.config import Settings

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class FetchError(Exception):
    """Base class for every failure to obtain a revenue snapshot."""


class UpstreamAuthError(FetchError):
    """Upstream rejected the configured credential (HTTP 401/403)."""

    def __init__(self, status_code: int, credential: str) -> None:
        """Record which credential was rejected.

        Args:
            status_code: HTTP status returned by upstream
            credential: Name of the environment variable holding the credential

        """
        super().__init__(f"HTTP {status_code} from upstream, check {credential}")
        self.status_code = status_code
        self.credential = credential


class UpstreamUnavailableError(FetchError):
    """Network failure or a non-auth HTTP error from upstream."""


class MalformedResponseError(FetchError):
    """Upstream answered, but not with a JSON object."""


class RevenueSource(ABC):
    """Fetches the current aggregate revenue from upstream."""

    # Environment variable operators should rotate on auth failures
    CREDENTIAL_NAME = ""
    # Short label used in startup and poll logs
    METHOD = ""

    def __init__(self) -> None:
        """Initialize the shared HTTP session."""
        self.session = requests.Session()

    @abstractmethod
    def fetch(self) -> RevenueSnapshot:
        """Fetch a snapshot of the current revenue.

        Returns:
            The current revenue snapshot

        Raises:
            FetchError: If the snapshot could not be obtained

        """
        ...

    @abstractmethod
    def _get_headers(self) -> dict[str, str]:
        """Get headers, including the credential, for upstream requests."""
        ...

    def _make_request(self, url: str) -> dict[str, Any]:
        """Make a GET request and return the decoded JSON object.

        Args:
            url: Full URL to request

        Returns:
            JSON response as dictionary

        Raises:
            UpstreamAuthError: For HTTP 401/403
            UpstreamUnavailableError: For network failures and other HTTP errors
            MalformedResponseError: If the body is not a JSON object

        """
        try:
            response = self.session.get(url, headers=self._get_headers())
            response.raise_for_status()
        except requests.exceptions.HTTPError as error:
            status = error.response.status_code
            if status in AUTH_FAILURE_STATUSES:
                raise UpstreamAuthError(status, self.CREDENTIAL_NAME) from error
            raise UpstreamUnavailableError(f"HTTP {status} from {url}") from error
        except requests.exceptions.RequestException as error:
            raise UpstreamUnavailableError(str(error)) from error

        try:
            payload = response.json()
        except ValueError as error:
            msg = f"Response from {url} is not valid JSON"
            raise MalformedResponseError(msg) from error

        if not isinstance(payload, dict):
            msg = f"Expected a JSON object from {url}, got {type(payload).__name__}"
            raise MalformedResponseError(msg)
        return payload


def select_source(settings: "Settings") -> RevenueSource | None:
    """Pick the single revenue source this process will poll.

    The session cookie wins over the API key. Returns None when no variant
    has all the configuration it needs, in which case polling must not start.

    Args:
        settings: Process configuration

    Returns:
        The configured revenue source, or None

    """
    # Imported here to keep the client modules free to import this one
    from salesmon.group_revenue_client import GroupRevenueClient
    from salesmon.open_cloud_client import OpenCloudClient

    if not settings.group_id:
        logger.warning("ROBLOX_GROUP_ID not configured")
        return None

    if settings.cookie:
        return GroupRevenueClient(settings.group_id, settings.cookie)

    if settings.api_key:
        if not settings.universe_id:
            logger.warning("ROBLOX_UNIVERSE_ID not configured")
            return None
        return OpenCloudClient(settings.api_key, settings.universe_id)

    logger.warning("No authentication configured")
    logger.warning("To enable monitoring, set one of these in .env:")
    logger.warning("  - ROBLOX_COOKIE (your .ROBLOSECURITY cookie)")
    logger.warning("  - ROBLOX_API_KEY (your Open Cloud API key)")
    return None
