"""Tests for the groups revenue REST client."""

import pytest
import requests
import responses

from salesmon.group_revenue_client import GroupRevenueClient
from salesmon.sources import (
    MalformedResponseError,
    UpstreamAuthError,
    UpstreamUnavailableError,
)

# Constants for testing
GROUP_ID = "4199740"
COOKIE = "_|WARNING:-DO-NOT-SHARE-THIS.--test-cookie"
REVENUE_URL = f"{GroupRevenueClient.DEFAULT_BASE_URL}/groups/{GROUP_ID}/revenue"
EXPECTED_TOTAL = 1600


@pytest.fixture
def client(monkeypatch):
    """Fixture to create a client against the default host."""
    monkeypatch.delenv("ROBLOX_GROUPS_BASE_URL", raising=False)
    return GroupRevenueClient(GROUP_ID, COOKIE)


# We want to test private methods directly in these tests
# ruff: noqa: SLF001
def test_get_headers(client: GroupRevenueClient):
    """Test that the session cookie and user agent are sent."""
    headers = client._get_headers()

    assert headers["Cookie"] == f".ROBLOSECURITY={COOKIE}"
    assert headers["User-Agent"] == "Mozilla/5.0"


def test_base_url_override(monkeypatch):
    """Test that ROBLOX_GROUPS_BASE_URL overrides the host."""
    monkeypatch.setenv("ROBLOX_GROUPS_BASE_URL", "http://localhost:9999/v1")
    client = GroupRevenueClient(GROUP_ID, COOKIE)

    assert client._get_base_url() == "http://localhost:9999/v1"


@responses.activate
def test_fetch(client: GroupRevenueClient):
    """Test fetching and normalizing the revenue summary."""
    responses.add(
        responses.GET,
        REVENUE_URL,
        json={"revenueByType": {"Pending": 100, "Available": 1500}},
        status=200,
    )

    snapshot = client.fetch()

    assert snapshot.pending == 100  # noqa: PLR2004
    assert snapshot.converted == 0
    assert snapshot.total == EXPECTED_TOTAL
    request = responses.calls[0].request
    assert request.headers["Cookie"] == f".ROBLOSECURITY={COOKIE}"


@responses.activate
def test_get_revenue_returns_raw_payload(client: GroupRevenueClient):
    """Test that get_revenue returns the payload untouched."""
    payload = {"revenueByType": {"Converted": 5}, "extra": True}
    responses.add(responses.GET, REVENUE_URL, json=payload, status=200)

    assert client.get_revenue() == payload


@pytest.mark.parametrize("status", [401, 403])
@responses.activate
def test_auth_failure(client: GroupRevenueClient, status: int):
    """Test that 401/403 surface as UpstreamAuthError naming the cookie."""
    responses.add(responses.GET, REVENUE_URL, status=status)

    with pytest.raises(UpstreamAuthError) as excinfo:
        client.fetch()

    assert excinfo.value.status_code == status
    assert excinfo.value.credential == "ROBLOX_COOKIE"


@responses.activate
def test_server_error(client: GroupRevenueClient):
    """Test that 5xx responses are reported as upstream unavailable."""
    responses.add(responses.GET, REVENUE_URL, status=503)

    with pytest.raises(UpstreamUnavailableError, match="503"):
        client.fetch()

    # No retry on failure
    assert len(responses.calls) == 1


@responses.activate
def test_network_error(client: GroupRevenueClient):
    """Test that connection failures are reported as upstream unavailable."""
    responses.add(
        responses.GET,
        REVENUE_URL,
        body=requests.exceptions.ConnectionError("connection refused"),
    )

    with pytest.raises(UpstreamUnavailableError, match="connection refused"):
        client.fetch()


@responses.activate
def test_non_json_body(client: GroupRevenueClient):
    """Test that an HTML error page is reported as malformed."""
    responses.add(responses.GET, REVENUE_URL, body="<html>oops</html>", status=200)

    with pytest.raises(MalformedResponseError, match="not valid JSON"):
        client.fetch()


@responses.activate
def test_json_array_body(client: GroupRevenueClient):
    """Test that a JSON array instead of an object is reported as malformed."""
    responses.add(responses.GET, REVENUE_URL, json=[1, 2], status=200)

    with pytest.raises(MalformedResponseError, match="JSON object"):
        client.fetch()
