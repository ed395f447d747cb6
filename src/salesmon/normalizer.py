"""Normalizers for converting upstream revenue payloads to RevenueSnapshot."""

import math
from collections.abc import Mapping
from typing import Any, Protocol

from salesmon.revenue_schema import RevenueSnapshot
from salesmon.sources import MalformedResponseError

CATEGORIES = ("Pending", "Available", "Converted")


class SourceAdapter(Protocol):
    """Protocol for source-specific adapters."""

    def __call__(self, raw: dict[str, Any]) -> RevenueSnapshot:
        """Convert source-specific raw data to RevenueSnapshot."""
        ...


def _amount(breakdown: Mapping[str, Any], category: str) -> int:
    """Read one revenue category, treating a missing or null entry as zero."""
    value = breakdown.get(category)
    if value is None:
        return 0
    # bool is an int subclass, but never a Robux amount
    if isinstance(value, bool) or not isinstance(value, int | float):
        err_msg = f"{category} revenue is not a number: {value!r}"
        raise MalformedResponseError(err_msg)
    if isinstance(value, float) and not math.isfinite(value):
        err_msg = f"{category} revenue is not finite: {value!r}"
        raise MalformedResponseError(err_msg)
    return int(value)


def _build_snapshot(breakdown: Mapping[str, Any]) -> RevenueSnapshot:
    pending, available, converted = (_amount(breakdown, c) for c in CATEGORIES)
    try:
        return RevenueSnapshot(
            pending=pending,
            available=available,
            converted=converted,
        )
    except ValueError as e:
        raise MalformedResponseError(str(e)) from e


def _group_revenue_adapter(raw: dict[str, Any]) -> RevenueSnapshot:
    """Convert a groups API revenue summary to RevenueSnapshot.

    The payload carries a ``revenueByType`` object; categories the group has
    never earned in are simply absent and count as zero.
    """
    breakdown = raw.get("revenueByType")
    if not isinstance(breakdown, Mapping):
        err_msg = "Revenue response has no revenueByType object"
        raise MalformedResponseError(err_msg)
    return _build_snapshot(breakdown)


def _open_cloud_adapter(raw: dict[str, Any]) -> RevenueSnapshot:
    """Convert an Open Cloud earnings payload to RevenueSnapshot.

    The earnings endpoint is looser than the groups API: the breakdown may sit
    under ``revenueByType``, under ``earnings`` or at the top level, and keys
    may be lower-cased. At least one known category must be present.
    """
    for key in ("revenueByType", "earnings"):
        if isinstance(raw.get(key), Mapping):
            candidate = raw[key]
            break
    else:
        candidate = raw

    # Index by capitalized key so "pending" and "Pending" both match
    breakdown = {str(k).capitalize(): v for k, v in candidate.items()}
    if not any(category in breakdown for category in CATEGORIES):
        err_msg = "Earnings response has none of: " + ", ".join(CATEGORIES)
        raise MalformedResponseError(err_msg)
    return _build_snapshot(breakdown)


# Registry of adapters by source
_ADAPTERS: dict[str, SourceAdapter] = {
    "GroupRevenue": _group_revenue_adapter,
    "OpenCloud": _open_cloud_adapter,
}


def to_snapshot(raw: dict[str, Any], source: str) -> RevenueSnapshot:
    """Convert raw API payload to a canonical RevenueSnapshot.

    Args:
        raw: Raw API payload as a dictionary
        source: Source name - "GroupRevenue" or "OpenCloud"

    Returns:
        RevenueSnapshot: Normalized revenue snapshot

    Raises:
        ValueError: If source is not supported
        MalformedResponseError: If the payload lacks the expected fields

    """
    if source not in _ADAPTERS:
        supported = ", ".join(_ADAPTERS.keys())
        error_msg = f"Unsupported source: {source}. Supported sources: {supported}"
        raise ValueError(error_msg)

    adapter = _ADAPTERS[source]
    return adapter(raw)
