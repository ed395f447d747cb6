"""Read-only liveness report."""

import datetime as dt
import time
from typing import Any

from salesmon.revenue_schema import MonitorState


def iso_timestamp(moment: dt.datetime) -> str:
    """Render a UTC datetime as ISO 8601 with millisecond precision and a Z suffix."""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def health_report(
    state: MonitorState,
    started_at: float,
    group_id: str | None,
) -> dict[str, Any]:
    """Describe the process without touching any state.

    Args:
        state: Monitor state whose last poll time is reported
        started_at: ``time.monotonic()`` value captured at startup
        group_id: Configured group identifier, if any

    Returns:
        Health payload for the /health endpoint

    """
    return {
        "status": "healthy",
        "uptime": round(time.monotonic() - started_at, 3),
        "lastCheck": iso_timestamp(state.last_poll_time),
        "groupId": group_id,
    }
