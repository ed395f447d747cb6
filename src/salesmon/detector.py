"""Monotonic revenue delta detection.

The detector only ever reports increases. The first observation sets the
baseline silently; a lower total than the baseline is taken as an upstream
correction and becomes the new baseline without an alert.
"""

from salesmon.revenue_schema import (
    MonitorState,
    NotificationMessage,
    RevenueSnapshot,
    format_robux,
    format_timestamp,
)

REVENUE_TITLE = "Group Revenue Increase."
REVENUE_DESCRIPTION = "Your group earned new Robux."


def format_revenue_message(
    delta: int,
    snapshot: RevenueSnapshot,
) -> NotificationMessage:
    """Build the alert for a revenue increase.

    Args:
        delta: Positive increase since the previous baseline
        snapshot: Snapshot that produced the increase

    Returns:
        Notification ready for an alert sink

    """
    return NotificationMessage(
        title=REVENUE_TITLE,
        description=REVENUE_DESCRIPTION,
        fields=(
            ("New Revenue", f"{format_robux(delta)} Robux"),
            ("Total Revenue", f"{format_robux(snapshot.total)} Robux"),
            ("Timestamp", format_timestamp(snapshot.observed_at)),
        ),
        emitted_at=snapshot.observed_at,
    )


def observe(
    snapshot: RevenueSnapshot,
    state: MonitorState,
) -> NotificationMessage | None:
    """Compare a snapshot against the baseline and update the state.

    Args:
        snapshot: Freshly fetched revenue snapshot
        state: Process-wide monitor state, mutated in place

    Returns:
        A notification if revenue increased since the last poll, else None

    """
    state.last_poll_time = snapshot.observed_at
    total = snapshot.total

    if not state.initialized:
        state.last_known_total = total
        state.initialized = True
        return None

    message = None
    if total > state.last_known_total:
        message = format_revenue_message(total - state.last_known_total, snapshot)

    # Equal or lower totals resynchronize the baseline
    state.last_known_total = total
    return message
