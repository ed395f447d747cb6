"""Canonical data model for group revenue, sale events and outbound alerts."""

import datetime as dt
import math
from dataclasses import dataclass, field

# Error messages
ERR_MISSING_TZ = "Datetime must be timezone-aware"
ERR_NEGATIVE_AMOUNT = "Revenue amounts must be non-negative"
ERR_NEGATIVE_PRICE = "Price must be non-negative"
ERR_PRICE_NOT_FINITE = "Price must be a finite number"
ERR_BAD_FIELD = "Notification fields must be (label, value) string pairs"
PAIR_LENGTH = 2


def utc_now() -> dt.datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


@dataclass(frozen=True)
class RevenueSnapshot:
    """Point-in-time aggregate revenue reading for a group, in Robux."""

    pending: int
    available: int
    converted: int
    observed_at: dt.datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate the RevenueSnapshot data."""
        for name in ("pending", "available", "converted"):
            value = getattr(self, name)
            if value < 0:
                err_msg = f"{ERR_NEGATIVE_AMOUNT}, got {name}={value}"
                raise ValueError(err_msg)

        if self.observed_at.tzinfo is None:
            raise ValueError(ERR_MISSING_TZ)

    @property
    def total(self) -> int:
        """Sum of the pending, available and converted balances."""
        return self.pending + self.available + self.converted


@dataclass
class MonitorState:
    """Mutable polling state, one instance per process.

    Only the delta detector writes to it, and only after a successful poll.
    """

    last_known_total: int = 0
    initialized: bool = False
    last_poll_time: dt.datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SaleEvent:
    """A single sale pushed to us by the game server."""

    player_name: str
    player_id: int | str
    product_name: str
    price: int | float
    received_at: dt.datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate the SaleEvent data."""
        # bool is an int subclass, but never a price
        if (
            isinstance(self.price, bool)
            or not isinstance(self.price, int | float)
            or (isinstance(self.price, float) and not math.isfinite(self.price))
        ):
            err_msg = f"{ERR_PRICE_NOT_FINITE}, got {self.price!r}"
            raise ValueError(err_msg)

        if self.price < 0:
            err_msg = f"{ERR_NEGATIVE_PRICE}, got {self.price}"
            raise ValueError(err_msg)

        if self.received_at.tzinfo is None:
            raise ValueError(ERR_MISSING_TZ)


@dataclass(frozen=True)
class NotificationMessage:
    """Structured alert handed to an alert sink exactly once."""

    title: str
    description: str
    fields: tuple[tuple[str, str], ...] = ()
    emitted_at: dt.datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Validate the NotificationMessage data."""
        for item in self.fields:
            is_pair = len(item) == PAIR_LENGTH and all(isinstance(p, str) for p in item)
            if not is_pair:
                err_msg = f"{ERR_BAD_FIELD}, got {item!r}"
                raise ValueError(err_msg)

        if self.emitted_at.tzinfo is None:
            raise ValueError(ERR_MISSING_TZ)


def format_robux(amount: float) -> str:
    """Render an amount with thousands separators, e.g. 1234567 -> '1,234,567'."""
    return f"{amount:,}"


def format_timestamp(moment: dt.datetime) -> str:
    """Render a timestamp the way it appears in message fields (RFC 1123, GMT)."""
    return moment.astimezone(dt.UTC).strftime("%a, %d %b %Y %H:%M:%S GMT")
