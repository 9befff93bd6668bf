from __future__ import annotations

from datetime import datetime, timezone

NANOS_PER_SECOND = 10**9
BOUND_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def to_utc_seconds(value: datetime) -> datetime:
    """Normalise a bound to UTC and drop sub-second precision.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def format_bound(value: datetime) -> str:
    return to_utc_seconds(value).strftime(BOUND_FORMAT)


def bound_to_nanos(value: datetime) -> int:
    """Whole-second bound expressed in block-timestamp nanoseconds."""
    return int(to_utc_seconds(value).timestamp()) * NANOS_PER_SECOND


def parse_bound(text: str) -> datetime:
    """Parse an ISO-8601 bound such as ``2023-01-01T00:00:00Z``."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc_seconds(datetime.fromisoformat(text))
