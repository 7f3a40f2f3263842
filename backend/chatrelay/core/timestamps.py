"""Timestamp helpers. Stored times use the ``2025-01-01T00:00:00.000Z`` form."""

import time
from datetime import datetime, timezone


def iso_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def unix_now() -> int:
    return int(time.time())


def format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string, accepting a trailing ``Z``. Naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
