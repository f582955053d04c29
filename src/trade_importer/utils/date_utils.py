"""Timestamp parsing and normalization utilities.

Exchanges report execution times in several shapes: ISO-8601 strings (with or
without a trailing "Z"), Unix epoch seconds, and Unix epoch milliseconds.
Everything is normalized to a timezone-aware UTC datetime.
"""

from datetime import datetime, timezone

# Epoch values above this are treated as milliseconds (year 2286 in seconds)
_EPOCH_MS_THRESHOLD = 10_000_000_000


def parse_timestamp(raw: object) -> datetime:
    """Parse a raw timestamp into an aware UTC datetime.

    Handles:
    - datetime objects (naive values are assumed to be UTC)
    - Epoch seconds or milliseconds as int/float or digit strings
    - ISO-8601 strings: 2024-01-15T10:30:00Z, 2024-01-15 10:30:00+01:00

    Args:
        raw: The raw timestamp value.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If the timestamp cannot be parsed.
    """
    if raw is None or raw == "":
        raise ValueError("Empty timestamp")

    if isinstance(raw, datetime):
        return _to_utc(raw)

    if isinstance(raw, bool):
        raise ValueError(f"Cannot parse timestamp from boolean: {raw!r}")

    if isinstance(raw, (int, float)):
        return _from_epoch(float(raw))

    ts_str = str(raw).strip()
    if not ts_str:
        raise ValueError("Empty timestamp after stripping whitespace")

    if ts_str.isdigit():
        return _from_epoch(float(ts_str))

    # fromisoformat() before 3.11 rejects the "Z" suffix
    if ts_str.endswith(("Z", "z")):
        ts_str = ts_str[:-1] + "+00:00"

    try:
        return _to_utc(datetime.fromisoformat(ts_str))
    except ValueError as e:
        raise ValueError(f"Cannot parse timestamp '{raw}': {e}") from e


def _from_epoch(value: float) -> datetime:
    if value > _EPOCH_MS_THRESHOLD:
        value = value / 1000
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def timestamp_to_iso(value: datetime | None) -> str:
    """Format a timestamp as ISO-8601 with a trailing Z.

    Args:
        value: Timestamp to format (aware or naive UTC), or None.

    Returns:
        String like "2024-01-15T10:30:00Z", or "" for None.
    """
    if value is None:
        return ""
    return _to_utc(value).isoformat().replace("+00:00", "Z")
