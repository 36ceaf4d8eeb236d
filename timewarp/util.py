"""Utility constants and helpers for timewarp.

Duration constants are `timedelta` values so they combine directly with the
instants stored in intervals.
"""

from datetime import datetime, timedelta, timezone

SECOND = timedelta(seconds=1)
MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
WEEK = timedelta(weeks=1)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def from_seconds(value: int) -> datetime:
    """Convert integer Unix seconds to a timezone-aware UTC datetime."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(
            f"Epoch bounds must be int (Unix seconds).\n"
            f"Got {type(value).__name__!r}: {value!r}\n"
            f"Hint: use apply() for datetime bounds:\n"
            f"  rule.apply(datetime(2025, 1, 1, tzinfo=timezone.utc), ...)"
        )
    return EPOCH + timedelta(seconds=value)
