"""Half-open interval arithmetic and timestamp normalization."""

from __future__ import annotations

from datetime import datetime, timezone

from dateutil import tz

from labsched.domain.models import TimeInterval


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Return True if ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect.

    Touching ranges (one's end equals the other's start) do NOT overlap.
    Both ranges must use the same time representation.
    """
    return a_start < b_end and a_end > b_start


def to_instant(value: datetime, tz_name: str = "UTC") -> datetime:
    """Return *value* as an aware UTC datetime.

    Naive values are read as wall-clock time in *tz_name*; ambiguous or
    non-existent DST times resolve the way ``dateutil`` resolves them.
    """
    if value.tzinfo is None:
        zone = tz.gettz(tz_name)
        if zone is None:
            raise ValueError(f"Unknown timezone: {tz_name}")
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc)


def normalize_interval(interval: TimeInterval, tz_name: str = "UTC") -> TimeInterval:
    return TimeInterval(
        start=to_instant(interval.start, tz_name),
        end=to_instant(interval.end, tz_name),
    )
