"""Tests for the half-open interval predicate and instant normalization."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from labsched.domain.models import TimeInterval
from labsched.services.intervals import normalize_interval, overlaps, to_instant

T = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
H = timedelta(hours=1)


def test_touching_intervals_do_not_overlap():
    assert overlaps(T, T + H, T + H, T + 2 * H) is False
    assert overlaps(T + H, T + 2 * H, T, T + H) is False


def test_partial_overlap():
    assert overlaps(T, T + 2 * H, T + H, T + 3 * H) is True
    assert overlaps(T + H, T + 3 * H, T, T + 2 * H) is True


def test_containment_overlaps():
    assert overlaps(T, T + 4 * H, T + H, T + 2 * H) is True


def test_disjoint_intervals():
    assert overlaps(T, T + H, T + 3 * H, T + 4 * H) is False


def test_to_instant_reads_naive_time_in_lab_zone():
    naive = datetime(2026, 7, 1, 10, 0)
    instant = to_instant(naive, "Europe/Berlin")
    # CEST is UTC+2 in July
    assert instant == datetime(2026, 7, 1, 8, 0, tzinfo=timezone.utc)
    assert instant.tzinfo == timezone.utc


def test_to_instant_converts_aware_values_to_utc():
    aware = datetime(2026, 1, 15, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert to_instant(aware) == datetime(2026, 1, 15, 15, 0, tzinfo=timezone.utc)


def test_to_instant_rejects_unknown_zone():
    with pytest.raises(ValueError, match="Unknown timezone"):
        to_instant(datetime(2026, 1, 1, 9, 0), "Not/AZone")


def test_normalize_interval_across_dst_change():
    """A naive 01:00-04:00 slot on the spring-forward night spans two real hours."""
    interval = TimeInterval(
        start=datetime(2026, 3, 29, 1, 0), end=datetime(2026, 3, 29, 4, 0)
    )
    normalized = normalize_interval(interval, "Europe/Berlin")
    assert normalized.end - normalized.start == timedelta(hours=2)
