"""Service for detecting resource conflicts between test steps."""

from __future__ import annotations

from collections.abc import Iterable

from labsched.domain.models import TestStep, TimeInterval
from labsched.services.intervals import overlaps


def find_conflicts(
    steps: Iterable[TestStep],
    interval: TimeInterval,
    equipment_id: str | None,
    analyst_id: str | None,
    exclude_step_id: str | None = None,
) -> list[TestStep]:
    """Return existing steps that would collide with the given booking.

    A step is a candidate if it uses the same equipment OR the same analyst;
    a blank resource id matches nothing, so passing only one id checks a
    single resource. Candidates conflict when their interval overlaps
    *interval* (boundary touches are not conflicts). The step identified by
    *exclude_step_id* is ignored so an edited step never conflicts with itself.
    """
    return [
        step
        for step in steps
        if step.id != exclude_step_id
        and (
            (bool(equipment_id) and step.equipment_id == equipment_id)
            or (bool(analyst_id) and step.analyst_id == analyst_id)
        )
        and overlaps(
            interval.start, interval.end, step.interval.start, step.interval.end
        )
    ]
