"""Domain events emitted as test steps move through the schedule."""

from __future__ import annotations

from pydantic import BaseModel

from labsched.domain.models import StepStatus


class StepCreated(BaseModel):
    """Fired when a validated step is stored."""

    step_id: str


class StepUpdated(BaseModel):
    """Fired after a validated edit (form edit, drag or resize) is committed."""

    step_id: str
    changed_fields: list[str]


class StepStatusChanged(BaseModel):
    step_id: str
    old_status: StepStatus
    new_status: StepStatus


class StepDeleted(BaseModel):
    step_id: str


class ConflictDetected(BaseModel):
    """Fired when a proposed create or update is rejected for conflicts.

    ``step_id`` is None for a rejected create, since nothing was stored.
    """

    step_id: str | None = None
    conflicting_step_ids: list[str]
