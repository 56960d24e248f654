"""Domain models for test-step scheduling."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StepStatus(StrEnum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class TimelineEntryType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    CONFLICT_DETECTED = "conflict_detected"
    DELETED = "deleted"


# Fields a step cannot be scheduled without, in the order they are reported.
REQUIRED_FIELDS = (
    "sample_id",
    "aliquot_id",
    "test_id",
    "step_name",
    "equipment_id",
    "analyst_id",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Reference data (owned by external directories)
# ---------------------------------------------------------------------------


class Equipment(BaseModel):
    id: str
    name: str
    type: str


class Analyst(BaseModel):
    id: str
    name: str


class LabTest(BaseModel):
    id: str
    name: str
    method: str | None = None


class Aliquot(BaseModel):
    id: str
    tests: list[LabTest] = Field(default_factory=list)


class Sample(BaseModel):
    id: str
    name: str | None = None
    aliquots: list[Aliquot] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class TimeInterval(BaseModel):
    """A half-open ``[start, end)`` time range.

    Ordering is not enforced here so that an inverted range coming from the
    calendar can be reported back as a validation result instead of failing
    to parse.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @property
    def is_valid(self) -> bool:
        return self.start < self.end


class TestStep(BaseModel):
    """A stored booking; replaced on update, never edited in place."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    id: str
    sample_id: str
    aliquot_id: str
    test_id: str
    step_name: str
    equipment_id: str
    analyst_id: str
    interval: TimeInterval
    status: StepStatus = StepStatus.SCHEDULED

    @model_validator(mode="after")
    def _end_after_start(self) -> TestStep:
        if not self.interval.is_valid:
            raise ValueError("interval end must be after interval start")
        return self


class StepDraft(BaseModel):
    """A step proposed by the calendar, not yet validated or stored."""

    sample_id: str = ""
    aliquot_id: str = ""
    test_id: str = ""
    step_name: str = ""
    equipment_id: str = ""
    analyst_id: str = ""
    interval: TimeInterval
    status: StepStatus = StepStatus.SCHEDULED

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name).strip()]


class StepChanges(BaseModel):
    """Partial update for a stored step; only explicitly set fields apply."""

    sample_id: str | None = None
    aliquot_id: str | None = None
    test_id: str | None = None
    step_name: str | None = None
    equipment_id: str | None = None
    analyst_id: str | None = None
    interval: TimeInterval | None = None
    status: StepStatus | None = None

    def as_update(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    step_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Typed results
# ---------------------------------------------------------------------------


class InvalidInterval(BaseModel):
    kind: Literal["invalid_interval"] = "invalid_interval"
    interval: TimeInterval
    message: str = "start must be strictly before end"


class IncompleteDraft(BaseModel):
    kind: Literal["incomplete_draft"] = "incomplete_draft"
    missing_fields: list[str]


class ConflictRejected(BaseModel):
    kind: Literal["conflict"] = "conflict"
    conflicts: list[TestStep]

    def describe(self) -> list[str]:
        """Human-readable "name (start - end)" line per conflicting step."""
        return [
            f"{step.step_name} ({step.interval.start.isoformat()} - "
            f"{step.interval.end.isoformat()})"
            for step in self.conflicts
        ]


class NotFound(BaseModel):
    kind: Literal["not_found"] = "not_found"
    step_id: str


Rejection = InvalidInterval | IncompleteDraft | ConflictRejected | NotFound


class ResourceAvailability(BaseModel):
    id: str
    name: str
    is_available: bool
    conflicts: list[TestStep] = Field(default_factory=list)


class AvailabilitySummary(BaseModel):
    interval: TimeInterval
    equipment: list[ResourceAvailability] = Field(default_factory=list)
    analysts: list[ResourceAvailability] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


class StatusTransitionRequest(BaseModel):
    status: StepStatus


class AvailabilityRequest(BaseModel):
    interval: TimeInterval
    exclude_step_id: str | None = None
