"""In-memory repositories for test steps, timelines and resource directories."""

from __future__ import annotations

import itertools
from collections.abc import Iterable
from datetime import datetime, time
from typing import Generic, TypeVar

from pydantic import BaseModel

from labsched.domain.errors import StepNotFoundError
from labsched.domain.models import (
    Aliquot,
    Analyst,
    Equipment,
    LabTest,
    Sample,
    StepDraft,
    StepStatus,
    TestStep,
    TimeInterval,
    TimelineEntry,
)
from labsched.services.intervals import to_instant

R = TypeVar("R", bound=BaseModel)


class StepStore:
    """Dict-backed store for TestStep instances, keyed by id.

    Insertion order is preserved; ids are assigned here and never reused
    within a session.
    """

    def __init__(self) -> None:
        self._store: dict[str, TestStep] = {}
        self._ids = itertools.count(1)

    def _next_id(self) -> str:
        step_id = f"STEP_{next(self._ids):03d}"
        while step_id in self._store:
            step_id = f"STEP_{next(self._ids):03d}"
        return step_id

    def create(self, draft: StepDraft) -> TestStep:
        step = TestStep(id=self._next_id(), **draft.model_dump())
        self._store[step.id] = step
        return step

    def update(self, step_id: str, changes: dict) -> TestStep:
        """Merge *changes* into the stored step and return the new record.

        The merged record is validated before it replaces the old one, so a
        bad merge leaves the store untouched.
        """
        existing = self._store.get(step_id)
        if existing is None:
            raise StepNotFoundError(step_id)
        merged = TestStep.model_validate(
            {**existing.model_dump(), **changes, "id": step_id}
        )
        self._store[step_id] = merged
        return merged

    def delete(self, step_id: str) -> None:
        self._store.pop(step_id, None)

    def get(self, step_id: str) -> TestStep | None:
        return self._store.get(step_id)

    def list_all(self) -> list[TestStep]:
        return list(self._store.values())

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_step(self, step_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.step_id == step_id],
            key=lambda e: e.timestamp,
        )


class ResourceDirectory(Generic[R]):
    """Read-only lookup over reference records supplied by another subsystem."""

    def __init__(self, records: Iterable[R] = ()) -> None:
        self._records: tuple[R, ...] = tuple(records)
        self._by_id = {r.id: r for r in self._records}

    def get(self, record_id: str) -> R | None:
        return self._by_id.get(record_id)

    def list_all(self) -> list[R]:
        return list(self._records)


class SampleDirectory(ResourceDirectory[Sample]):
    """Samples with their aliquots and tests, for cascading selection lists."""

    def aliquots_for(self, sample_id: str) -> list[Aliquot]:
        sample = self.get(sample_id)
        return list(sample.aliquots) if sample else []

    def tests_for(self, sample_id: str, aliquot_id: str) -> list[LabTest]:
        for aliquot in self.aliquots_for(sample_id):
            if aliquot.id == aliquot_id:
                return list(aliquot.tests)
        return []


# ---------------------------------------------------------------------------
# Seed data – the lab's demo directories and today's bookings
# ---------------------------------------------------------------------------

DEMO_EQUIPMENT = [
    Equipment(id="HPLC_01", name="HPLC System 1", type="HPLC"),
    Equipment(id="CENT_01", name="Centrifuge 1", type="Centrifuge"),
    Equipment(id="SPEC_01", name="Spectrophotometer 1", type="Spectrophotometer"),
]

DEMO_ANALYSTS = [
    Analyst(id="ANL_01", name="Dr. Sarah Chen"),
    Analyst(id="ANL_02", name="Dr. Mike Johnson"),
    Analyst(id="ANL_03", name="Dr. Emily Taylor"),
]

DEMO_SAMPLES = [
    Sample(
        id="SAM-001",
        name="Test Sample A",
        aliquots=[
            Aliquot(
                id="ALQ-001",
                tests=[LabTest(id="TST-001", name="pH Analysis", method="pH-001")],
            ),
            Aliquot(
                id="ALQ-002",
                tests=[LabTest(id="TST-002", name="Stability Test", method="STB-003")],
            ),
            Aliquot(id="ALQ-003"),
        ],
    ),
]


def _at(day: datetime, hour: int) -> datetime:
    """*hour* o'clock on *day*'s date in its zone, as a UTC instant."""
    return to_instant(datetime.combine(day.date(), time(hour), tzinfo=day.tzinfo))


def _seed_steps(store: StepStore, today: datetime) -> None:
    store.create(
        StepDraft(
            sample_id="SAM-001",
            aliquot_id="ALQ-001",
            test_id="TST-001",
            step_name="HPLC Analysis",
            equipment_id="HPLC_01",
            analyst_id="ANL_01",
            interval=TimeInterval(start=_at(today, 10), end=_at(today, 11)),
        )
    )
    store.create(
        StepDraft(
            sample_id="SAM-001",
            aliquot_id="ALQ-002",
            test_id="TST-002",
            step_name="Centrifugation",
            equipment_id="CENT_01",
            analyst_id="ANL_02",
            interval=TimeInterval(start=_at(today, 13), end=_at(today, 14)),
            status=StepStatus.IN_PROGRESS,
        )
    )


def create_step_store(today: datetime | None = None) -> StepStore:
    """Return a StepStore, pre-loaded with demo bookings when *today* is given.

    *today* should be timezone-aware; the bookings land at 10:00 and 13:00 in
    its zone and are stored as UTC.
    """
    store = StepStore()
    if today is not None:
        _seed_steps(store, today)
    return store
