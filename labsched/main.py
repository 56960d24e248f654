"""FastAPI application: HTTP adapter for the scheduling calendar."""

from __future__ import annotations

from datetime import datetime

from dateutil import tz
from fastapi import FastAPI, HTTPException, Query, Response

from labsched.config import settings
from labsched.domain.bus import EventBus
from labsched.domain.errors import REJECTION_STATUS_CODES
from labsched.domain.handlers import HandlerRegistry
from labsched.domain.models import (
    Analyst,
    AvailabilityRequest,
    AvailabilitySummary,
    ConflictRejected,
    Equipment,
    Sample,
    StatusTransitionRequest,
    StepChanges,
    StepDraft,
    StepStatus,
    TestStep,
    TimeInterval,
    TimelineEntry,
)
from labsched.repos.memory import (
    DEMO_ANALYSTS,
    DEMO_EQUIPMENT,
    DEMO_SAMPLES,
    ResourceDirectory,
    SampleDirectory,
    TimelineRepository,
    create_step_store,
)
from labsched.services.filters import StepFilter
from labsched.services.scheduling import SchedulingService
from labsched.utils.logger import configure_logging

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.APP_NAME)

# ── Singletons (one scheduling session per process) ───────────────────
event_bus = EventBus()
step_store = create_step_store(
    datetime.now(tz.gettz(settings.LAB_TIMEZONE)) if settings.SEED_DEMO_DATA else None
)
timeline_repo = TimelineRepository()
equipment_directory = ResourceDirectory(DEMO_EQUIPMENT if settings.SEED_DEMO_DATA else [])
analyst_directory = ResourceDirectory(DEMO_ANALYSTS if settings.SEED_DEMO_DATA else [])
sample_directory = SampleDirectory(DEMO_SAMPLES if settings.SEED_DEMO_DATA else [])

handler_registry = HandlerRegistry(
    bus=event_bus,
    step_store=step_store,
    timeline_repo=timeline_repo,
)

scheduling_service = SchedulingService(
    store=step_store,
    bus=event_bus,
    equipment=equipment_directory,
    analysts=analyst_directory,
    tz_name=settings.LAB_TIMEZONE,
)


def _unwrap(result) -> TestStep:
    """Return the step, or raise an HTTPException carrying the rejection."""
    if isinstance(result, TestStep):
        return result
    detail = result.model_dump(mode="json")
    if isinstance(result, ConflictRejected):
        detail["messages"] = result.describe()
    raise HTTPException(status_code=REJECTION_STATUS_CODES[result.kind], detail=detail)


# ── Steps ─────────────────────────────────────────────────────────────


@app.get("/steps", response_model=list[TestStep])
def list_steps(
    sample_id: str = "",
    aliquot_id: str = "",
    status: list[StepStatus] = Query(default=[]),
    equipment_id: list[str] = Query(default=[]),
    analyst_id: list[str] = Query(default=[]),
) -> list[TestStep]:
    """Return scheduled steps in booking order, narrowed by any filters given."""
    step_filter = StepFilter(
        sample_id=sample_id,
        aliquot_id=aliquot_id,
        statuses=status,
        equipment_ids=equipment_id,
        analyst_ids=analyst_id,
    )
    return scheduling_service.list_steps(step_filter)


@app.get("/steps/{step_id}", response_model=TestStep)
def get_step(step_id: str) -> TestStep:
    step = scheduling_service.get(step_id)
    if step is None:
        raise HTTPException(status_code=404, detail="Test step not found")
    return step


@app.post("/steps", response_model=TestStep, status_code=201)
def create_step(draft: StepDraft) -> TestStep:
    """Book a new step; 409 lists the steps it would collide with."""
    return _unwrap(scheduling_service.propose_create(draft))


@app.patch("/steps/{step_id}", response_model=TestStep)
def update_step(step_id: str, changes: StepChanges) -> TestStep:
    return _unwrap(scheduling_service.propose_update(step_id, changes))


@app.post("/steps/{step_id}/reschedule", response_model=TestStep)
def reschedule_step(step_id: str, interval: TimeInterval) -> TestStep:
    """Drag-to-move or drag-to-resize; validated like any other edit."""
    return _unwrap(scheduling_service.reschedule(step_id, interval))


@app.post("/steps/{step_id}/status", response_model=TestStep)
def change_status(step_id: str, body: StatusTransitionRequest) -> TestStep:
    return _unwrap(scheduling_service.transition_status(step_id, body.status))


@app.delete("/steps/{step_id}", status_code=204)
def delete_step(step_id: str) -> Response:
    scheduling_service.delete(step_id)
    return Response(status_code=204)


@app.get("/steps/{step_id}/timeline", response_model=list[TimelineEntry])
def get_step_timeline(step_id: str) -> list[TimelineEntry]:
    return timeline_repo.list_for_step(step_id)


# ── Availability & directories ────────────────────────────────────────


@app.post("/availability", response_model=AvailabilitySummary)
def availability(body: AvailabilityRequest) -> AvailabilitySummary:
    """Which equipment and analysts are free for the selected slot."""
    summary = scheduling_service.availability_summary(
        body.interval, exclude_step_id=body.exclude_step_id
    )
    if not isinstance(summary, AvailabilitySummary):
        raise HTTPException(status_code=422, detail=summary.model_dump(mode="json"))
    return summary


@app.get("/equipment", response_model=list[Equipment])
def list_equipment() -> list[Equipment]:
    return equipment_directory.list_all()


@app.get("/analysts", response_model=list[Analyst])
def list_analysts() -> list[Analyst]:
    return analyst_directory.list_all()


@app.get("/samples", response_model=list[Sample])
def list_samples() -> list[Sample]:
    return sample_directory.list_all()
