"""Scheduling service: the single validated write path for test steps.

Every create or edit that can change when a step runs, or which equipment
and analyst it holds, goes through the same sequence:

1. the interval must be non-empty (``start < end``),
2. sample, aliquot, test, name, equipment and analyst must all be set,
3. no other step may hold the same equipment or analyst during the interval.

Failures come back as typed results (see ``labsched.domain.models``) rather
than exceptions so the calendar can show exactly why a booking was refused.
"""

from __future__ import annotations

from collections.abc import Iterable

from labsched.domain.bus import EventBus
from labsched.domain.errors import StepNotFoundError
from labsched.domain.events import (
    ConflictDetected,
    StepCreated,
    StepDeleted,
    StepStatusChanged,
    StepUpdated,
)
from labsched.domain.models import (
    Analyst,
    AvailabilitySummary,
    ConflictRejected,
    Equipment,
    IncompleteDraft,
    InvalidInterval,
    NotFound,
    Rejection,
    ResourceAvailability,
    StepChanges,
    StepDraft,
    StepStatus,
    TestStep,
    TimeInterval,
)
from labsched.repos.memory import ResourceDirectory, StepStore
from labsched.services.conflicts import find_conflicts
from labsched.services.filters import StepFilter, filter_steps
from labsched.services.intervals import normalize_interval
from labsched.utils.logger import get_logger

logger = get_logger(__name__)


class SchedulingService:
    def __init__(
        self,
        store: StepStore,
        bus: EventBus,
        equipment: ResourceDirectory[Equipment],
        analysts: ResourceDirectory[Analyst],
        tz_name: str = "UTC",
    ) -> None:
        self.store = store
        self.bus = bus
        self.equipment = equipment
        self.analysts = analysts
        self.tz_name = tz_name

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def propose_create(self, draft: StepDraft) -> TestStep | Rejection:
        draft = draft.model_copy(
            update={"interval": normalize_interval(draft.interval, self.tz_name)}
        )
        rejection = self._validate(draft)
        if rejection is not None:
            return rejection

        step = self.store.create(draft)
        self.bus.publish(StepCreated(step_id=step.id))
        return step

    def propose_update(self, step_id: str, changes: StepChanges) -> TestStep | Rejection:
        """Validate and apply *changes* to a stored step.

        The step is excluded from its own conflict check. On rejection the
        stored step is left exactly as it was.
        """
        existing = self.store.get(step_id)
        if existing is None:
            return NotFound(step_id=step_id)

        update = changes.as_update()
        if changes.interval is not None:
            update["interval"] = normalize_interval(
                changes.interval, self.tz_name
            ).model_dump()

        candidate = StepDraft.model_validate(
            {**existing.model_dump(exclude={"id"}), **update}
        )
        rejection = self._validate(candidate, exclude_step_id=step_id)
        if rejection is not None:
            return rejection

        changed = [
            name
            for name in update
            if getattr(candidate, name) != getattr(existing, name)
        ]
        if not changed:
            return existing

        step = self.store.update(step_id, candidate.model_dump())

        # A status edit is reported once, as a status change
        events = []
        edited = [name for name in changed if name != "status"]
        if edited:
            events.append(StepUpdated(step_id=step_id, changed_fields=edited))
        if step.status != existing.status:
            events.append(
                StepStatusChanged(
                    step_id=step_id, old_status=existing.status, new_status=step.status
                )
            )
        self.bus.publish_all(events)
        return step

    def reschedule(self, step_id: str, interval: TimeInterval) -> TestStep | Rejection:
        """Move or resize a step, as done by dragging it on the calendar."""
        return self.propose_update(step_id, StepChanges(interval=interval))

    def transition_status(
        self, step_id: str, status: StepStatus
    ) -> TestStep | NotFound:
        """Set a step's status.

        Any status may follow any other; a status change never affects
        resource usage, so no conflict check is made.
        """
        existing = self.store.get(step_id)
        try:
            step = self.store.update(step_id, {"status": status})
        except StepNotFoundError:
            return NotFound(step_id=step_id)

        if existing is not None and existing.status != status:
            self.bus.publish(
                StepStatusChanged(
                    step_id=step_id, old_status=existing.status, new_status=status
                )
            )
        return step

    def delete(self, step_id: str) -> None:
        if self.store.get(step_id) is None:
            return
        self.store.delete(step_id)
        self.bus.publish(StepDeleted(step_id=step_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, step_id: str) -> TestStep | None:
        return self.store.get(step_id)

    def list_steps(self, step_filter: StepFilter | None = None) -> list[TestStep]:
        steps = self.store.list_all()
        if step_filter is None:
            return steps
        return filter_steps(steps, step_filter)

    def availability_summary(
        self,
        interval: TimeInterval,
        equipment: Iterable[Equipment] | None = None,
        analysts: Iterable[Analyst] | None = None,
        exclude_step_id: str | None = None,
    ) -> AvailabilitySummary | InvalidInterval:
        """Report, for every equipment item and analyst, whether it is free.

        Directories default to the ones the service was built with. Pass
        *exclude_step_id* while editing a step so its own booking does not
        mark its current resources as busy.
        """
        interval = normalize_interval(interval, self.tz_name)
        if not interval.is_valid:
            return InvalidInterval(interval=interval)

        steps = self.store.list_all()
        if equipment is None:
            equipment = self.equipment.list_all()
        if analysts is None:
            analysts = self.analysts.list_all()

        equipment_rows = []
        for item in equipment:
            conflicts = find_conflicts(steps, interval, item.id, None, exclude_step_id)
            equipment_rows.append(
                ResourceAvailability(
                    id=item.id,
                    name=item.name,
                    is_available=not conflicts,
                    conflicts=conflicts,
                )
            )

        analyst_rows = []
        for analyst in analysts:
            conflicts = find_conflicts(
                steps, interval, None, analyst.id, exclude_step_id
            )
            analyst_rows.append(
                ResourceAvailability(
                    id=analyst.id,
                    name=analyst.name,
                    is_available=not conflicts,
                    conflicts=conflicts,
                )
            )

        return AvailabilitySummary(
            interval=interval, equipment=equipment_rows, analysts=analyst_rows
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(
        self, draft: StepDraft, exclude_step_id: str | None = None
    ) -> Rejection | None:
        if not draft.interval.is_valid:
            logger.warning(
                "Rejected %s: empty or inverted interval", exclude_step_id or "new step"
            )
            return InvalidInterval(interval=draft.interval)

        missing = draft.missing_fields()
        if missing:
            logger.warning(
                "Rejected %s: missing %s",
                exclude_step_id or "new step",
                ", ".join(missing),
            )
            return IncompleteDraft(missing_fields=missing)

        conflicts = find_conflicts(
            self.store.list_all(),
            draft.interval,
            draft.equipment_id,
            draft.analyst_id,
            exclude_step_id=exclude_step_id,
        )
        if conflicts:
            self.bus.publish(
                ConflictDetected(
                    step_id=exclude_step_id,
                    conflicting_step_ids=[c.id for c in conflicts],
                )
            )
            return ConflictRejected(conflicts=conflicts)

        return None
