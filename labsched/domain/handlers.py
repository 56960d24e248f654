"""Domain event handlers: wired up at application startup."""

from __future__ import annotations

from labsched.domain.bus import EventBus
from labsched.domain.events import (
    ConflictDetected,
    StepCreated,
    StepDeleted,
    StepStatusChanged,
    StepUpdated,
)
from labsched.domain.models import TimelineEntry, TimelineEntryType
from labsched.repos.memory import StepStore, TimelineRepository
from labsched.utils.logger import get_logger

logger = get_logger(__name__)


class HandlerRegistry:
    """Wires step-lifecycle handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        step_store: StepStore,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.step_store = step_store
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(StepCreated, self.on_step_created)
        self.bus.subscribe(StepUpdated, self.on_step_updated)
        self.bus.subscribe(StepStatusChanged, self.on_status_changed)
        self.bus.subscribe(StepDeleted, self.on_step_deleted)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_step_created(self, event: StepCreated) -> None:
        stored = self.step_store.get(event.step_id)
        if stored is None:
            return

        logger.info(
            "Scheduled %s '%s' on %s with %s",
            stored.id,
            stored.step_name,
            stored.equipment_id,
            stored.analyst_id,
        )
        self.timeline_repo.add(
            TimelineEntry(
                step_id=event.step_id,
                type=TimelineEntryType.CREATED,
                payload={
                    "start": stored.interval.start.isoformat(),
                    "end": stored.interval.end.isoformat(),
                    "equipment_id": stored.equipment_id,
                    "analyst_id": stored.analyst_id,
                },
            )
        )

    def on_step_updated(self, event: StepUpdated) -> None:
        logger.info("Updated %s: %s", event.step_id, ", ".join(event.changed_fields))
        self.timeline_repo.add(
            TimelineEntry(
                step_id=event.step_id,
                type=TimelineEntryType.UPDATED,
                payload={"changed_fields": event.changed_fields},
            )
        )

    def on_status_changed(self, event: StepStatusChanged) -> None:
        logger.info(
            "Status of %s: %s -> %s", event.step_id, event.old_status, event.new_status
        )
        self.timeline_repo.add(
            TimelineEntry(
                step_id=event.step_id,
                type=TimelineEntryType.STATUS_CHANGED,
                payload={"from": event.old_status, "to": event.new_status},
            )
        )

    def on_step_deleted(self, event: StepDeleted) -> None:
        logger.info("Deleted %s", event.step_id)
        self.timeline_repo.add(
            TimelineEntry(step_id=event.step_id, type=TimelineEntryType.DELETED)
        )

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        logger.warning(
            "Rejected %s: conflicts with %s",
            event.step_id or "new step",
            ", ".join(event.conflicting_step_ids),
        )
        # A rejected create has no step to attach history to
        if event.step_id is None:
            return
        self.timeline_repo.add(
            TimelineEntry(
                step_id=event.step_id,
                type=TimelineEntryType.CONFLICT_DETECTED,
                payload={"conflicting_step_ids": event.conflicting_step_ids},
            )
        )
