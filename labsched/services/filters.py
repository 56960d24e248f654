"""Calendar filter-panel semantics over a list of steps."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from labsched.domain.models import StepStatus, TestStep


class StepFilter(BaseModel):
    """Blank or empty criteria match every step."""

    sample_id: str = ""
    aliquot_id: str = ""
    statuses: list[StepStatus] = Field(default_factory=list)
    equipment_ids: list[str] = Field(default_factory=list)
    analyst_ids: list[str] = Field(default_factory=list)

    def matches(self, step: TestStep) -> bool:
        if self.sample_id and step.sample_id != self.sample_id:
            return False
        if self.aliquot_id and step.aliquot_id != self.aliquot_id:
            return False
        if self.statuses and step.status not in self.statuses:
            return False
        if self.equipment_ids and step.equipment_id not in self.equipment_ids:
            return False
        if self.analyst_ids and step.analyst_id not in self.analyst_ids:
            return False
        return True


def filter_steps(steps: Iterable[TestStep], step_filter: StepFilter) -> list[TestStep]:
    return [step for step in steps if step_filter.matches(step)]
