"""
Dependency resolution over a workflow's steps.

Steps reference their dependencies by name. A pending step becomes eligible
once every dependency is complete; among eligible steps the lowest ``order``
wins.
"""
from __future__ import annotations

from typing import Sequence

from pressroom.models import WorkflowStep
from pressroom.schemas.enums import StepStatus


def _status_by_name(steps: Sequence[WorkflowStep]) -> dict[str, str]:
    return {step.name: step.status for step in steps}


def unmet_dependencies(step: WorkflowStep, steps: Sequence[WorkflowStep]) -> list[str]:
    statuses = _status_by_name(steps)
    return [dep for dep in (step.dependencies or []) if statuses.get(dep) != StepStatus.COMPLETE.value]


def dependencies_met(step: WorkflowStep, steps: Sequence[WorkflowStep]) -> bool:
    return not unmet_dependencies(step, steps)


def all_complete(steps: Sequence[WorkflowStep]) -> bool:
    return all(step.status == StepStatus.COMPLETE.value for step in steps)


def resolve_next_step(
    steps: Sequence[WorkflowStep],
    preferred: str | None = None,
) -> WorkflowStep | None:
    """Return the next step to activate, or None when nothing is eligible.

    ``preferred`` names a step suggested by the dialog; it is honoured only when
    that step is pending and its dependencies are complete.
    """
    pending = sorted(
        (step for step in steps if step.status == StepStatus.PENDING.value),
        key=lambda step: step.order,
    )
    eligible = [step for step in pending if dependencies_met(step, steps)]
    if not eligible:
        return None
    if preferred:
        for step in eligible:
            if step.name == preferred:
                return step
    return eligible[0]
