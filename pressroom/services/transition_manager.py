"""
Workflow-to-workflow transitions.

An entry template exists only to ask the user what they want to do. When a
workflow built from it completes, the recorded selection is resolved to
another registered template and a workflow for it is started on the same
thread.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pressroom.core.exceptions import TemplateNotFoundError
from pressroom.models import Workflow, WorkflowStep
from pressroom.schemas.enums import HistoryAction
from pressroom.services.matching import match_name
from pressroom.services.step_handlers import step_value
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.workflow_factory import WorkflowFactory
from pressroom.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    resolved: bool
    response: str
    workflow: Workflow | None = None
    first_step: WorkflowStep | None = None
    available: list[str] = field(default_factory=list)
    cancelled: bool = False


class TransitionManager:
    def __init__(self, store: WorkflowStore, registry: TemplateRegistry, factory: WorkflowFactory) -> None:
        self.store = store
        self.registry = registry
        self.factory = factory

    async def on_workflow_completed(self, workflow: Workflow) -> TransitionResult | None:
        """Start the selected workflow; None when ``workflow`` is not an entry workflow."""
        try:
            template = self.registry.get_by_id(workflow.template_id)
        except TemplateNotFoundError:
            logger.warning("Completed workflow %s uses unknown template %s", workflow.id, workflow.template_id)
            return None
        if template.transition is None:
            return None

        config = template.transition
        steps = await self.store.list_steps(workflow.id)
        selection_step = next((step for step in steps if step.name == config.selection_step), None)
        selection = step_value(selection_step, config.selection_field)
        available = [name for name in self.registry.names() if name != template.name]

        if selection and selection.strip().casefold() == config.cancel_value.casefold():
            await self.store.append_history(
                workflow.id,
                HistoryAction.TRANSITION,
                details={"selection": selection, "cancelled": True},
            )
            logger.info("Thread %s cancelled workflow selection", workflow.thread_id)
            return TransitionResult(
                resolved=False,
                cancelled=True,
                available=available,
                response="No problem, I've cancelled that. Just let me know when you'd like to start something.",
            )

        target = match_name(selection, available)
        if target is None:
            await self.store.append_history(
                workflow.id,
                HistoryAction.TRANSITION,
                details={"selection": selection, "resolved": False},
            )
            logger.warning("Selection %r on thread %s matched no template", selection, workflow.thread_id)
            options = "\n".join(f"- {name}" for name in available)
            return TransitionResult(
                resolved=False,
                available=available,
                response=f'I couldn\'t find a workflow matching "{selection or ""}". Available workflows:\n{options}',
            )

        successor = await self.factory.instantiate(workflow.thread_id, self.registry.get_by_name(target))
        first_step = successor.steps[0] if successor.steps else None
        await self.store.append_history(
            workflow.id,
            HistoryAction.TRANSITION,
            details={"selection": selection, "target": target, "newWorkflowId": successor.id},
        )
        logger.info("Thread %s transitioned from %s to '%s' (%s)", workflow.thread_id, workflow.id, target, successor.id)
        return TransitionResult(
            resolved=True,
            workflow=successor,
            first_step=first_step,
            available=available,
            response=(first_step.prompt if first_step and first_step.prompt else f"Starting {target}."),
        )
