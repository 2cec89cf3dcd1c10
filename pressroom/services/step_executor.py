"""
Step executor: the workflow state machine.

A call to ``handle_step_response`` runs the handler for the current step,
then either keeps the step open (clarifying question or revision loop),
activates the next eligible step, or completes the workflow and hands it to
the TransitionManager. Store writes happen strictly in that order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from pressroom.core.exceptions import (
    ConcurrentStepUpdateError,
    DependencyUnmetError,
    InvariantViolationError,
    StepStateError,
    TemplateNotFoundError,
)
from pressroom.models import Workflow, WorkflowStep
from pressroom.schemas.enums import HistoryAction, NotificationKind, StepStatus, StepType, WorkflowStatus
from pressroom.schemas.template import load_step_config
from pressroom.services.dependency_resolver import all_complete, resolve_next_step, unmet_dependencies
from pressroom.services.notification_service import NotificationService
from pressroom.services.step_handlers import BaseStepHandler, StepContext, StepOutcome
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.transition_manager import TransitionManager
from pressroom.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    response: str
    next_step: WorkflowStep | None
    is_complete: bool
    workflow_id: str
    new_workflow_id: str | None = None


def _join(*parts: str | None) -> str:
    return "\n\n".join(part for part in parts if part)


class StepExecutor:
    def __init__(
        self,
        store: WorkflowStore,
        registry: TemplateRegistry,
        handlers: dict[StepType, BaseStepHandler],
        notifier: NotificationService,
        transitions: TransitionManager,
        max_chain_depth: int = 5,
    ) -> None:
        self.store = store
        self.registry = registry
        self.handlers = handlers
        self.notifier = notifier
        self.transitions = transitions
        self.max_chain_depth = max_chain_depth

    async def handle_step_response(self, step_id: str, user_input: str) -> StepResult:
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)

        if (
            workflow.status == WorkflowStatus.COMPLETED.value
            or step.status == StepStatus.COMPLETE.value
            or workflow.current_step_id != step.id
        ):
            logger.info(
                "Ignoring response for step %s: not the current step of workflow %s (status=%s)",
                step_id,
                workflow.id,
                step.status,
            )
            return await self._current_state(workflow)

        return await self._run(workflow, step, user_input or "", depth=0)

    async def _current_state(self, workflow: Workflow) -> StepResult:
        if workflow.status == WorkflowStatus.COMPLETED.value or not workflow.current_step_id:
            return StepResult(
                response="This workflow is already complete.",
                next_step=None,
                is_complete=workflow.status == WorkflowStatus.COMPLETED.value,
                workflow_id=workflow.id,
            )
        current = await self.store.require_step(workflow.current_step_id)
        return StepResult(response=current.prompt or "", next_step=current, is_complete=False, workflow_id=workflow.id)

    async def _run(self, workflow: Workflow, step: WorkflowStep, user_input: str, depth: int) -> StepResult:
        steps = await self.store.list_steps(workflow.id)
        # Handlers write side effects, so confirm against a fresh read that the step is still current.
        fresh = await self.store.require_workflow(workflow.id)
        if fresh.status != WorkflowStatus.ACTIVE.value or fresh.current_step_id != step.id:
            logger.warning(
                "Step '%s' (%s) stopped being current in workflow %s before it ran; returning current state",
                step.name,
                step.id,
                workflow.id,
            )
            return await self._current_state(fresh)
        ctx = StepContext(
            workflow=workflow,
            step=step,
            steps=steps,
            config=load_step_config(step.config),
            user_input=user_input,
        )
        handler = self.handlers[StepType(step.step_type)]
        outcome = await handler.handle(ctx)

        if not outcome.completed:
            refreshed = await self.store.require_step(step.id)
            return StepResult(
                response=outcome.response,
                next_step=refreshed,
                is_complete=False,
                workflow_id=workflow.id,
            )
        return await self._advance(workflow, step, outcome, depth)

    async def _advance(self, workflow: Workflow, completed: WorkflowStep, outcome: StepOutcome, depth: int) -> StepResult:
        steps = await self.store.list_steps(workflow.id)
        next_step = resolve_next_step(steps, preferred=outcome.suggested_next_step)

        if next_step is None:
            if all_complete(steps):
                return await self._complete_workflow(workflow, completed, outcome)
            stuck = [f"{s.name} ({s.status})" for s in steps if s.status != StepStatus.COMPLETE.value]
            logger.error("Workflow %s has no eligible step but is incomplete: %s", workflow.id, ", ".join(stuck))
            raise InvariantViolationError(
                f"Workflow {workflow.id} has no eligible next step but these steps are incomplete: {', '.join(stuck)}"
            )

        activated = await self._activate(workflow, completed.id, next_step, steps)

        if self._auto_executes(activated):
            if depth + 1 > self.max_chain_depth:
                logger.warning(
                    "Auto-execution chain limit (%s) reached in workflow %s; '%s' waits for the next call",
                    self.max_chain_depth,
                    workflow.id,
                    activated.name,
                )
                return StepResult(
                    response=outcome.response,
                    next_step=activated,
                    is_complete=False,
                    workflow_id=workflow.id,
                )
            chained = await self._run(workflow, activated, "", depth + 1)
            chained.response = _join(outcome.response, chained.response)
            return chained

        return StepResult(
            response=_join(outcome.response, activated.prompt),
            next_step=activated,
            is_complete=False,
            workflow_id=workflow.id,
        )

    def _auto_executes(self, step: WorkflowStep) -> bool:
        if step.step_type not in (StepType.API_CALL.value, StepType.ASSET_CREATION.value):
            return False
        return bool((step.config or {}).get("auto_execute", True))

    async def _activate(
        self,
        workflow: Workflow,
        expected_current: str | None,
        step: WorkflowStep,
        steps: list[WorkflowStep],
        forced: bool = False,
    ) -> WorkflowStep:
        unmet = unmet_dependencies(step, steps)
        if unmet:
            raise DependencyUnmetError(step.name, unmet)
        if not await self.store.compare_and_set_current_step(workflow.id, expected_current, step.id):
            raise ConcurrentStepUpdateError(f"Workflow {workflow.id} moved on before step '{step.name}' could start")

        await self.store.update_step(step.id, status=StepStatus.IN_PROGRESS)
        await self.store.append_history(
            workflow.id,
            HistoryAction.ACTIVATE_STEP,
            step_id=step.id,
            previous_status=step.status,
            new_status=StepStatus.IN_PROGRESS,
            details={"forced": True} if forced else None,
        )
        if step.prompt and not self._auto_executes(step):
            await self.notifier.add_direct_message(
                workflow.thread_id,
                step.prompt,
                kind=NotificationKind.PROMPT,
                idempotency_key=f"prompt:{step.id}",
            )
            await self.store.merge_step_meta(step.id, {"initialPromptSent": True})
        logger.info("Activated step '%s' (%s) in workflow %s", step.name, step.id, workflow.id)
        return await self.store.require_step(step.id)

    async def _complete_workflow(self, workflow: Workflow, last: WorkflowStep, outcome: StepOutcome) -> StepResult:
        if not await self.store.compare_and_set_current_step(workflow.id, last.id, None):
            raise ConcurrentStepUpdateError(f"Workflow {workflow.id} changed before it could complete")
        await self.store.update_workflow_status(workflow.id, WorkflowStatus.COMPLETED)
        await self.store.append_history(
            workflow.id,
            HistoryAction.COMPLETE,
            previous_status=WorkflowStatus.ACTIVE,
            new_status=WorkflowStatus.COMPLETED,
        )
        name = self._template_name(workflow.template_id)
        await self.notifier.add_direct_message(
            workflow.thread_id,
            f"{name} completed.",
            kind=NotificationKind.STATUS,
            idempotency_key=f"complete:{workflow.id}",
        )
        logger.info("Workflow %s (%s) completed", workflow.id, name)

        completed = await self.store.require_workflow(workflow.id)
        transition = await self.transitions.on_workflow_completed(completed)
        if transition is None:
            return StepResult(
                response=outcome.response or f"{name} is complete.",
                next_step=None,
                is_complete=True,
                workflow_id=workflow.id,
            )
        return StepResult(
            response=_join(outcome.response, transition.response),
            next_step=transition.first_step,
            is_complete=True,
            workflow_id=workflow.id,
            new_workflow_id=transition.workflow.id if transition.workflow else None,
        )

    def _template_name(self, template_id: str) -> str:
        try:
            return self.registry.get_by_id(template_id).name
        except TemplateNotFoundError:
            return "Workflow"

    async def activate_step(self, step_id: str) -> WorkflowStep:
        """Force a pending step to become the current step."""
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)
        if workflow.status == WorkflowStatus.COMPLETED.value:
            raise StepStateError(f"Workflow {workflow.id} is completed")
        if workflow.current_step_id == step.id and step.status == StepStatus.IN_PROGRESS.value:
            return step
        if step.status == StepStatus.COMPLETE.value:
            raise StepStateError(f"Step '{step.name}' is already complete; roll it back instead")

        steps = await self.store.list_steps(workflow.id)
        unmet = unmet_dependencies(step, steps)
        if unmet:
            raise DependencyUnmetError(step.name, unmet)

        previous_id = workflow.current_step_id
        activated = await self._activate(workflow, previous_id, step, steps, forced=True)
        if previous_id and previous_id != step.id:
            await self._demote(workflow, previous_id)
        return activated

    async def rollback_step(self, step_id: str) -> WorkflowStep:
        """Reopen a completed step; every step depending on it returns to pending."""
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)
        if workflow.status == WorkflowStatus.COMPLETED.value:
            raise StepStateError(f"Workflow {workflow.id} is completed and cannot be rolled back")
        if step.status != StepStatus.COMPLETE.value:
            raise StepStateError(f"Step '{step.name}' is not complete")

        steps = await self.store.list_steps(workflow.id)
        dependents = _dependents_of(step.name, steps)
        for dependent in steps:
            if dependent.name in dependents and dependent.status != StepStatus.PENDING.value:
                await self.store.update_step(dependent.id, status=StepStatus.PENDING)
                await self.store.merge_step_meta(dependent.id, {"skipped": False})
                await self.store.append_history(
                    workflow.id,
                    HistoryAction.ROLLBACK_STEP,
                    step_id=dependent.id,
                    previous_status=dependent.status,
                    new_status=StepStatus.PENDING,
                    details={"cause": step.name},
                )

        previous_id = workflow.current_step_id
        if not await self.store.compare_and_set_current_step(workflow.id, previous_id, step.id):
            raise ConcurrentStepUpdateError(f"Workflow {workflow.id} moved on during rollback")
        if previous_id and previous_id != step.id:
            previous = next((s for s in steps if s.id == previous_id), None)
            if previous is not None and previous.name not in dependents:
                await self._demote(workflow, previous_id)

        meta = await self.store.merge_step_meta(
            step.id,
            {"skipped": False, "rollbackCount": int((step.meta or {}).get("rollbackCount", 0)) + 1},
        )
        await self.store.update_step(step.id, status=StepStatus.IN_PROGRESS)
        await self.store.append_history(
            workflow.id,
            HistoryAction.ROLLBACK_STEP,
            step_id=step.id,
            previous_status=StepStatus.COMPLETE,
            new_status=StepStatus.IN_PROGRESS,
        )
        if step.prompt:
            await self.notifier.add_direct_message(
                workflow.thread_id,
                step.prompt,
                kind=NotificationKind.PROMPT,
                idempotency_key=f"prompt:{step.id}:rollback:{meta['rollbackCount']}",
            )
        logger.info("Rolled back step '%s' in workflow %s (%s dependents reset)", step.name, workflow.id, len(dependents))
        return await self.store.require_step(step.id)

    async def _demote(self, workflow: Workflow, step_id: str) -> None:
        previous = await self.store.require_step(step_id)
        if previous.status != StepStatus.IN_PROGRESS.value:
            return
        await self.store.update_step(step_id, status=StepStatus.PENDING)
        await self.store.append_history(
            workflow.id,
            HistoryAction.ACTIVATE_STEP,
            step_id=step_id,
            previous_status=StepStatus.IN_PROGRESS,
            new_status=StepStatus.PENDING,
            details={"demoted": True},
        )


def _dependents_of(name: str, steps: list[WorkflowStep]) -> set[str]:
    found: set[str] = set()
    frontier = [name]
    while frontier:
        current = frontier.pop()
        for step in steps:
            if current in (step.dependencies or []) and step.name not in found:
                found.add(step.name)
                frontier.append(step.name)
    return found
