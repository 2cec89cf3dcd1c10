from __future__ import annotations

import logging

from pressroom.models import Workflow
from pressroom.schemas.enums import HistoryAction, NotificationKind, StepStatus, WorkflowStatus
from pressroom.schemas.template import WorkflowTemplate
from pressroom.services.notification_service import NotificationService
from pressroom.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)


class WorkflowFactory:
    """Instantiates a template as a workflow on a thread."""

    def __init__(self, store: WorkflowStore, notifier: NotificationService) -> None:
        self.store = store
        self.notifier = notifier

    async def instantiate(self, thread_id: str, template: WorkflowTemplate) -> Workflow:
        rows = []
        for index, definition in enumerate(template.steps):
            first = index == 0
            rows.append(
                {
                    "step_type": definition.type,
                    "name": definition.name,
                    "description": definition.description,
                    "prompt": definition.prompt,
                    "order": definition.order,
                    "dependencies": list(definition.dependencies),
                    "status": StepStatus.IN_PROGRESS if first else StepStatus.PENDING,
                    "config": definition.config.model_dump(mode="json"),
                    "meta": {"initialPromptSent": bool(definition.prompt)} if first else {},
                }
            )

        workflow = await self.store.create_workflow(thread_id, template.id, rows)
        await self.store.append_history(
            workflow.id,
            HistoryAction.START,
            step_id=workflow.current_step_id,
            new_status=WorkflowStatus.ACTIVE,
            details={"template": template.name},
        )

        first_step = workflow.steps[0]
        if first_step.prompt:
            await self.notifier.add_direct_message(
                thread_id,
                first_step.prompt,
                kind=NotificationKind.PROMPT,
                idempotency_key=f"prompt:{first_step.id}",
            )
        logger.info("Started '%s' workflow %s on thread %s", template.name, workflow.id, thread_id)
        return workflow
