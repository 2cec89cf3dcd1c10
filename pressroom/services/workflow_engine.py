from __future__ import annotations

import logging

from pressroom.config import Settings
from pressroom.core.completion_client import CompletionClient
from pressroom.models import Workflow, WorkflowHistoryEntry, WorkflowStep
from pressroom.schemas.template import WorkflowTemplate
from pressroom.services.asset_generator import AssetGenerator
from pressroom.services.dialog_protocol import DialogProtocolAdapter
from pressroom.services.notification_service import Broadcaster, NotificationService
from pressroom.services.step_executor import StepExecutor, StepResult
from pressroom.services.step_handlers import HandlerServices, build_handler_table
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.thread_locks import ThreadLockRegistry
from pressroom.services.transition_manager import TransitionManager
from pressroom.services.workflow_factory import WorkflowFactory
from pressroom.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Public entry point; serializes every state change per conversation thread."""

    def __init__(
        self,
        store: WorkflowStore,
        registry: TemplateRegistry,
        executor: StepExecutor,
        factory: WorkflowFactory,
        notifier: NotificationService,
        locks: ThreadLockRegistry | None = None,
        entry_template_name: str = "Base Workflow",
    ) -> None:
        self.store = store
        self.registry = registry
        self.executor = executor
        self.factory = factory
        self.notifier = notifier
        self.locks = locks or ThreadLockRegistry()
        self.entry_template_name = entry_template_name

    async def create_workflow(self, thread_id: str, template_id: str) -> Workflow:
        template = self.registry.get(template_id)
        async with self.locks.hold(thread_id):
            return await self.factory.instantiate(thread_id, template)

    async def start_base_workflow(self, thread_id: str) -> Workflow:
        return await self.create_workflow(thread_id, self.entry_template_name)

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        return await self.store.get_workflow(workflow_id)

    async def get_workflow_by_thread_id(self, thread_id: str) -> Workflow | None:
        """The thread's active workflow, else its most recent one."""
        active = await self.store.get_active_by_thread_id(thread_id)
        if active is not None:
            return active
        workflows = await self.store.list_by_thread_id(thread_id)
        return workflows[0] if workflows else None

    async def handle_step_response(self, step_id: str, user_input: str) -> StepResult:
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)
        async with self.locks.hold(workflow.thread_id):
            return await self.executor.handle_step_response(step_id, user_input)

    async def activate_step(self, step_id: str) -> WorkflowStep:
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)
        async with self.locks.hold(workflow.thread_id):
            return await self.executor.activate_step(step_id)

    async def rollback_step(self, step_id: str) -> WorkflowStep:
        step = await self.store.require_step(step_id)
        workflow = await self.store.require_workflow(step.workflow_id)
        async with self.locks.hold(workflow.thread_id):
            return await self.executor.rollback_step(step_id)

    async def delete_workflow(self, workflow_id: str) -> None:
        workflow = await self.store.require_workflow(workflow_id)
        async with self.locks.hold(workflow.thread_id):
            await self.store.delete_workflow(workflow_id)

    async def get_history(self, workflow_id: str) -> list[WorkflowHistoryEntry]:
        await self.store.require_workflow(workflow_id)
        return await self.store.list_history(workflow_id)

    def list_templates(self) -> list[WorkflowTemplate]:
        return self.registry.templates()


def build_workflow_engine(
    settings: Settings,
    store: WorkflowStore,
    completion: CompletionClient,
    registry: TemplateRegistry | None = None,
    broadcaster: Broadcaster | None = None,
) -> WorkflowEngine:
    """Wire the engine graph from explicit collaborators."""
    registry = registry or TemplateRegistry.with_builtin_templates()
    notifier = NotificationService(store, broadcaster)
    services = HandlerServices(
        store=store,
        dialog=DialogProtocolAdapter(completion, timeout_seconds=settings.completion_timeout_seconds),
        generator=AssetGenerator(completion, timeout_seconds=settings.completion_timeout_seconds),
        notifier=notifier,
        completion=completion,
        timeout_seconds=settings.completion_timeout_seconds,
    )
    factory = WorkflowFactory(store, notifier)
    transitions = TransitionManager(store, registry, factory)
    executor = StepExecutor(
        store,
        registry,
        build_handler_table(services),
        notifier,
        transitions,
        max_chain_depth=settings.max_auto_chain_depth,
    )
    logger.info("Workflow engine ready with templates: %s", ", ".join(registry.names()))
    return WorkflowEngine(
        store,
        registry,
        executor,
        factory,
        notifier,
        entry_template_name=settings.entry_template_name,
    )
