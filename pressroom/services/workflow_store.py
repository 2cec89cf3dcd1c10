"""
Durable storage for workflows, steps and the records hanging off them.

Every write is a column-level UPDATE/INSERT issued in its own short
transaction. Rows are never replaced wholesale, so a status change and a
concurrent metadata write on the same step do not overwrite each other.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from pressroom.core.exceptions import ActiveWorkflowExistsError, StepNotFoundError, WorkflowNotFoundError
from pressroom.models import (
    Asset,
    ChatMessage,
    NotificationEvent,
    Workflow,
    WorkflowHistoryEntry,
    WorkflowStep,
    WorkflowTemplateRecord,
)
from pressroom.schemas.enums import WorkflowStatus

logger = logging.getLogger(__name__)

STEP_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "user_input",
        "ai_suggestion",
        "prompt",
        "meta",
        "completion_prompt",
        "completion_response",
    }
)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------
    async def create_workflow(
        self,
        thread_id: str,
        template_id: str,
        steps: Iterable[dict[str, Any]] = (),
    ) -> Workflow:
        """Insert a workflow and its steps in one transaction.

        The first step in ``steps`` becomes the current step and must already
        carry ``status=in_progress``.
        """
        with self.session_factory() as db:
            active = db.execute(
                select(Workflow.id).where(
                    Workflow.thread_id == thread_id,
                    Workflow.status == WorkflowStatus.ACTIVE.value,
                )
            ).scalar_one_or_none()
            if active:
                raise ActiveWorkflowExistsError(thread_id, active)

            workflow = Workflow(
                thread_id=thread_id,
                template_id=template_id,
                status=WorkflowStatus.ACTIVE.value,
            )
            db.add(workflow)
            db.flush()

            first_step_id: str | None = None
            for fields in steps:
                step = WorkflowStep(workflow_id=workflow.id, **{k: _plain(v) for k, v in fields.items()})
                db.add(step)
                db.flush()
                if first_step_id is None:
                    first_step_id = step.id
            workflow.current_step_id = first_step_id

            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ActiveWorkflowExistsError(thread_id, "unknown") from exc
            workflow_id = workflow.id

        logger.info("Created workflow %s for thread %s (template %s)", workflow_id, thread_id, template_id)
        return await self.require_workflow(workflow_id)

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        with self.session_factory() as db:
            return db.get(Workflow, workflow_id)

    async def require_workflow(self, workflow_id: str) -> Workflow:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def list_by_thread_id(self, thread_id: str) -> list[Workflow]:
        with self.session_factory() as db:
            rows = db.execute(
                select(Workflow).where(Workflow.thread_id == thread_id).order_by(Workflow.created_at.desc())
            ).scalars()
            return list(rows)

    async def get_active_by_thread_id(self, thread_id: str) -> Workflow | None:
        with self.session_factory() as db:
            return db.execute(
                select(Workflow).where(
                    Workflow.thread_id == thread_id,
                    Workflow.status == WorkflowStatus.ACTIVE.value,
                )
            ).scalar_one_or_none()

    async def update_workflow_status(self, workflow_id: str, status: WorkflowStatus) -> None:
        self._update_workflow(workflow_id, status=_plain(status))

    async def update_workflow_current_step(self, workflow_id: str, step_id: str | None) -> None:
        self._update_workflow(workflow_id, current_step_id=step_id)

    async def compare_and_set_current_step(
        self,
        workflow_id: str,
        expected_step_id: str | None,
        new_step_id: str | None,
    ) -> bool:
        """Move the current step only if nobody else moved it first."""
        with self.session_factory() as db:
            current = (
                Workflow.current_step_id.is_(None)
                if expected_step_id is None
                else Workflow.current_step_id == expected_step_id
            )
            result = db.execute(
                update(Workflow)
                .where(
                    Workflow.id == workflow_id,
                    Workflow.status == WorkflowStatus.ACTIVE.value,
                    current,
                )
                .values(current_step_id=new_step_id, updated_at=_now())
            )
            db.commit()
            return result.rowcount == 1

    async def delete_workflow(self, workflow_id: str) -> None:
        with self.session_factory() as db:
            exists = db.get(Workflow, workflow_id)
            if exists is None:
                raise WorkflowNotFoundError(workflow_id)
            db.execute(delete(WorkflowStep).where(WorkflowStep.workflow_id == workflow_id))
            db.execute(delete(Workflow).where(Workflow.id == workflow_id))
            db.commit()
        logger.info("Deleted workflow %s and its steps", workflow_id)

    def _update_workflow(self, workflow_id: str, **fields: Any) -> None:
        with self.session_factory() as db:
            result = db.execute(
                update(Workflow).where(Workflow.id == workflow_id).values(updated_at=_now(), **fields)
            )
            db.commit()
            if result.rowcount == 0:
                raise WorkflowNotFoundError(workflow_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    async def create_step(self, workflow_id: str, **fields: Any) -> WorkflowStep:
        with self.session_factory() as db:
            if db.get(Workflow, workflow_id) is None:
                raise WorkflowNotFoundError(workflow_id)
            step = WorkflowStep(workflow_id=workflow_id, **{k: _plain(v) for k, v in fields.items()})
            db.add(step)
            db.commit()
            return step

    async def get_step(self, step_id: str) -> WorkflowStep | None:
        with self.session_factory() as db:
            return db.get(WorkflowStep, step_id)

    async def require_step(self, step_id: str) -> WorkflowStep:
        step = await self.get_step(step_id)
        if step is None:
            raise StepNotFoundError(step_id)
        return step

    async def list_steps(self, workflow_id: str) -> list[WorkflowStep]:
        with self.session_factory() as db:
            rows = db.execute(
                select(WorkflowStep).where(WorkflowStep.workflow_id == workflow_id).order_by(WorkflowStep.order)
            ).scalars()
            return list(rows)

    async def update_step(self, step_id: str, **fields: Any) -> None:
        unknown = set(fields) - STEP_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update step fields: {', '.join(sorted(unknown))}")
        with self.session_factory() as db:
            result = db.execute(
                update(WorkflowStep)
                .where(WorkflowStep.id == step_id)
                .values(updated_at=_now(), **{k: _plain(v) for k, v in fields.items()})
            )
            db.commit()
            if result.rowcount == 0:
                raise StepNotFoundError(step_id)

    async def merge_step_meta(self, step_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Merge ``patch`` into the step's metadata inside a single transaction."""
        with self.session_factory() as db:
            current = db.execute(
                select(WorkflowStep.meta).where(WorkflowStep.id == step_id).with_for_update()
            ).scalar_one_or_none()
            if current is None:
                if db.get(WorkflowStep, step_id) is None:
                    raise StepNotFoundError(step_id)
                current = {}
            merged = {**current, **patch}
            db.execute(update(WorkflowStep).where(WorkflowStep.id == step_id).values(meta=merged, updated_at=_now()))
            db.commit()
            return merged

    async def delete_step(self, step_id: str) -> None:
        with self.session_factory() as db:
            result = db.execute(delete(WorkflowStep).where(WorkflowStep.id == step_id))
            db.commit()
            if result.rowcount == 0:
                raise StepNotFoundError(step_id)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------
    async def create_asset(
        self,
        *,
        thread_id: str,
        workflow_id: str,
        step_id: str,
        kind: str,
        content: str,
        title: str | None = None,
    ) -> Asset:
        with self.session_factory() as db:
            latest = db.execute(
                select(func.max(Asset.version)).where(Asset.step_id == step_id)
            ).scalar_one_or_none()
            asset = Asset(
                thread_id=thread_id,
                workflow_id=workflow_id,
                step_id=step_id,
                kind=_plain(kind),
                title=title,
                content=content,
                version=(latest or 0) + 1,
            )
            db.add(asset)
            db.commit()
            return asset

    async def latest_asset(self, step_id: str) -> Asset | None:
        with self.session_factory() as db:
            return db.execute(
                select(Asset).where(Asset.step_id == step_id).order_by(Asset.version.desc()).limit(1)
            ).scalar_one_or_none()

    async def list_assets(self, workflow_id: str) -> list[Asset]:
        with self.session_factory() as db:
            rows = db.execute(
                select(Asset).where(Asset.workflow_id == workflow_id).order_by(Asset.created_at, Asset.version)
            ).scalars()
            return list(rows)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    async def append_history(
        self,
        workflow_id: str,
        action: Any,
        *,
        step_id: str | None = None,
        previous_status: Any = None,
        new_status: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        with self.session_factory() as db:
            seq = db.execute(
                select(func.count()).select_from(WorkflowHistoryEntry).where(
                    WorkflowHistoryEntry.workflow_id == workflow_id
                )
            ).scalar_one()
            db.add(
                WorkflowHistoryEntry(
                    seq=seq + 1,
                    workflow_id=workflow_id,
                    step_id=step_id,
                    action=_plain(action),
                    previous_status=_plain(previous_status),
                    new_status=_plain(new_status),
                    details=details or {},
                )
            )
            db.commit()

    async def list_history(self, workflow_id: str) -> list[WorkflowHistoryEntry]:
        with self.session_factory() as db:
            rows = db.execute(
                select(WorkflowHistoryEntry)
                .where(WorkflowHistoryEntry.workflow_id == workflow_id)
                .order_by(WorkflowHistoryEntry.seq)
            ).scalars()
            return list(rows)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    async def save_template(self, template_id: str, name: str, description: str, definition: dict[str, Any]) -> None:
        with self.session_factory() as db:
            row = db.get(WorkflowTemplateRecord, template_id)
            if row is None:
                db.add(
                    WorkflowTemplateRecord(
                        id=template_id,
                        name=name,
                        description=description,
                        definition=definition,
                    )
                )
            else:
                db.execute(
                    update(WorkflowTemplateRecord)
                    .where(WorkflowTemplateRecord.id == template_id)
                    .values(name=name, description=description, definition=definition, updated_at=_now())
                )
            db.commit()

    async def list_templates(self) -> list[WorkflowTemplateRecord]:
        with self.session_factory() as db:
            return list(db.execute(select(WorkflowTemplateRecord).order_by(WorkflowTemplateRecord.name)).scalars())

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    async def record_direct_message(
        self,
        thread_id: str,
        idempotency_key: str,
        kind: Any,
        content: str,
        *,
        role: str = "assistant",
        meta: dict[str, Any] | None = None,
    ) -> ChatMessage | None:
        """Append the event-log row and the chat message in one transaction.

        Returns None when the key is already in the thread's event log; in
        that case neither row is written.
        """
        with self.session_factory() as db:
            db.add(NotificationEvent(thread_id=thread_id, idempotency_key=idempotency_key, kind=_plain(kind)))
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                return None
            message = ChatMessage(thread_id=thread_id, content=content, role=role, meta=meta or {})
            db.add(message)
            db.commit()
            return message

    async def list_chat_messages(self, thread_id: str) -> list[ChatMessage]:
        with self.session_factory() as db:
            rows = db.execute(
                select(ChatMessage).where(ChatMessage.thread_id == thread_id).order_by(ChatMessage.created_at)
            ).scalars()
            return list(rows)
