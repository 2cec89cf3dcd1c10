"""
SQLAlchemy models for the workflow engine.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowTemplateRecord(Base):
    __tablename__ = "workflow_templates"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text)
    definition = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Workflow(Base):
    __tablename__ = "workflows"
    __table_args__ = (
        # One active workflow per conversation thread.
        Index(
            "uq_workflows_active_thread",
            "thread_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    thread_id = Column(String(200), nullable=False, index=True)
    template_id = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    current_step_id = Column(String(36))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    steps = relationship(
        "WorkflowStep",
        order_by="WorkflowStep.order",
        lazy="selectin",
        passive_deletes=True,
    )


class WorkflowStep(Base):
    __tablename__ = "workflow_steps"

    id = Column(String(36), primary_key=True, default=_uuid)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    step_type = Column(String(32), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text)
    prompt = Column(Text)
    order = Column("step_order", Integer, nullable=False)
    dependencies = Column(JSONType, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="pending")
    user_input = Column(Text)
    ai_suggestion = Column(Text)
    config = Column(JSONType, nullable=False, default=dict)
    meta = Column("metadata", JSONType, nullable=False, default=dict)
    completion_prompt = Column(Text)
    completion_response = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Asset(Base):
    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=_uuid)
    thread_id = Column(String(200), nullable=False, index=True)
    workflow_id = Column(String(36), ForeignKey("workflows.id", ondelete="SET NULL"))
    step_id = Column(String(36))
    kind = Column(String(32), nullable=False)
    title = Column(Text)
    content = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class WorkflowHistoryEntry(Base):
    __tablename__ = "workflow_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    seq = Column(Integer, nullable=False, default=0)
    workflow_id = Column(String(36), nullable=False, index=True)
    step_id = Column(String(36))
    action = Column(String(32), nullable=False)
    previous_status = Column(String(20))
    new_status = Column(String(20))
    details = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class NotificationEvent(Base):
    __tablename__ = "notification_events"
    __table_args__ = (UniqueConstraint("thread_id", "idempotency_key", name="uq_notification_thread_key"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    thread_id = Column(String(200), nullable=False, index=True)
    idempotency_key = Column(String(200), nullable=False)
    kind = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    thread_id = Column(String(200), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="assistant")
    user_id = Column(String(100), default="system")
    content = Column(Text, nullable=False)
    meta = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
