from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pressroom.schemas.enums import StepStatus, StepType, WorkflowStatus


class WorkflowStepSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    step_type: StepType
    name: str
    description: str | None = None
    prompt: str | None = None
    order: int
    dependencies: list[str] = Field(default_factory=list)
    status: StepStatus
    user_input: str | None = None
    ai_suggestion: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class WorkflowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    thread_id: str
    template_id: str
    status: WorkflowStatus
    current_step_id: str | None = None
    steps: list[WorkflowStepSchema] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WorkflowCreateRequest(BaseModel):
    thread_id: str = Field(min_length=1, max_length=200)
    template_id: str = Field(min_length=1, max_length=200)


class StepResponseRequest(BaseModel):
    user_input: str = Field(default="", max_length=20000)


class StepResultSchema(BaseModel):
    response: str
    next_step: WorkflowStepSchema | None = None
    is_complete: bool
    workflow_id: str
    new_workflow_id: str | None = None


class HistoryEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str
    step_id: str | None = None
    action: str
    previous_status: str | None = None
    new_status: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class TemplateSummarySchema(BaseModel):
    id: str
    name: str
    description: str
    step_names: list[str]
    is_entry: bool
