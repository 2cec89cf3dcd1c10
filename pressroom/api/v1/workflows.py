from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from pressroom.api.dependencies import get_engine
from pressroom.schemas.workflow import HistoryEntrySchema, WorkflowCreateRequest, WorkflowSchema
from pressroom.services.workflow_engine import WorkflowEngine

router = APIRouter()


@router.post("", response_model=WorkflowSchema, status_code=status.HTTP_201_CREATED)
async def post_workflow(payload: WorkflowCreateRequest, engine: WorkflowEngine = Depends(get_engine)):
    workflow = await engine.create_workflow(payload.thread_id, payload.template_id)
    return WorkflowSchema.model_validate(workflow)


@router.get("/{workflow_id}", response_model=WorkflowSchema)
async def workflow_detail(workflow_id: str, engine: WorkflowEngine = Depends(get_engine)):
    workflow = await engine.get_workflow(workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return WorkflowSchema.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def workflow_delete(workflow_id: str, engine: WorkflowEngine = Depends(get_engine)):
    await engine.delete_workflow(workflow_id)


@router.get("/{workflow_id}/history", response_model=list[HistoryEntrySchema])
async def workflow_history(workflow_id: str, engine: WorkflowEngine = Depends(get_engine)):
    entries = await engine.get_history(workflow_id)
    return [HistoryEntrySchema.model_validate(entry) for entry in entries]
