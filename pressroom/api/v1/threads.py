from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from pressroom.api.dependencies import get_engine
from pressroom.schemas.workflow import WorkflowSchema
from pressroom.services.workflow_engine import WorkflowEngine

router = APIRouter()


@router.get("/{thread_id}/workflow", response_model=WorkflowSchema)
async def thread_workflow(thread_id: str, engine: WorkflowEngine = Depends(get_engine)):
    workflow = await engine.get_workflow_by_thread_id(thread_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="No workflow for this thread")
    return WorkflowSchema.model_validate(workflow)


@router.post("/{thread_id}/start", response_model=WorkflowSchema, status_code=status.HTTP_201_CREATED)
async def thread_start(thread_id: str, engine: WorkflowEngine = Depends(get_engine)):
    """Start the entry workflow that asks the user what to work on."""
    workflow = await engine.start_base_workflow(thread_id)
    return WorkflowSchema.model_validate(workflow)
