from __future__ import annotations

from fastapi import APIRouter, Depends

from pressroom.api.dependencies import get_engine
from pressroom.schemas.workflow import StepResponseRequest, StepResultSchema, WorkflowStepSchema
from pressroom.services.workflow_engine import WorkflowEngine

router = APIRouter()


@router.post("/{step_id}/respond", response_model=StepResultSchema)
async def step_respond(
    step_id: str,
    payload: StepResponseRequest,
    engine: WorkflowEngine = Depends(get_engine),
):
    result = await engine.handle_step_response(step_id, payload.user_input)
    return StepResultSchema(
        response=result.response,
        next_step=WorkflowStepSchema.model_validate(result.next_step) if result.next_step else None,
        is_complete=result.is_complete,
        workflow_id=result.workflow_id,
        new_workflow_id=result.new_workflow_id,
    )


@router.post("/{step_id}/activate", response_model=WorkflowStepSchema)
async def step_activate(step_id: str, engine: WorkflowEngine = Depends(get_engine)):
    step = await engine.activate_step(step_id)
    return WorkflowStepSchema.model_validate(step)


@router.post("/{step_id}/rollback", response_model=WorkflowStepSchema)
async def step_rollback(step_id: str, engine: WorkflowEngine = Depends(get_engine)):
    step = await engine.rollback_step(step_id)
    return WorkflowStepSchema.model_validate(step)
