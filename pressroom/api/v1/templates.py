from __future__ import annotations

from fastapi import APIRouter, Depends

from pressroom.api.dependencies import get_engine
from pressroom.schemas.workflow import TemplateSummarySchema
from pressroom.services.workflow_engine import WorkflowEngine

router = APIRouter()


@router.get("", response_model=list[TemplateSummarySchema])
async def list_templates(engine: WorkflowEngine = Depends(get_engine)):
    return [
        TemplateSummarySchema(
            id=template.id,
            name=template.name,
            description=template.description,
            step_names=[step.name for step in template.steps],
            is_entry=template.is_entry,
        )
        for template in engine.list_templates()
    ]
