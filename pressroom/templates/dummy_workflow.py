from __future__ import annotations

from pressroom.schemas.enums import StepType
from pressroom.schemas.template import AiSuggestionConfig, StepDefinition, WorkflowTemplate

DUMMY_WORKFLOW_ID = "00000000-0000-0000-0000-000000000004"

DUMMY_WORKFLOW = WorkflowTemplate(
    id=DUMMY_WORKFLOW_ID,
    name="Dummy Workflow",
    description="Single step that confirms routing works",
    steps=(
        StepDefinition(
            name="Success Message",
            type=StepType.AI_SUGGESTION,
            order=0,
            prompt="You reached the dummy workflow. Reply with anything to finish.",
            config=AiSuggestionConfig(),
        ),
    ),
)
