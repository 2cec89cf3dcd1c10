"""Small workflow that walks through one step of each interactive type."""
from __future__ import annotations

from pressroom.prompts.dialog_prompts import COLLECT_INSTRUCTIONS
from pressroom.schemas.enums import DialogRole, StepType
from pressroom.schemas.template import (
    AiSuggestionConfig,
    JsonDialogConfig,
    StepDefinition,
    UserInputConfig,
    WorkflowTemplate,
)

TEST_STEP_TRANSITIONS_ID = "00000000-0000-0000-0000-000000000003"

TEST_STEP_TRANSITIONS = WorkflowTemplate(
    id=TEST_STEP_TRANSITIONS_ID,
    name="Test Step Transitions",
    description="Four chained steps for checking step activation",
    steps=(
        StepDefinition(
            name="Step 1",
            type=StepType.USER_INPUT,
            order=0,
            prompt="Step 1: say anything to continue.",
            config=UserInputConfig(),
        ),
        StepDefinition(
            name="Step 2",
            type=StepType.JSON_DIALOG,
            order=1,
            prompt="Step 2: tell me your favourite colour.",
            dependencies=("Step 1",),
            config=JsonDialogConfig(
                goal="Collect the user's favourite colour",
                base_instructions=COLLECT_INSTRUCTIONS.strip(),
                essential_fields=("favouriteColour",),
                completion_threshold=100,
            ),
        ),
        StepDefinition(
            name="Step 3",
            type=StepType.AI_SUGGESTION,
            order=2,
            prompt="Step 3: share a word and I'll record it.",
            dependencies=("Step 2",),
            config=AiSuggestionConfig(),
        ),
        StepDefinition(
            name="Step 4",
            type=StepType.USER_INPUT,
            order=3,
            prompt="Step 4: last one. Reply to finish.",
            dependencies=("Step 3",),
            config=UserInputConfig(),
        ),
    ),
)
