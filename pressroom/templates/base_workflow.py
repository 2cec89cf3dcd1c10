"""Entry template: asks which workflow to run and routes the thread to it."""
from __future__ import annotations

from pressroom.prompts.dialog_prompts import SELECT_INSTRUCTIONS
from pressroom.schemas.enums import ApiCallAction, DialogRole, StepType
from pressroom.schemas.template import (
    ApiCallConfig,
    JsonDialogConfig,
    StepDefinition,
    TransitionConfig,
    WorkflowTemplate,
)

BASE_WORKFLOW_ID = "00000000-0000-0000-0000-000000000000"

WORKFLOW_CHOICES = (
    "Launch Announcement",
    "JSON Dialog PR Workflow",
    "Quick Press Release",
    "Press Release",
    "Media Pitch",
    "Social Post",
    "Blog Article",
    "FAQ",
    "Test Step Transitions",
    "Dummy Workflow",
)

BASE_WORKFLOW = WorkflowTemplate(
    id=BASE_WORKFLOW_ID,
    name="Base Workflow",
    description="Starts every thread and routes it to a specialized workflow",
    steps=(
        StepDefinition(
            name="Workflow Selection",
            type=StepType.JSON_DIALOG,
            order=0,
            prompt=(
                "Hi! What would you like to work on today? I can help with a launch "
                "announcement, a press release, a media pitch, a social post, a blog "
                "article, an FAQ, or a guided PR workflow."
            ),
            description="Pick the workflow for this thread",
            config=JsonDialogConfig(
                role=DialogRole.SELECT,
                goal="Identify which workflow the user wants to start",
                base_instructions=SELECT_INSTRUCTIONS.strip(),
                options=WORKFLOW_CHOICES,
                selection_field="selectedWorkflow",
                allow_cancel=True,
            ),
        ),
        StepDefinition(
            name="Auto Generate Thread Title",
            type=StepType.API_CALL,
            order=1,
            description="Name the thread after the selected workflow",
            dependencies=("Workflow Selection",),
            config=ApiCallConfig(
                action=ApiCallAction.GENERATE_THREAD_TITLE,
                source_step="Workflow Selection",
                source_field="selectedWorkflow",
            ),
        ),
    ),
    transition=TransitionConfig(selection_step="Workflow Selection"),
)
