from __future__ import annotations

from pressroom.prompts.asset_templates import PRESS_RELEASE_TEMPLATE
from pressroom.prompts.dialog_prompts import COLLECT_INSTRUCTIONS, REVIEW_INSTRUCTIONS
from pressroom.schemas.enums import AssetKind, DialogRole, StepType
from pressroom.schemas.template import AssetCreationConfig, JsonDialogConfig, StepDefinition, WorkflowTemplate

QUICK_PRESS_RELEASE_ID = "00000000-0000-0000-0000-000000000005"

QUICK_PRESS_RELEASE = WorkflowTemplate(
    id=QUICK_PRESS_RELEASE_ID,
    name="Quick Press Release",
    description="Collect the essentials and draft a press release",
    steps=(
        StepDefinition(
            name="Information Collection",
            type=StepType.JSON_DIALOG,
            order=0,
            prompt="What's the news? Share the company name, the announcement and any quotes you have.",
            config=JsonDialogConfig(
                role=DialogRole.COLLECT,
                goal="Collect the facts for a press release",
                base_instructions=COLLECT_INSTRUCTIONS.strip(),
                completion_threshold=70,
                essential_fields=("companyName", "announcementSummary"),
            ),
        ),
        StepDefinition(
            name="Asset Generation",
            type=StepType.ASSET_CREATION,
            order=1,
            dependencies=("Information Collection",),
            config=AssetCreationConfig(
                asset_kind=AssetKind.PRESS_RELEASE,
                templates={AssetKind.PRESS_RELEASE: PRESS_RELEASE_TEMPLATE.strip()},
                source_steps=("Information Collection",),
            ),
        ),
        StepDefinition(
            name="Asset Review",
            type=StepType.JSON_DIALOG,
            order=2,
            prompt="Please review the press release above. Reply 'approved' or tell me what to change.",
            dependencies=("Asset Generation",),
            config=JsonDialogConfig(
                role=DialogRole.REVIEW,
                goal="Decide whether the user approved the press release or wants changes",
                base_instructions=REVIEW_INSTRUCTIONS.strip(),
                generation_step="Asset Generation",
            ),
        ),
    ),
)
