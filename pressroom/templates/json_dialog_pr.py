from __future__ import annotations

from pressroom.prompts.asset_templates import GENERATION_TEMPLATES
from pressroom.prompts.dialog_prompts import COLLECT_INSTRUCTIONS, REVIEW_INSTRUCTIONS
from pressroom.schemas.enums import ApiCallAction, DialogRole, StepType
from pressroom.schemas.template import (
    ApiCallConfig,
    AssetCreationConfig,
    AssetKindSource,
    JsonDialogConfig,
    StepDefinition,
    UserInputConfig,
    WorkflowTemplate,
)

JSON_DIALOG_PR_ID = "00000000-0000-0000-0000-000000000002"

JSON_DIALOG_PR = WorkflowTemplate(
    id=JSON_DIALOG_PR_ID,
    name="JSON Dialog PR Workflow",
    description="One conversational intake for the announcement and asset, then write and review",
    steps=(
        StepDefinition(
            name="PR Information Collection",
            type=StepType.JSON_DIALOG,
            order=0,
            prompt=(
                "Let's get your PR content started. What are you announcing, which company "
                "is it for, and what would you like me to write (press release, media pitch, "
                "social post, blog post or FAQ)?"
            ),
            config=JsonDialogConfig(
                role=DialogRole.COLLECT,
                goal="Collect the announcement details and the asset type to produce",
                base_instructions=COLLECT_INSTRUCTIONS.strip(),
                completion_threshold=80,
                essential_fields=("announcementType", "companyName", "assetType", "announcementSummary"),
            ),
        ),
        StepDefinition(
            name="Asset Generation",
            type=StepType.ASSET_CREATION,
            order=1,
            dependencies=("PR Information Collection",),
            config=AssetCreationConfig(
                asset_kind_source=AssetKindSource(step="PR Information Collection", field="assetType"),
                templates=GENERATION_TEMPLATES,
                source_steps=("PR Information Collection",),
            ),
        ),
        StepDefinition(
            name="Asset Review",
            type=StepType.JSON_DIALOG,
            order=2,
            prompt="Please review the draft above. Reply 'approved' or tell me what to change.",
            dependencies=("Asset Generation",),
            config=JsonDialogConfig(
                role=DialogRole.REVIEW,
                goal="Decide whether the user approved the asset or wants changes",
                base_instructions=REVIEW_INSTRUCTIONS.strip(),
                generation_step="Asset Generation",
                revision_step="Asset Revision",
            ),
        ),
        StepDefinition(
            name="Asset Revision",
            type=StepType.API_CALL,
            order=3,
            dependencies=("Asset Review",),
            config=ApiCallConfig(
                action=ApiCallAction.REVISE_ASSET,
                generation_step="Asset Generation",
                review_step="Asset Review",
            ),
        ),
        StepDefinition(
            name="Post-Asset Tasks",
            type=StepType.USER_INPUT,
            order=4,
            prompt="Your asset is final. Anything else you need for distribution?",
            dependencies=("Asset Review", "Asset Revision"),
            config=UserInputConfig(),
        ),
    ),
)
