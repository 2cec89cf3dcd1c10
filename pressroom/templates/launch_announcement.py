from __future__ import annotations

from pressroom.prompts.asset_templates import GENERATION_TEMPLATES
from pressroom.prompts.dialog_prompts import COLLECT_INSTRUCTIONS, REVIEW_INSTRUCTIONS, SELECT_INSTRUCTIONS
from pressroom.prompts.recommendations import ASSETS_BY_ANNOUNCEMENT
from pressroom.schemas.enums import ApiCallAction, AssetKind, DialogRole, StepType
from pressroom.schemas.template import (
    ApiCallConfig,
    AssetCreationConfig,
    AssetKindSource,
    JsonDialogConfig,
    StepDefinition,
    UserInputConfig,
    WorkflowTemplate,
)

LAUNCH_ANNOUNCEMENT_ID = "00000000-0000-0000-0000-000000000001"

LAUNCH_ANNOUNCEMENT = WorkflowTemplate(
    id=LAUNCH_ANNOUNCEMENT_ID,
    name="Launch Announcement",
    description="Plan an announcement, pick an asset, then write and review it",
    steps=(
        StepDefinition(
            name="Announcement Type Selection",
            type=StepType.JSON_DIALOG,
            order=0,
            prompt=(
                "What kind of announcement are you making? For example: "
                + ", ".join(ASSETS_BY_ANNOUNCEMENT)
                + "."
            ),
            config=JsonDialogConfig(
                role=DialogRole.SELECT,
                goal="Identify the type of announcement",
                base_instructions=SELECT_INSTRUCTIONS.strip(),
                options=tuple(ASSETS_BY_ANNOUNCEMENT),
                selection_field="announcementType",
            ),
        ),
        StepDefinition(
            name="Asset Recommendations",
            type=StepType.API_CALL,
            order=1,
            dependencies=("Announcement Type Selection",),
            config=ApiCallConfig(
                action=ApiCallAction.RECOMMEND_ASSETS,
                source_step="Announcement Type Selection",
                source_field="announcementType",
            ),
        ),
        StepDefinition(
            name="Asset Type Selection",
            type=StepType.JSON_DIALOG,
            order=2,
            prompt="Which asset would you like to create first?",
            dependencies=("Asset Recommendations",),
            config=JsonDialogConfig(
                role=DialogRole.SELECT,
                goal="Identify the asset the user wants to generate",
                base_instructions=SELECT_INSTRUCTIONS.strip(),
                options=tuple(kind.label for kind in AssetKind),
                selection_field="selectedAsset",
            ),
        ),
        StepDefinition(
            name="Information Collection",
            type=StepType.JSON_DIALOG,
            order=3,
            prompt=(
                "Tell me about the announcement: the company, what's being announced, "
                "key dates, and anyone we should quote."
            ),
            dependencies=("Asset Type Selection",),
            config=JsonDialogConfig(
                role=DialogRole.COLLECT,
                goal="Collect the facts needed to write the selected asset",
                base_instructions=COLLECT_INSTRUCTIONS.strip(),
                completion_threshold=70,
                essential_fields=("companyName", "announcementSummary", "keyDetails"),
            ),
        ),
        StepDefinition(
            name="Asset Generation",
            type=StepType.ASSET_CREATION,
            order=4,
            dependencies=("Information Collection",),
            config=AssetCreationConfig(
                asset_kind_source=AssetKindSource(step="Asset Type Selection", field="selectedAsset"),
                templates=GENERATION_TEMPLATES,
                source_steps=("Announcement Type Selection", "Information Collection"),
            ),
        ),
        StepDefinition(
            name="Asset Review",
            type=StepType.JSON_DIALOG,
            order=5,
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
            order=6,
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
            order=7,
            prompt="Your asset is final. Is there anything else you'd like to note for distribution?",
            dependencies=("Asset Review", "Asset Revision"),
            config=UserInputConfig(),
        ),
    ),
)
