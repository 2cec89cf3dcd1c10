"""Single-asset workflows: collect the facts, generate one asset, review it."""
from __future__ import annotations

from pressroom.prompts.asset_templates import GENERATION_TEMPLATES
from pressroom.prompts.dialog_prompts import COLLECT_INSTRUCTIONS, REVIEW_INSTRUCTIONS
from pressroom.schemas.enums import AssetKind, DialogRole, StepType
from pressroom.schemas.template import AssetCreationConfig, JsonDialogConfig, StepDefinition, WorkflowTemplate


def asset_workflow(
    template_id: str,
    name: str,
    kind: AssetKind,
    *,
    description: str,
    opening_prompt: str,
    essential_fields: tuple[str, ...],
    subject: str | None = None,
) -> WorkflowTemplate:
    subject = subject or kind.label.lower()
    return WorkflowTemplate(
        id=template_id,
        name=name,
        description=description,
        steps=(
            StepDefinition(
                name="Information Collection",
                type=StepType.JSON_DIALOG,
                order=0,
                prompt=opening_prompt,
                description=f"Collect the information needed for the {subject}",
                config=JsonDialogConfig(
                    role=DialogRole.COLLECT,
                    goal=f"Collect everything needed to write a strong {subject}",
                    base_instructions=COLLECT_INSTRUCTIONS.strip(),
                    completion_threshold=70,
                    essential_fields=essential_fields,
                ),
            ),
            StepDefinition(
                name="Asset Generation",
                type=StepType.ASSET_CREATION,
                order=1,
                description=f"Generate the {subject} from the collected information",
                dependencies=("Information Collection",),
                config=AssetCreationConfig(
                    asset_kind=kind,
                    templates={kind: GENERATION_TEMPLATES[kind].strip()},
                    source_steps=("Information Collection",),
                ),
            ),
            StepDefinition(
                name="Asset Review",
                type=StepType.JSON_DIALOG,
                order=2,
                prompt=(
                    f"Here's your generated {subject}. Please review it and let me know if you'd like "
                    "any changes. If you're satisfied, simply reply with 'approved'."
                ),
                description=f"Review the {subject} and request changes if needed",
                dependencies=("Asset Generation",),
                config=JsonDialogConfig(
                    role=DialogRole.REVIEW,
                    goal=f"Decide whether the user approved the {subject} or wants changes",
                    base_instructions=REVIEW_INSTRUCTIONS.strip(),
                    generation_step="Asset Generation",
                ),
            ),
        ),
    )


PRESS_RELEASE = asset_workflow(
    "00000000-0000-0000-0000-000000000006",
    "Press Release",
    AssetKind.PRESS_RELEASE,
    description="Draft a full press release: information collection, generation and review",
    opening_prompt=(
        "Let's create your press release. Please start with your company name, a brief description "
        "of what your company does, and what you're announcing."
    ),
    essential_fields=("companyName", "announcementSummary"),
)

MEDIA_PITCH = asset_workflow(
    "00000000-0000-0000-0000-000000000007",
    "Media Pitch",
    AssetKind.MEDIA_PITCH,
    description="Build custom media outreach: information collection, generation and review",
    opening_prompt=(
        "Let's create your media pitch. What are we pitching today? And is this an exclusive "
        "for one reporter or a general pitch to multiple outlets?"
    ),
    essential_fields=("companyName", "pitchTopic"),
)

SOCIAL_POST = asset_workflow(
    "00000000-0000-0000-0000-000000000008",
    "Social Post",
    AssetKind.SOCIAL_POST,
    description="Craft social copy in your brand voice: information collection, generation and review",
    opening_prompt=(
        "Let's create your social post. Please share your company name, what you're announcing, "
        "and which platforms you want to target (LinkedIn, X, Facebook, Instagram)."
    ),
    essential_fields=("companyName", "announcementSummary", "platforms"),
    subject="social media content",
)

BLOG_ARTICLE = asset_workflow(
    "00000000-0000-0000-0000-000000000009",
    "Blog Article",
    AssetKind.BLOG_POST,
    description="Create a long-form article: information collection, generation and review",
    opening_prompt=(
        "Let's create your blog article. Please share your company name, the main topic or "
        "announcement, and the audience you're writing for."
    ),
    essential_fields=("companyName", "topic", "targetAudience"),
    subject="blog article",
)

FAQ = asset_workflow(
    "00000000-0000-0000-0000-000000000010",
    "FAQ",
    AssetKind.FAQ_DOCUMENT,
    description="Create an FAQ document: information collection, generation and review",
    opening_prompt=(
        "Let's create your FAQ document. What product or announcement is it about, and which "
        "questions do your customers ask most often?"
    ),
    essential_fields=("companyName", "topic"),
    subject="FAQ document",
)
