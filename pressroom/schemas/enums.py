from __future__ import annotations

from enum import Enum


class StepType(str, Enum):
    USER_INPUT = "user_input"
    AI_SUGGESTION = "ai_suggestion"
    JSON_DIALOG = "json_dialog"
    API_CALL = "api_call"
    ASSET_CREATION = "asset_creation"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class WorkflowStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class DialogRole(str, Enum):
    """How a JSON dialog step decides it is done and what happens afterwards."""

    COLLECT = "collect"
    SELECT = "select"
    REVIEW = "review"


class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"
    UNCLEAR = "unclear"

    @classmethod
    def parse(cls, value: object) -> "ReviewDecision":
        if isinstance(value, bool):
            return cls.APPROVED if value else cls.UNCLEAR
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNCLEAR


class ApiCallAction(str, Enum):
    GENERATE_THREAD_TITLE = "generate_thread_title"
    RECOMMEND_ASSETS = "recommend_assets"
    REVISE_ASSET = "revise_asset"


class NotificationKind(str, Enum):
    PROMPT = "prompt"
    STATUS = "status"
    SYSTEM = "system"
    ASSET = "asset"

    @property
    def prefix(self) -> str:
        if self is NotificationKind.STATUS:
            return "[Workflow Status] "
        if self is NotificationKind.SYSTEM:
            return "[System] "
        return ""


class HistoryAction(str, Enum):
    START = "start"
    ACTIVATE_STEP = "activate_step"
    COMPLETE_STEP = "complete_step"
    SKIP_STEP = "skip_step"
    REVISE_ASSET = "revise_asset"
    ROLLBACK_STEP = "rollback_step"
    COMPLETE = "complete"
    TRANSITION = "transition"


class AssetKind(str, Enum):
    PRESS_RELEASE = "press_release"
    MEDIA_PITCH = "media_pitch"
    SOCIAL_POST = "social_post"
    BLOG_POST = "blog_post"
    FAQ_DOCUMENT = "faq_document"

    @property
    def label(self) -> str:
        return _ASSET_LABELS[self]

    @classmethod
    def from_label(cls, value: str | None) -> "AssetKind | None":
        """Map a user-facing asset name onto the closed set of kinds."""
        if not value:
            return None
        normalized = " ".join(str(value).lower().replace("_", " ").replace("-", " ").split())
        for kind in cls:
            if normalized == kind.value.replace("_", " "):
                return kind
            if normalized in _ASSET_ALIASES[kind]:
                return kind
        return None


_ASSET_LABELS = {
    AssetKind.PRESS_RELEASE: "Press Release",
    AssetKind.MEDIA_PITCH: "Media Pitch",
    AssetKind.SOCIAL_POST: "Social Post",
    AssetKind.BLOG_POST: "Blog Post",
    AssetKind.FAQ_DOCUMENT: "FAQ Document",
}

_ASSET_ALIASES = {
    AssetKind.PRESS_RELEASE: {"press release", "pr", "release", "news release"},
    AssetKind.MEDIA_PITCH: {"media pitch", "pitch", "journalist pitch"},
    AssetKind.SOCIAL_POST: {"social post", "social", "social media post", "social media", "social posts"},
    AssetKind.BLOG_POST: {"blog post", "blog", "blog article", "article"},
    AssetKind.FAQ_DOCUMENT: {"faq document", "faq", "faqs", "q&a"},
}
