from pressroom.templates.asset_workflows import BLOG_ARTICLE, FAQ, MEDIA_PITCH, PRESS_RELEASE, SOCIAL_POST
from pressroom.templates.base_workflow import BASE_WORKFLOW
from pressroom.templates.dummy_workflow import DUMMY_WORKFLOW
from pressroom.templates.json_dialog_pr import JSON_DIALOG_PR
from pressroom.templates.launch_announcement import LAUNCH_ANNOUNCEMENT
from pressroom.templates.quick_press_release import QUICK_PRESS_RELEASE
from pressroom.templates.test_step_transitions import TEST_STEP_TRANSITIONS

# Quick Press Release precedes Press Release so substring matching prefers the longer name.
BUILTIN_TEMPLATES = (
    BASE_WORKFLOW,
    LAUNCH_ANNOUNCEMENT,
    JSON_DIALOG_PR,
    QUICK_PRESS_RELEASE,
    PRESS_RELEASE,
    MEDIA_PITCH,
    SOCIAL_POST,
    BLOG_ARTICLE,
    FAQ,
    TEST_STEP_TRANSITIONS,
    DUMMY_WORKFLOW,
)

__all__ = [
    "BUILTIN_TEMPLATES",
    "BASE_WORKFLOW",
    "LAUNCH_ANNOUNCEMENT",
    "JSON_DIALOG_PR",
    "QUICK_PRESS_RELEASE",
    "PRESS_RELEASE",
    "MEDIA_PITCH",
    "SOCIAL_POST",
    "BLOG_ARTICLE",
    "FAQ",
    "TEST_STEP_TRANSITIONS",
    "DUMMY_WORKFLOW",
]
