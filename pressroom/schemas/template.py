"""Immutable workflow template definitions.

A template is an ordered list of step definitions plus the dependency graph
between them. Each step carries a configuration object whose shape depends on
the step type; the union is discriminated on ``kind`` so a template that mixes
up types and configurations fails when it is built, not when a user reaches the
step.
"""
from __future__ import annotations

from collections import deque
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from pressroom.core.exceptions import TemplateValidationError
from pressroom.schemas.enums import ApiCallAction, AssetKind, DialogRole, StepType


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class UserInputConfig(_Frozen):
    kind: Literal["user_input"] = "user_input"
    help_text: str | None = None


class AiSuggestionConfig(_Frozen):
    kind: Literal["ai_suggestion"] = "ai_suggestion"
    instructions: str | None = None


class JsonDialogConfig(_Frozen):
    kind: Literal["json_dialog"] = "json_dialog"
    role: DialogRole = DialogRole.COLLECT
    goal: str
    base_instructions: str = ""
    completion_threshold: int = Field(default=70, ge=0, le=100)
    essential_fields: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    selection_field: str = "selectedWorkflow"
    allow_cancel: bool = False
    generation_step: str | None = None
    revision_step: str | None = None

    @model_validator(mode="after")
    def check_role_fields(self) -> "JsonDialogConfig":
        if self.role is DialogRole.SELECT and not self.options:
            raise ValueError("selection dialogs need a closed option set")
        if self.role is DialogRole.REVIEW and not self.generation_step:
            raise ValueError("review dialogs need the generation step they review")
        if self.role is not DialogRole.REVIEW and (self.generation_step or self.revision_step):
            raise ValueError("generation_step/revision_step only apply to review dialogs")
        return self


class ApiCallConfig(_Frozen):
    kind: Literal["api_call"] = "api_call"
    action: ApiCallAction
    auto_execute: bool = True
    instructions: str = ""
    title_format: str = "{selection} - {date}"
    source_step: str | None = None
    source_field: str | None = None
    review_step: str | None = None
    generation_step: str | None = None

    @model_validator(mode="after")
    def check_action_fields(self) -> "ApiCallConfig":
        if self.action in (ApiCallAction.GENERATE_THREAD_TITLE, ApiCallAction.RECOMMEND_ASSETS):
            if not self.source_step or not self.source_field:
                raise ValueError(f"{self.action.value} needs source_step and source_field")
        if self.action is ApiCallAction.REVISE_ASSET:
            if not self.generation_step or not self.review_step:
                raise ValueError("revise_asset needs generation_step and review_step")
        return self


class AssetKindSource(_Frozen):
    step: str
    field: str


class AssetCreationConfig(_Frozen):
    kind: Literal["asset_creation"] = "asset_creation"
    asset_kind: AssetKind | None = None
    asset_kind_source: AssetKindSource | None = None
    templates: dict[AssetKind, str]
    source_steps: tuple[str, ...] = ()
    auto_execute: bool = True

    @model_validator(mode="after")
    def check_kind(self) -> "AssetCreationConfig":
        if (self.asset_kind is None) == (self.asset_kind_source is None):
            raise ValueError("set exactly one of asset_kind or asset_kind_source")
        if not self.templates:
            raise ValueError("asset creation needs at least one generation template")
        if self.asset_kind is not None and self.asset_kind not in self.templates:
            raise ValueError(f"no generation template for {self.asset_kind.value}")
        return self

    def instructions_for(self, kind: AssetKind) -> str:
        if kind in self.templates:
            return self.templates[kind]
        # A selected kind without a dedicated template uses the first one listed.
        return next(iter(self.templates.values()))


StepConfig = Annotated[
    Union[UserInputConfig, AiSuggestionConfig, JsonDialogConfig, ApiCallConfig, AssetCreationConfig],
    Field(discriminator="kind"),
]

step_config_adapter: TypeAdapter[StepConfig] = TypeAdapter(StepConfig)


def load_step_config(raw: dict) -> StepConfig:
    return step_config_adapter.validate_python(raw)


class StepDefinition(_Frozen):
    name: str = Field(min_length=1)
    type: StepType
    order: int = Field(ge=0)
    prompt: str = ""
    description: str = ""
    dependencies: tuple[str, ...] = ()
    config: StepConfig

    @model_validator(mode="after")
    def check_config_kind(self) -> "StepDefinition":
        if self.config.kind != self.type.value:
            raise ValueError(
                f"step '{self.name}' is {self.type.value} but carries a {self.config.kind} config"
            )
        return self

    @property
    def auto_executes(self) -> bool:
        return bool(getattr(self.config, "auto_execute", False))


class TransitionConfig(_Frozen):
    """Marks an entry template whose only purpose is routing to another template."""

    selection_step: str
    selection_field: str = "selectedWorkflow"
    cancel_value: str = "cancelled"


class WorkflowTemplate(_Frozen):
    id: str
    name: str = Field(min_length=1)
    description: str = ""
    steps: tuple[StepDefinition, ...]
    transition: TransitionConfig | None = None

    @model_validator(mode="after")
    def check_structure(self) -> "WorkflowTemplate":
        if not self.steps:
            raise TemplateValidationError(f"Template '{self.name}' has no steps")

        names = [step.name for step in self.steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise TemplateValidationError(
                f"Template '{self.name}' repeats step names: {', '.join(duplicates)}"
            )

        orders = [step.order for step in self.steps]
        if len(set(orders)) != len(orders):
            raise TemplateValidationError(f"Template '{self.name}' repeats step order values")
        if orders != sorted(orders):
            raise TemplateValidationError(f"Template '{self.name}' must list steps in order")

        known = set(names)
        for step in self.steps:
            for ref in (*step.dependencies, *_config_references(step)):
                if ref not in known:
                    raise TemplateValidationError(
                        f"Step '{step.name}' in '{self.name}' references unknown step '{ref}'"
                    )
            if step.name in step.dependencies:
                raise TemplateValidationError(f"Step '{step.name}' depends on itself")

        if self.steps[0].auto_executes:
            raise TemplateValidationError(
                f"Template '{self.name}' cannot start with an auto-executing step"
            )

        if self.transition is not None and self.transition.selection_step not in known:
            raise TemplateValidationError(
                f"Template '{self.name}' routes on unknown step '{self.transition.selection_step}'"
            )

        if len(_topological_order(self.steps)) != len(self.steps):
            raise TemplateValidationError(f"Template '{self.name}' has a dependency cycle")
        return self

    @property
    def first_step(self) -> StepDefinition:
        return self.steps[0]

    @property
    def is_entry(self) -> bool:
        return self.transition is not None

    def step(self, name: str) -> StepDefinition | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None


def _config_references(step: StepDefinition) -> list[str]:
    config = step.config
    refs: list[str] = []
    if isinstance(config, JsonDialogConfig):
        refs.extend(r for r in (config.generation_step, config.revision_step) if r)
    elif isinstance(config, ApiCallConfig):
        refs.extend(r for r in (config.source_step, config.review_step, config.generation_step) if r)
    elif isinstance(config, AssetCreationConfig):
        refs.extend(config.source_steps)
        if config.asset_kind_source is not None:
            refs.append(config.asset_kind_source.step)
    return refs


def _topological_order(steps: tuple[StepDefinition, ...]) -> list[str]:
    graph: dict[str, list[str]] = {step.name: [] for step in steps}
    indegree: dict[str, int] = {step.name: 0 for step in steps}
    for step in steps:
        for dep in step.dependencies:
            if dep in graph:
                graph[dep].append(step.name)
                indegree[step.name] += 1

    queue = deque([name for name in graph if indegree[name] == 0])
    order: list[str] = []
    while queue:
        node = queue.popleft()
        order.append(node)
        for nxt in graph[node]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)
    return order
