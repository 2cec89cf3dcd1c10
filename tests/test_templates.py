from __future__ import annotations

import pytest
from pydantic import ValidationError

from pressroom.core.exceptions import TemplateNotFoundError, TemplateValidationError
from pressroom.schemas.enums import ApiCallAction, AssetKind, DialogRole, StepType
from pressroom.schemas.template import (
    ApiCallConfig,
    AssetCreationConfig,
    JsonDialogConfig,
    StepDefinition,
    UserInputConfig,
    WorkflowTemplate,
    load_step_config,
)
from pressroom.services.template_registry import TemplateRegistry
from pressroom.templates import BASE_WORKFLOW, BUILTIN_TEMPLATES, LAUNCH_ANNOUNCEMENT


def user_step(name, order, deps=()):
    return StepDefinition(
        name=name,
        type=StepType.USER_INPUT,
        order=order,
        prompt=f"{name}?",
        dependencies=deps,
        config=UserInputConfig(),
    )


def test_builtin_templates_are_registered_once():
    registry = TemplateRegistry.with_builtin_templates()
    assert registry.names() == [template.name for template in BUILTIN_TEMPLATES]
    assert registry.get_by_name("Launch Announcement") is LAUNCH_ANNOUNCEMENT
    assert registry.get_by_id(BASE_WORKFLOW.id) is BASE_WORKFLOW
    assert registry.get(BASE_WORKFLOW.id) is registry.get("Base Workflow")


def test_only_base_workflow_is_an_entry_template():
    entries = [template.name for template in BUILTIN_TEMPLATES if template.is_entry]
    assert entries == ["Base Workflow"]


def test_base_workflow_options_name_registered_templates():
    registry = TemplateRegistry.with_builtin_templates()
    options = BASE_WORKFLOW.step("Workflow Selection").config.options
    for option in options:
        assert registry.get_by_name(option).name == option


def test_registry_lookup_miss_raises_not_found():
    registry = TemplateRegistry.with_builtin_templates()
    with pytest.raises(TemplateNotFoundError):
        registry.get_by_name("Nope")
    with pytest.raises(TemplateNotFoundError):
        registry.get_by_id("missing-id")


def test_registry_rejects_duplicate_names():
    template = WorkflowTemplate(id="a", name="Same", steps=(user_step("One", 0),))
    clone = WorkflowTemplate(id="b", name="Same", steps=(user_step("One", 0),))
    with pytest.raises(TemplateValidationError):
        TemplateRegistry([template, clone])


def test_duplicate_step_names_rejected():
    with pytest.raises(TemplateValidationError, match="repeats step names"):
        WorkflowTemplate(id="t", name="T", steps=(user_step("A", 0), user_step("A", 1)))


def test_unknown_dependency_rejected():
    with pytest.raises(TemplateValidationError, match="unknown step 'Ghost'"):
        WorkflowTemplate(id="t", name="T", steps=(user_step("A", 0), user_step("B", 1, ("Ghost",))))


def test_dependency_cycle_rejected():
    with pytest.raises(TemplateValidationError, match="cycle"):
        WorkflowTemplate(
            id="t",
            name="T",
            steps=(user_step("A", 0), user_step("B", 1, ("C",)), user_step("C", 2, ("B",))),
        )


def test_duplicate_orders_rejected():
    with pytest.raises(TemplateValidationError, match="order"):
        WorkflowTemplate(id="t", name="T", steps=(user_step("A", 0), user_step("B", 0)))


def test_first_step_cannot_auto_execute():
    title = StepDefinition(
        name="Title",
        type=StepType.API_CALL,
        order=0,
        config=ApiCallConfig(
            action=ApiCallAction.GENERATE_THREAD_TITLE,
            source_step="Title",
            source_field="x",
        ),
    )
    with pytest.raises(TemplateValidationError, match="auto-executing"):
        WorkflowTemplate(id="t", name="T", steps=(title,))


def test_config_kind_must_match_step_type():
    with pytest.raises(ValidationError):
        StepDefinition(name="A", type=StepType.JSON_DIALOG, order=0, config=UserInputConfig())


def test_review_dialog_requires_generation_step():
    with pytest.raises(ValidationError):
        JsonDialogConfig(role=DialogRole.REVIEW, goal="review")


def test_select_dialog_requires_options():
    with pytest.raises(ValidationError):
        JsonDialogConfig(role=DialogRole.SELECT, goal="pick")


def test_asset_creation_needs_exactly_one_kind_source():
    with pytest.raises(ValidationError):
        AssetCreationConfig(templates={AssetKind.PRESS_RELEASE: "write"})


def test_step_config_round_trips_through_json():
    config = LAUNCH_ANNOUNCEMENT.step("Asset Generation").config
    restored = load_step_config(config.model_dump(mode="json"))
    assert restored == config
    assert restored.instructions_for(AssetKind.MEDIA_PITCH).startswith("You are a media relations")


@pytest.mark.asyncio
async def test_sync_and_load_persisted_templates(store):
    registry = TemplateRegistry.with_builtin_templates()
    assert await registry.sync_to_store(store) == len(BUILTIN_TEMPLATES)

    extra = WorkflowTemplate(id="custom-1", name="Custom Flow", steps=(user_step("Only", 0),))
    await store.save_template(extra.id, extra.name, extra.description, extra.model_dump(mode="json"))
    # A stale copy of a code template must not override the code definition.
    stale = WorkflowTemplate(id=BASE_WORKFLOW.id, name="Base Workflow", steps=(user_step("Old", 0),))
    await store.save_template(stale.id, stale.name, "", stale.model_dump(mode="json"))

    loaded = await registry.load_persisted(store)
    assert loaded == ["Custom Flow"]
    assert registry.get_by_name("Custom Flow").steps[0].name == "Only"
    assert registry.get_by_name("Base Workflow") is BASE_WORKFLOW


@pytest.mark.asyncio
async def test_sync_only_writes_templates_missing_from_store(store):
    edited = WorkflowTemplate(id=BASE_WORKFLOW.id, name="Base Workflow", steps=(user_step("Edited", 0),))
    await store.save_template(edited.id, edited.name, "edited by an operator", edited.model_dump(mode="json"))

    registry = TemplateRegistry.with_builtin_templates()
    assert await registry.sync_to_store(store) == len(BUILTIN_TEMPLATES) - 1
    assert await registry.sync_to_store(store) == 0

    records = {record.id: record for record in await store.list_templates()}
    assert records[BASE_WORKFLOW.id].description == "edited by an operator"
    assert records[BASE_WORKFLOW.id].definition["steps"][0]["name"] == "Edited"

    assert await registry.sync_to_store(store, overwrite=True) == len(BUILTIN_TEMPLATES)
    records = {record.id: record for record in await store.list_templates()}
    assert records[BASE_WORKFLOW.id].definition["steps"][0]["name"] == "Workflow Selection"
