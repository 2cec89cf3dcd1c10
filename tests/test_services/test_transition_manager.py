from __future__ import annotations

import json
from datetime import date

import pytest

from pressroom.core.exceptions import CompletionError
from pressroom.schemas.enums import HistoryAction, StepType
from pressroom.schemas.template import StepDefinition, TransitionConfig, UserInputConfig, WorkflowTemplate
from pressroom.templates import DUMMY_WORKFLOW, LAUNCH_ANNOUNCEMENT, MEDIA_PITCH, PRESS_RELEASE, QUICK_PRESS_RELEASE


def selection(value):
    return json.dumps({"isComplete": True, "collectedInformation": {"selectedWorkflow": value}})


async def select_workflow(engine, fake_client, choice, title="Launch Plans"):
    base = await engine.start_base_workflow("thread-1")
    fake_client.queue(selection(choice), title)
    result = await engine.handle_step_response(base.steps[0].id, f"I want {choice}")
    return base, result


@pytest.mark.asyncio
async def test_selection_starts_the_chosen_workflow(engine, store, fake_client):
    base, result = await select_workflow(engine, fake_client, "Launch Announcement")

    assert result.is_complete is True
    assert result.workflow_id == base.id
    assert result.new_workflow_id is not None
    assert result.next_step.name == "Announcement Type Selection"
    assert result.response == LAUNCH_ANNOUNCEMENT.steps[0].prompt

    finished = await store.require_workflow(base.id)
    assert finished.status == "completed"
    successor = await engine.get_workflow_by_thread_id("thread-1")
    assert successor.id == result.new_workflow_id
    assert successor.template_id == LAUNCH_ANNOUNCEMENT.id
    assert successor.current_step_id == result.next_step.id

    title_step = (await store.list_steps(base.id))[1]
    assert title_step.meta["threadTitle"] == "Launch Plans"
    messages = [m.content for m in await store.list_chat_messages("thread-1")]
    assert '[System] Conversation renamed to "Launch Plans"' in messages
    assert messages[-1] == LAUNCH_ANNOUNCEMENT.steps[0].prompt

    history = await store.list_history(base.id)
    transition = [entry for entry in history if entry.action == HistoryAction.TRANSITION.value]
    assert transition[0].details["newWorkflowId"] == successor.id


@pytest.mark.asyncio
async def test_partial_selection_matches_by_substring(engine, fake_client):
    _, result = await select_workflow(engine, fake_client, "quick press")
    assert result.next_step.name == QUICK_PRESS_RELEASE.steps[0].name
    successor = await engine.get_workflow(result.new_workflow_id)
    assert successor.template_id == QUICK_PRESS_RELEASE.id


@pytest.mark.asyncio
async def test_full_press_release_name_is_not_taken_for_quick(engine, fake_client):
    _, result = await select_workflow(engine, fake_client, "press release")
    successor = await engine.get_workflow(result.new_workflow_id)
    assert successor.template_id == PRESS_RELEASE.id


@pytest.mark.asyncio
async def test_single_asset_workflow_runs_from_selection_to_approval(engine, store, fake_client):
    _, result = await select_workflow(engine, fake_client, "media pitch", title="Rover Pitch")
    successor = await engine.get_workflow(result.new_workflow_id)
    assert successor.template_id == MEDIA_PITCH.id
    assert result.next_step.name == "Information Collection"

    fake_client.queue(
        json.dumps({"isComplete": True, "collectedInformation": {"companyName": "Acme", "pitchTopic": "Rover"}}),
        "Pitch draft",
    )
    result = await engine.handle_step_response(result.next_step.id, "Acme is pitching Rover to TechCrunch")
    assert result.next_step.name == "Asset Review"
    assert [(a.kind, a.content) for a in await store.list_assets(successor.id)] == [("media_pitch", "Pitch draft")]

    fake_client.queue(json.dumps({"isComplete": True, "collectedInformation": {"reviewDecision": "approved"}}))
    result = await engine.handle_step_response(result.next_step.id, "approved")
    assert result.is_complete is True
    assert result.new_workflow_id is None
    assert (await store.require_workflow(successor.id)).status == "completed"


@pytest.mark.asyncio
async def test_cancel_completes_without_successor(engine, store, fake_client):
    base, result = await select_workflow(engine, fake_client, "cancelled")

    assert result.is_complete is True
    assert result.new_workflow_id is None
    assert result.next_step is None
    assert "cancelled" in result.response
    assert (await store.get_active_by_thread_id("thread-1")) is None
    assert (await engine.get_workflow_by_thread_id("thread-1")).id == base.id


@pytest.mark.asyncio
async def test_unresolved_selection_lists_available_workflows(make_engine, store):
    chooser = WorkflowTemplate(
        id="chooser",
        name="Chooser",
        steps=(
            StepDefinition(
                name="Pick",
                type=StepType.USER_INPUT,
                order=0,
                prompt="Which workflow?",
                config=UserInputConfig(),
            ),
        ),
        transition=TransitionConfig(selection_step="Pick"),
    )
    engine = make_engine([chooser, DUMMY_WORKFLOW], ENTRY_TEMPLATE_NAME="Chooser")
    base = await engine.start_base_workflow("thread-1")

    result = await engine.handle_step_response(base.steps[0].id, "Nonexistent")

    assert result.is_complete is True
    assert result.new_workflow_id is None
    assert 'matching "Nonexistent"' in result.response
    assert result.response.endswith("Available workflows:\n- Dummy Workflow")
    assert (await store.get_active_by_thread_id("thread-1")) is None


@pytest.mark.asyncio
async def test_title_falls_back_when_completion_fails(engine, store, fake_client):
    base, result = await select_workflow(
        engine, fake_client, "Dummy Workflow", title=CompletionError("upstream unavailable")
    )

    title_step = (await store.list_steps(base.id))[1]
    assert title_step.status == "complete"
    assert title_step.meta["threadTitle"] == f"Dummy Workflow - {date.today().isoformat()}"
    assert result.next_step.name == DUMMY_WORKFLOW.steps[0].name


@pytest.mark.asyncio
async def test_non_entry_workflow_completion_does_not_transition(make_engine, store):
    engine = make_engine([DUMMY_WORKFLOW])
    workflow = await engine.create_workflow("thread-1", DUMMY_WORKFLOW.id)

    result = await engine.handle_step_response(workflow.steps[0].id, "thanks")

    assert result.is_complete is True
    assert result.new_workflow_id is None
    assert (await store.list_by_thread_id("thread-1"))[0].id == workflow.id
