from __future__ import annotations

import pytest

from pressroom.core.exceptions import ActiveWorkflowExistsError, StepNotFoundError, WorkflowNotFoundError
from pressroom.schemas.enums import HistoryAction, NotificationKind, StepStatus, WorkflowStatus


def step_rows(*names):
    return [
        {
            "step_type": "user_input",
            "name": name,
            "order": index,
            "dependencies": [],
            "status": StepStatus.IN_PROGRESS if index == 0 else StepStatus.PENDING,
        }
        for index, name in enumerate(names)
    ]


@pytest.mark.asyncio
async def test_create_workflow_sets_first_step_current(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A", "B", "C"))
    assert workflow.status == WorkflowStatus.ACTIVE.value
    assert [step.name for step in workflow.steps] == ["A", "B", "C"]
    assert workflow.current_step_id == workflow.steps[0].id
    assert [step.status for step in workflow.steps] == ["in_progress", "pending", "pending"]


@pytest.mark.asyncio
async def test_second_active_workflow_on_thread_is_rejected(store):
    first = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    with pytest.raises(ActiveWorkflowExistsError) as excinfo:
        await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    assert excinfo.value.workflow_id == first.id

    await store.update_workflow_status(first.id, WorkflowStatus.COMPLETED)
    second = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    assert (await store.get_active_by_thread_id("thread-1")).id == second.id
    assert {w.id for w in await store.list_by_thread_id("thread-1")} == {first.id, second.id}


@pytest.mark.asyncio
async def test_update_step_only_touches_named_columns(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    step_id = workflow.steps[0].id
    await store.merge_step_meta(step_id, {"collectedInformation": {"a": 1}})
    await store.update_step(step_id, status=StepStatus.COMPLETE, user_input="hello")
    await store.merge_step_meta(step_id, {"skipped": False})

    step = await store.require_step(step_id)
    assert step.status == "complete"
    assert step.user_input == "hello"
    assert step.meta == {"collectedInformation": {"a": 1}, "skipped": False}


@pytest.mark.asyncio
async def test_update_step_rejects_structural_fields(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    with pytest.raises(ValueError):
        await store.update_step(workflow.steps[0].id, name="renamed")
    with pytest.raises(StepNotFoundError):
        await store.update_step("missing", status=StepStatus.COMPLETE)


@pytest.mark.asyncio
async def test_compare_and_set_current_step(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A", "B"))
    a, b = workflow.steps
    assert await store.compare_and_set_current_step(workflow.id, a.id, b.id) is True
    assert await store.compare_and_set_current_step(workflow.id, a.id, b.id) is False
    assert (await store.require_workflow(workflow.id)).current_step_id == b.id


@pytest.mark.asyncio
async def test_delete_workflow_removes_steps(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A", "B"))
    step_ids = [step.id for step in workflow.steps]
    await store.delete_workflow(workflow.id)
    assert await store.get_workflow(workflow.id) is None
    for step_id in step_ids:
        assert await store.get_step(step_id) is None
    with pytest.raises(WorkflowNotFoundError):
        await store.delete_workflow(workflow.id)


@pytest.mark.asyncio
async def test_asset_versions_increase_per_step(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("Draft"))
    step_id = workflow.steps[0].id
    first = await store.create_asset(
        thread_id="thread-1", workflow_id=workflow.id, step_id=step_id, kind="press_release", content="v1"
    )
    second = await store.create_asset(
        thread_id="thread-1", workflow_id=workflow.id, step_id=step_id, kind="press_release", content="v2"
    )
    assert (first.version, second.version) == (1, 2)
    assert (await store.latest_asset(step_id)).content == "v2"


@pytest.mark.asyncio
async def test_history_is_sequenced(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    await store.append_history(workflow.id, HistoryAction.START)
    await store.append_history(workflow.id, HistoryAction.COMPLETE, new_status=WorkflowStatus.COMPLETED)
    entries = await store.list_history(workflow.id)
    assert [(e.seq, e.action) for e in entries] == [(1, "start"), (2, "complete")]
    assert entries[1].new_status == "completed"


@pytest.mark.asyncio
async def test_direct_message_is_idempotent_per_thread(store):
    first = await store.record_direct_message("t1", "prompt:1", NotificationKind.PROMPT, "Hi")
    assert first is not None and first.content == "Hi"
    assert await store.record_direct_message("t1", "prompt:1", NotificationKind.PROMPT, "Hi again") is None
    assert await store.record_direct_message("t2", "prompt:1", NotificationKind.PROMPT, "Hi") is not None
    assert [m.content for m in await store.list_chat_messages("t1")] == ["Hi"]


@pytest.mark.asyncio
async def test_single_step_create_and_delete(store):
    workflow = await store.create_workflow("thread-1", "tmpl", step_rows("A"))
    extra = await store.create_step(
        workflow.id, step_type="user_input", name="Extra", order=5, dependencies=["A"], status=StepStatus.PENDING
    )
    assert [s.name for s in await store.list_steps(workflow.id)] == ["A", "Extra"]

    await store.update_workflow_current_step(workflow.id, extra.id)
    assert (await store.require_workflow(workflow.id)).current_step_id == extra.id

    await store.delete_step(extra.id)
    assert [s.name for s in await store.list_steps(workflow.id)] == ["A"]
    with pytest.raises(StepNotFoundError):
        await store.delete_step(extra.id)
    with pytest.raises(WorkflowNotFoundError):
        await store.create_step("missing", step_type="user_input", name="X", order=0)
