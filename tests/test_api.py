import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCompletionClient, make_settings
from pressroom.main import create_app
from pressroom.templates import BUILTIN_TEMPLATES, LAUNCH_ANNOUNCEMENT, TEST_STEP_TRANSITIONS


@pytest.fixture
def completion():
    return FakeCompletionClient()


@pytest.fixture
def client(completion):
    app = create_app(make_settings(), completion=completion)
    with TestClient(app) as test_client:
        yield test_client


def test_health_reports_database_and_templates(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["dialect"] == "sqlite"
    assert "Base Workflow" in body["templates"]


def test_list_templates(client):
    response = client.get("/api/v1/templates")
    assert response.status_code == 200
    names = [item["name"] for item in response.json()]
    assert names == [template.name for template in BUILTIN_TEMPLATES]
    base = response.json()[0]
    assert base["is_entry"] is True
    assert base["step_names"] == ["Workflow Selection", "Auto Generate Thread Title"]


def test_thread_start_and_selection_flow(client, completion):
    started = client.post("/api/v1/threads/thread-1/start")
    assert started.status_code == 201
    workflow = started.json()
    assert workflow["status"] == "active"
    selection_step = workflow["steps"][0]
    assert selection_step["status"] == "in_progress"

    completion.queue(
        json.dumps({"isComplete": True, "collectedInformation": {"selectedWorkflow": "Launch Announcement"}}),
        "Launch Plans",
    )
    response = client.post(
        f"/api/v1/steps/{selection_step['id']}/respond",
        json={"user_input": "A launch announcement please"},
    )
    assert response.status_code == 200
    result = response.json()
    assert result["is_complete"] is True
    assert result["workflow_id"] == workflow["id"]
    assert result["next_step"]["name"] == "Announcement Type Selection"
    assert result["response"] == LAUNCH_ANNOUNCEMENT.steps[0].prompt

    current = client.get("/api/v1/threads/thread-1/workflow").json()
    assert current["id"] == result["new_workflow_id"]
    assert current["template_id"] == LAUNCH_ANNOUNCEMENT.id

    history = client.get(f"/api/v1/workflows/{workflow['id']}/history").json()
    assert [entry["action"] for entry in history][0] == "start"
    assert "transition" in [entry["action"] for entry in history]


def test_second_active_workflow_conflicts(client):
    payload = {"thread_id": "thread-2", "template_id": TEST_STEP_TRANSITIONS.id}
    assert client.post("/api/v1/workflows", json=payload).status_code == 201
    conflict = client.post("/api/v1/workflows", json=payload)
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "ActiveWorkflowExistsError"


def test_activate_with_unmet_dependencies_conflicts(client):
    workflow = client.post(
        "/api/v1/workflows",
        json={"thread_id": "thread-3", "template_id": TEST_STEP_TRANSITIONS.id},
    ).json()
    last_step = workflow["steps"][-1]
    response = client.post(f"/api/v1/steps/{last_step['id']}/activate")
    assert response.status_code == 409
    assert response.json()["error"] == "DependencyUnmetError"


def test_unknown_ids_return_404(client):
    assert client.get("/api/v1/workflows/missing").status_code == 404
    assert client.get("/api/v1/threads/nobody/workflow").status_code == 404
    assert client.post("/api/v1/steps/missing/respond", json={"user_input": "hi"}).status_code == 404
    unknown_template = client.post("/api/v1/workflows", json={"thread_id": "t", "template_id": "nope"})
    assert unknown_template.status_code == 404


def test_websocket_receives_thread_messages(client):
    with client.websocket_connect("/ws/threads/thread-5") as ws:
        assert ws.receive_json()["type"] == "connection_established"
        assert client.app.state.connection_manager.subscriber_count("thread-5") == 1

        client.post("/api/v1/threads/thread-5/start")
        event = ws.receive_json()
        assert event["type"] == "direct_message"
        assert event["data"]["kind"] == "prompt"
        assert event["data"]["content"].startswith("Hi! What would you like to work on today?")

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong", "thread_id": "thread-5"}


def test_delete_workflow(client):
    workflow = client.post(
        "/api/v1/workflows",
        json={"thread_id": "thread-4", "template_id": TEST_STEP_TRANSITIONS.id},
    ).json()
    assert client.delete(f"/api/v1/workflows/{workflow['id']}").status_code == 204
    assert client.get(f"/api/v1/workflows/{workflow['id']}").status_code == 404
