from __future__ import annotations

import json

import pytest

from conftest import FakeCompletionClient, slow_reply
from pressroom.core.exceptions import CompletionError, ProtocolParseError
from pressroom.schemas.dialog import DialogComplete, DialogIncomplete, PriorStepOutput
from pressroom.services.dialog_protocol import (
    GENERIC_CLARIFYING_QUESTION,
    DialogProtocolAdapter,
    DialogRequest,
    parse_dialog_reply,
    strip_code_fences,
)

INCOMPLETE = {
    "isComplete": False,
    "collectedInformation": {"companyName": "Acme"},
    "missingInformation": ["launchDate"],
    "completionPercentage": 40,
    "nextQuestion": "When does it launch?",
}


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("  plain  ") == "plain"


def test_parse_incomplete_reply_merges_collected_information():
    result = parse_dialog_reply(json.dumps(INCOMPLETE), {"industry": "Robotics", "companyName": "Old"})
    assert isinstance(result, DialogIncomplete)
    assert result.collected_information == {"industry": "Robotics", "companyName": "Acme"}
    assert result.completion_percentage == 40
    assert result.next_question == "When does it launch?"
    assert result.fallback is False


def test_parse_accepts_step_complete_alias_inside_fences():
    raw = '```json\n{"isStepComplete": true, "collectedInformation": {"x": 1}, "suggestedNextStep": "Review"}\n```'
    result = parse_dialog_reply(raw)
    assert isinstance(result, DialogComplete)
    assert result.suggested_next_step == "Review"
    assert result.collected_information == {"x": 1}


def test_parse_extracts_object_from_surrounding_prose():
    raw = "Sure! Here you go: " + json.dumps(INCOMPLETE) + " Let me know."
    assert parse_dialog_reply(raw).next_question == "When does it launch?"


def test_parse_clamps_percentage():
    reply = dict(INCOMPLETE, completionPercentage=250)
    assert parse_dialog_reply(json.dumps(reply)).completion_percentage == 100


@pytest.mark.parametrize(
    "raw",
    [
        "no json here",
        '{"collectedInformation": {}}',
        '{"isComplete": "yes"}',
        '{"isComplete": false, "collectedInformation": {}}',
        '{"isComplete": true, "collectedInformation": ["not", "an", "object"]}',
        "[1, 2, 3]",
    ],
)
def test_unparseable_replies_raise_protocol_error(raw):
    with pytest.raises(ProtocolParseError):
        parse_dialog_reply(raw)


@pytest.mark.asyncio
async def test_adapter_sends_context_and_returns_result():
    client = FakeCompletionClient([json.dumps(INCOMPLETE)])
    adapter = DialogProtocolAdapter(client, timeout_seconds=1)
    exchange = await adapter.converse(
        DialogRequest(
            instructions="collect things",
            user_message="We are Acme",
            context=[PriorStepOutput(name="Announcement Type Selection", output="Product Launch")],
        )
    )
    assert exchange.result.next_question == "When does it launch?"
    assert exchange.instructions == "collect things"
    request = client.requests[0]
    assert request.user_text == "We are Acme"
    assert request.context == [{"name": "Announcement Type Selection", "output": "Product Launch"}]


@pytest.mark.asyncio
async def test_adapter_retries_once_after_bad_reply():
    client = FakeCompletionClient(["garbage", json.dumps(INCOMPLETE)])
    adapter = DialogProtocolAdapter(client, timeout_seconds=1)
    exchange = await adapter.converse(DialogRequest(instructions="i", user_message="m"))
    assert len(client.requests) == 2
    assert exchange.result.fallback is False


@pytest.mark.asyncio
async def test_adapter_falls_back_after_two_bad_replies():
    client = FakeCompletionClient(["garbage", "more garbage", json.dumps(INCOMPLETE)])
    adapter = DialogProtocolAdapter(client, timeout_seconds=1)
    exchange = await adapter.converse(
        DialogRequest(instructions="i", user_message="m", collected_so_far={"companyName": "Acme"})
    )
    assert len(client.requests) == 2
    assert isinstance(exchange.result, DialogIncomplete)
    assert exchange.result.fallback is True
    assert exchange.result.next_question == GENERIC_CLARIFYING_QUESTION
    assert exchange.result.collected_information == {"companyName": "Acme"}


@pytest.mark.asyncio
async def test_adapter_falls_back_on_timeout():
    client = FakeCompletionClient([slow_reply(1.0, json.dumps(INCOMPLETE))])
    adapter = DialogProtocolAdapter(client, timeout_seconds=0.05)
    exchange = await adapter.converse(DialogRequest(instructions="i", user_message="m"))
    assert exchange.result.fallback is True
    assert exchange.result.next_question == GENERIC_CLARIFYING_QUESTION


@pytest.mark.asyncio
async def test_adapter_propagates_collaborator_failure():
    client = FakeCompletionClient([CompletionError("service down")])
    adapter = DialogProtocolAdapter(client, timeout_seconds=1)
    with pytest.raises(CompletionError):
        await adapter.converse(DialogRequest(instructions="i", user_message="m"))
