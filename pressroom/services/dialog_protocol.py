"""
JSON dialog protocol.

The completion collaborator answers every dialog turn with a JSON object that
says whether the step's goal is met. This module turns that free text into a
DialogComplete or DialogIncomplete result and shields callers from replies
that cannot be parsed or never arrive.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pressroom.core.completion_client import CompletionClient, CompletionRequest
from pressroom.core.exceptions import ProtocolParseError
from pressroom.schemas.dialog import DialogComplete, DialogIncomplete, DialogResult, PriorStepOutput

logger = logging.getLogger(__name__)

GENERIC_CLARIFYING_QUESTION = (
    "Sorry, I didn't quite catch that. Could you rephrase or add a bit more detail?"
)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    stripped = (text or "").strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _load_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ProtocolParseError("Reply contains no JSON object", raw=text) from None
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as exc:
            raise ProtocolParseError(f"Reply JSON is malformed: {exc.msg}", raw=text) from exc
    if not isinstance(data, dict):
        raise ProtocolParseError("Reply JSON is not an object", raw=text)
    return data


def _percentage(value: Any) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, number))


def parse_dialog_reply(raw: str, collected_so_far: dict[str, Any] | None = None) -> DialogResult:
    """Parse one collaborator reply, merging new facts over ``collected_so_far``."""
    text = strip_code_fences(raw)
    data = _load_object(text)

    flag = data.get("isComplete", data.get("isStepComplete"))
    if not isinstance(flag, bool):
        raise ProtocolParseError("Reply is missing a boolean isComplete flag", raw=raw)

    collected = data.get("collectedInformation") or {}
    if not isinstance(collected, dict):
        raise ProtocolParseError("collectedInformation must be an object", raw=raw)
    merged = {**(collected_so_far or {}), **collected}

    missing = data.get("missingInformation") or []
    if not isinstance(missing, list):
        missing = [missing]
    missing = [str(item) for item in missing]

    if flag:
        suggested = data.get("suggestedNextStep")
        return DialogComplete(
            collected_information=merged,
            missing_information=missing,
            suggested_next_step=str(suggested) if suggested else None,
        )

    question = data.get("nextQuestion")
    if not isinstance(question, str) or not question.strip():
        raise ProtocolParseError("Incomplete reply has no nextQuestion", raw=raw)
    return DialogIncomplete(
        collected_information=merged,
        missing_information=missing,
        completion_percentage=_percentage(data.get("completionPercentage", 0)),
        next_question=question.strip(),
    )


@dataclass
class DialogRequest:
    instructions: str
    user_message: str
    context: list[PriorStepOutput] = field(default_factory=list)
    collected_so_far: dict[str, Any] = field(default_factory=dict)


@dataclass
class DialogExchange:
    result: DialogResult
    instructions: str
    raw: str = ""


class DialogProtocolAdapter:
    def __init__(
        self,
        client: CompletionClient,
        timeout_seconds: float = 45.0,
        max_attempts: int = 2,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)

    def _fallback(self, request: DialogRequest, raw: str = "") -> DialogExchange:
        result = DialogIncomplete(
            collected_information=dict(request.collected_so_far),
            completion_percentage=0,
            next_question=GENERIC_CLARIFYING_QUESTION,
            fallback=True,
        )
        return DialogExchange(result=result, instructions=request.instructions, raw=raw)

    async def converse(self, request: DialogRequest) -> DialogExchange:
        """Run one dialog turn.

        An unparseable reply is retried once; a second failure, or a
        collaborator timeout, yields a generic clarifying question instead of
        an error. CompletionError from the collaborator propagates.
        """
        completion = CompletionRequest(
            instructions=request.instructions,
            user_text=request.user_message,
            context=[entry.model_dump() for entry in request.context],
        )
        raw = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                raw = await asyncio.wait_for(self.client.complete(completion), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("Dialog completion timed out after %.1fs", self.timeout_seconds)
                return self._fallback(request)

            try:
                result = parse_dialog_reply(raw, request.collected_so_far)
            except ProtocolParseError as exc:
                logger.warning("Unparseable dialog reply (attempt %s/%s): %s", attempt, self.max_attempts, exc)
                continue
            return DialogExchange(result=result, instructions=request.instructions, raw=raw)

        return self._fallback(request, raw)
