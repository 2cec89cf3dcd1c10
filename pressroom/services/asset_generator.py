"""Asset generation through the completion collaborator."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pressroom.core.completion_client import CompletionClient, CompletionRequest
from pressroom.core.exceptions import CompletionError
from pressroom.schemas.enums import AssetKind
from pressroom.services.dialog_protocol import strip_code_fences

logger = logging.getLogger(__name__)


@dataclass
class AssetRequest:
    instructions: str
    collected_information: dict[str, Any] = field(default_factory=dict)
    feedback: str | None = None
    previous_asset: str | None = None
    asset_kind: AssetKind | None = None


def _unwrap(text: str) -> str:
    body = strip_code_fences(text)
    if body.startswith("{"):
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            return body
        if isinstance(data, dict) and isinstance(data.get("asset"), str):
            return data["asset"].strip()
    return body


class AssetGenerator:
    def __init__(self, client: CompletionClient, timeout_seconds: float = 45.0) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds

    def _user_text(self, request: AssetRequest) -> str:
        parts = [
            "COLLECTED INFORMATION:",
            json.dumps(request.collected_information, indent=2, default=str),
        ]
        if request.previous_asset:
            parts += ["", "PREVIOUS VERSION:", request.previous_asset]
        if request.feedback:
            parts += ["", "USER FEEDBACK:", request.feedback]
        return "\n".join(parts)

    async def generate(self, request: AssetRequest) -> str:
        label = request.asset_kind.label if request.asset_kind else "asset"
        completion = CompletionRequest(instructions=request.instructions, user_text=self._user_text(request))
        try:
            raw = await asyncio.wait_for(self.client.complete(completion), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("Generating %s timed out after %.1fs", label, self.timeout_seconds)
            raise CompletionError(f"Generating the {label} timed out") from exc

        asset = _unwrap(raw)
        if not asset:
            raise CompletionError(f"Completion returned an empty {label}")
        logger.info("Generated %s (%s chars, revision=%s)", label, len(asset), bool(request.feedback))
        return asset
