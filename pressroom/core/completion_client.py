"""Text-completion collaborator used by the dialog protocol and asset generation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from anthropic import AsyncAnthropic

from pressroom.core.exceptions import CompletionError

logger = logging.getLogger(__name__)


@dataclass
class CompletionRequest:
    instructions: str
    user_text: str
    context: list[dict[str, Any]] = field(default_factory=list)


class CompletionClient(Protocol):
    async def complete(self, request: CompletionRequest) -> str:
        ...


def render_context(context: list[dict[str, Any]]) -> str:
    """Render prior step outputs as a plain-text block appended to the user turn."""
    if not context:
        return ""
    lines = ["PREVIOUSLY COMPLETED STEPS:"]
    for entry in context:
        name = entry.get("name", "step")
        output = entry.get("output")
        lines.append(f"- {name}: {output}")
    return "\n".join(lines)


class AnthropicCompletionClient:
    """CompletionClient over the Anthropic Messages API."""

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        max_tokens: int = 3000,
        timeout_seconds: float = 45.0,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def complete(self, request: CompletionRequest) -> str:
        content = request.user_text or "(no user message)"
        rendered = render_context(request.context)
        if rendered:
            content = f"{rendered}\n\nUSER MESSAGE:\n{content}"

        try:
            message = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    system=request.instructions,
                    messages=[{"role": "user", "content": content}],
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise
        except Exception as exc:
            logger.error("Completion call failed: %s", exc)
            raise CompletionError(str(exc)) from exc

        texts = [block.text for block in message.content if getattr(block, "type", "") == "text"]
        return "".join(texts).strip()
