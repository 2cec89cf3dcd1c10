"""Thin wrapper around Anthropic async client."""
from __future__ import annotations

from anthropic import AsyncAnthropic

from pressroom.config import Settings


def build_anthropic_client(settings: Settings) -> AsyncAnthropic:
    return AsyncAnthropic(
        api_key=settings.anthropic_api_key.get_secret_value() or None,
        timeout=settings.completion_timeout_seconds,
    )
