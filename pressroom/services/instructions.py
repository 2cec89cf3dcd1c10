"""
Instruction payloads sent to the completion collaborator.

Each builder returns the system text for one kind of call. The user message
and prior step outputs travel separately in the CompletionRequest.
"""
from __future__ import annotations

import json
from typing import Any

from pressroom.prompts.asset_templates import REVISION_SUFFIX
from pressroom.prompts.dialog_prompts import (
    RESPONSE_FORMAT_COMPLETE,
    RESPONSE_FORMAT_INCOMPLETE,
    REVIEW_RESPONSE_FORMAT,
    THREAD_TITLE_INSTRUCTIONS,
)
from pressroom.schemas.enums import AssetKind, DialogRole
from pressroom.schemas.template import AssetCreationConfig, JsonDialogConfig


def build_dialog_instructions(
    step_name: str,
    config: JsonDialogConfig,
    collected_so_far: dict[str, Any] | None = None,
) -> str:
    sections = []
    if config.base_instructions:
        sections.append(config.base_instructions)
    sections.append(f"CURRENT STEP: {step_name}\nGOAL: {config.goal}")

    if config.role is DialogRole.SELECT:
        choices = list(config.options)
        if config.allow_cancel:
            choices.append("cancelled")
        sections.append(
            "OPTIONS (return one of these exactly in collectedInformation."
            f"{config.selection_field}):\n" + "\n".join(f"- {option}" for option in choices)
        )
        sections.append(
            "Mark the step complete only when the message clearly matches one option."
        )
    elif config.role is DialogRole.COLLECT:
        rules = [
            f"Mark the step complete when completionPercentage reaches {config.completion_threshold} "
            "or the user explicitly asks to proceed."
        ]
        if config.essential_fields:
            rules.append("ESSENTIAL FIELDS: " + ", ".join(config.essential_fields))
        sections.append("\n".join(rules))
    else:
        sections.append(
            "Record collectedInformation.reviewDecision as one of: approved, revision_requested, unclear."
        )

    if config.role is DialogRole.REVIEW:
        sections.append("RESPONSE FORMAT (valid JSON only):\n" + REVIEW_RESPONSE_FORMAT)
    else:
        sections.append(
            "RESPONSE FORMAT (valid JSON only, no prose outside the object):\n"
            f"Incomplete:\n{RESPONSE_FORMAT_INCOMPLETE}\n\nComplete:\n{RESPONSE_FORMAT_COMPLETE}"
        )

    if collected_so_far:
        sections.append(
            "ALREADY COLLECTED (keep these values unless the user corrects them):\n"
            + json.dumps(collected_so_far, indent=2, default=str)
        )
    return "\n\n".join(sections)


def build_generation_instructions(config: AssetCreationConfig, kind: AssetKind) -> str:
    return f"{config.instructions_for(kind)}\n\nASSET TYPE: {kind.label}"


def build_revision_instructions(original: str, feedback: str, kind: AssetKind | None = None) -> str:
    label = kind.label if kind else "asset"
    return original.rstrip() + "\n" + REVISION_SUFFIX.format(feedback=feedback.strip(), label=label)


def build_title_instructions(selection: str) -> str:
    return f"{THREAD_TITLE_INSTRUCTIONS.strip()}\n\nPROJECT: {selection}"
