"""
Step handlers.

One handler per step type, looked up through a table built once at startup.
A handler does the type-specific work for the current step and reports
whether the step is complete; choosing and activating the next step is left
to the StepExecutor.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable

from pressroom.core.completion_client import CompletionClient, CompletionRequest
from pressroom.core.exceptions import CompletionError
from pressroom.models import Asset, Workflow, WorkflowStep
from pressroom.prompts.asset_templates import REVIEW_PROMPT
from pressroom.prompts.recommendations import ASSET_DESCRIPTIONS, ASSETS_BY_ANNOUNCEMENT, DEFAULT_ANNOUNCEMENT
from pressroom.schemas.dialog import DialogComplete, DialogIncomplete, PriorStepOutput
from pressroom.schemas.enums import (
    ApiCallAction,
    AssetKind,
    DialogRole,
    HistoryAction,
    NotificationKind,
    ReviewDecision,
    StepStatus,
    StepType,
)
from pressroom.schemas.template import (
    AiSuggestionConfig,
    ApiCallConfig,
    AssetCreationConfig,
    JsonDialogConfig,
    StepConfig,
    load_step_config,
)
from pressroom.services.asset_generator import AssetGenerator, AssetRequest
from pressroom.services.dialog_protocol import DialogExchange, DialogProtocolAdapter, DialogRequest
from pressroom.services.instructions import (
    build_dialog_instructions,
    build_generation_instructions,
    build_revision_instructions,
    build_title_instructions,
)
from pressroom.services.matching import match_name
from pressroom.services.notification_service import NotificationService
from pressroom.services.workflow_store import WorkflowStore

logger = logging.getLogger(__name__)

CANCEL_SELECTION = "cancelled"

# Set per review turn; never carried into the next turn's collected information.
REVIEW_FIELDS = ("reviewDecision", "requestedChanges", "userFeedback")


@dataclass
class StepContext:
    workflow: Workflow
    step: WorkflowStep
    steps: list[WorkflowStep]
    config: StepConfig
    user_input: str = ""

    def step_named(self, name: str | None) -> WorkflowStep | None:
        if not name:
            return None
        for step in self.steps:
            if step.name == name:
                return step
        return None

    @property
    def meta(self) -> dict[str, Any]:
        return dict(self.step.meta or {})

    def prior_outputs(self) -> list[PriorStepOutput]:
        """Recorded output of every completed step before this one."""
        outputs: list[PriorStepOutput] = []
        for step in sorted(self.steps, key=lambda s: s.order):
            if step.id == self.step.id or step.status != StepStatus.COMPLETE.value:
                continue
            meta = step.meta or {}
            if meta.get("skipped"):
                continue
            output = meta.get("collectedInformation") or step.ai_suggestion or step.user_input
            if output:
                outputs.append(PriorStepOutput(name=step.name, output=output))
        return outputs


@dataclass
class StepOutcome:
    completed: bool
    response: str = ""
    suggested_next_step: str | None = None
    self_loop: bool = False


@dataclass
class HandlerServices:
    store: WorkflowStore
    dialog: DialogProtocolAdapter
    generator: AssetGenerator
    notifier: NotificationService
    completion: CompletionClient
    timeout_seconds: float = 45.0


def step_value(step: WorkflowStep | None, field_name: str | None) -> str | None:
    """The value a step recorded for ``field_name``, else its suggestion or raw input."""
    if step is None:
        return None
    collected = (step.meta or {}).get("collectedInformation") or {}
    if field_name and collected.get(field_name) not in (None, ""):
        return str(collected[field_name])
    return step.ai_suggestion or step.user_input


class BaseStepHandler(ABC):
    """Base class for all step handlers."""

    step_type: StepType

    def __init__(self, services: HandlerServices):
        self.services = services
        self.store = services.store
        self.notifier = services.notifier

    @abstractmethod
    async def handle(self, ctx: StepContext) -> StepOutcome:
        """Process user input for the current step."""

    async def complete_step(self, ctx: StepContext, step: WorkflowStep | None = None, **fields: Any) -> None:
        step = step or ctx.step
        await self.store.update_step(step.id, status=StepStatus.COMPLETE, **fields)
        await self.store.append_history(
            ctx.workflow.id,
            HistoryAction.COMPLETE_STEP,
            step_id=step.id,
            previous_status=step.status,
            new_status=StepStatus.COMPLETE,
        )
        logger.info("Completed step '%s' (%s) in workflow %s", step.name, step.id, ctx.workflow.id)

    async def skip_step(self, ctx: StepContext, step: WorkflowStep, reason: str) -> None:
        if step.status == StepStatus.COMPLETE.value:
            return
        await self.store.merge_step_meta(step.id, {"skipped": True, "skipReason": reason})
        await self.store.update_step(step.id, status=StepStatus.COMPLETE)
        await self.store.append_history(
            ctx.workflow.id,
            HistoryAction.SKIP_STEP,
            step_id=step.id,
            previous_status=step.status,
            new_status=StepStatus.COMPLETE,
            details={"reason": reason},
        )
        logger.info("Skipped step '%s' in workflow %s (%s)", step.name, ctx.workflow.id, reason)

    async def ask(self, prompt: str, user_text: str, ctx: StepContext) -> str:
        """One plain completion call bounded by the configured timeout."""
        request = CompletionRequest(
            instructions=prompt,
            user_text=user_text,
            context=[entry.model_dump() for entry in ctx.prior_outputs()],
        )
        return await asyncio.wait_for(
            self.services.completion.complete(request),
            timeout=self.services.timeout_seconds,
        )


class UserInputHandler(BaseStepHandler):
    step_type = StepType.USER_INPUT

    async def handle(self, ctx: StepContext) -> StepOutcome:
        await self.complete_step(ctx, user_input=ctx.user_input)
        return StepOutcome(completed=True)


class AiSuggestionHandler(BaseStepHandler):
    step_type = StepType.AI_SUGGESTION

    async def handle(self, ctx: StepContext) -> StepOutcome:
        config: AiSuggestionConfig = ctx.config
        suggestion = ctx.user_input
        if config.instructions:
            try:
                suggestion = (await self.ask(config.instructions, ctx.user_input, ctx)).strip() or ctx.user_input
            except (asyncio.TimeoutError, CompletionError) as exc:
                logger.warning("Suggestion for step '%s' failed (%s); recording input verbatim", ctx.step.name, exc)
        await self.complete_step(ctx, user_input=ctx.user_input, ai_suggestion=suggestion)
        return StepOutcome(completed=True)


async def regenerate_asset(
    services: HandlerServices,
    ctx: StepContext,
    generation_step: WorkflowStep,
    feedback: str,
) -> tuple[Asset, AssetKind]:
    """Produce a new version of the asset owned by ``generation_step``."""
    meta = generation_step.meta or {}
    config = load_step_config(generation_step.config)
    kind = AssetKind(meta["assetKind"]) if meta.get("assetKind") else resolve_asset_kind(ctx, config)
    original = meta.get("generationInstructions") or build_generation_instructions(config, kind)
    instructions = build_revision_instructions(original, feedback, kind)

    content = await services.generator.generate(
        AssetRequest(
            instructions=instructions,
            collected_information=meta.get("sourceInformation") or {},
            feedback=feedback,
            previous_asset=generation_step.ai_suggestion,
            asset_kind=kind,
        )
    )
    asset = await services.store.create_asset(
        thread_id=ctx.workflow.thread_id,
        workflow_id=ctx.workflow.id,
        step_id=generation_step.id,
        kind=kind,
        title=kind.label,
        content=content,
    )
    await services.store.update_step(generation_step.id, ai_suggestion=content)
    revisions = int(meta.get("revisionCount", 0)) + 1
    await services.store.merge_step_meta(
        generation_step.id,
        {"assetVersion": asset.version, "revisionCount": revisions, "lastFeedback": feedback},
    )
    await services.store.append_history(
        ctx.workflow.id,
        HistoryAction.REVISE_ASSET,
        step_id=generation_step.id,
        details={"version": asset.version, "feedback": feedback},
    )
    logger.info("Revised %s to version %s in workflow %s", kind.value, asset.version, ctx.workflow.id)
    return asset, kind


def resolve_asset_kind(ctx: StepContext, config: AssetCreationConfig) -> AssetKind:
    if config.asset_kind is not None:
        return config.asset_kind
    source = config.asset_kind_source
    value = step_value(ctx.step_named(source.step), source.field)
    kind = AssetKind.from_label(value)
    if kind is None:
        kind = next(iter(config.templates))
        logger.warning("Could not map asset selection %r; defaulting to %s", value, kind.value)
    return kind


def _feedback_text(collected: dict[str, Any], fallback: str) -> str:
    changes = collected.get("requestedChanges")
    if isinstance(changes, list) and changes:
        return "\n".join(f"- {change}" for change in changes)
    if isinstance(changes, str) and changes.strip():
        return changes.strip()
    feedback = collected.get("userFeedback")
    if isinstance(feedback, str) and feedback.strip():
        return feedback.strip()
    return fallback.strip()


def _without_review_fields(collected: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in collected.items() if key not in REVIEW_FIELDS}


class JsonDialogHandler(BaseStepHandler):
    step_type = StepType.JSON_DIALOG

    async def handle(self, ctx: StepContext) -> StepOutcome:
        config: JsonDialogConfig = ctx.config
        collected = dict(ctx.meta.get("collectedInformation") or {})
        if config.role is DialogRole.REVIEW:
            collected = _without_review_fields(collected)
        instructions = build_dialog_instructions(ctx.step.name, config, collected)
        exchange = await self.services.dialog.converse(
            DialogRequest(
                instructions=instructions,
                user_message=ctx.user_input,
                context=ctx.prior_outputs(),
                collected_so_far=collected,
            )
        )
        await self.store.update_step(
            ctx.step.id,
            user_input=ctx.user_input,
            completion_prompt=exchange.instructions,
            completion_response=exchange.raw,
        )

        if config.role is DialogRole.SELECT:
            return await self._select(ctx, config, exchange)
        if config.role is DialogRole.REVIEW:
            return await self._review(ctx, config, exchange)
        return await self._collect(ctx, config, exchange)

    async def _collect(self, ctx: StepContext, config: JsonDialogConfig, exchange: DialogExchange) -> StepOutcome:
        result = exchange.result
        if isinstance(result, DialogIncomplete):
            reached = not result.fallback and result.completion_percentage >= config.completion_threshold
            await self.store.merge_step_meta(
                ctx.step.id,
                {
                    "collectedInformation": result.collected_information,
                    "missingInformation": result.missing_information,
                    "completionPercentage": result.completion_percentage,
                },
            )
            if not reached:
                return StepOutcome(completed=False, response=result.next_question)
            logger.info(
                "Step '%s' reached %s%% (threshold %s%%); completing",
                ctx.step.name,
                result.completion_percentage,
                config.completion_threshold,
            )
            await self.complete_step(ctx)
            return StepOutcome(completed=True)

        await self.store.merge_step_meta(
            ctx.step.id,
            {
                "collectedInformation": result.collected_information,
                "missingInformation": result.missing_information,
                "completionPercentage": 100,
            },
        )
        await self.complete_step(ctx)
        return StepOutcome(completed=True, suggested_next_step=result.suggested_next_step)

    async def _select(self, ctx: StepContext, config: JsonDialogConfig, exchange: DialogExchange) -> StepOutcome:
        result = exchange.result
        if isinstance(result, DialogIncomplete):
            await self.store.merge_step_meta(ctx.step.id, {"collectedInformation": result.collected_information})
            return StepOutcome(completed=False, response=result.next_question)

        raw_value = result.collected_information.get(config.selection_field)
        if config.allow_cancel and str(raw_value or "").strip().casefold() == CANCEL_SELECTION:
            chosen = CANCEL_SELECTION
        else:
            chosen = match_name(raw_value, config.options)

        if chosen is None:
            logger.info("Selection %r for step '%s' matched no option", raw_value, ctx.step.name)
            options = "\n".join(f"- {option}" for option in config.options)
            return StepOutcome(
                completed=False,
                response=f"I couldn't match that to one of the available options. Please choose one of:\n{options}",
            )

        collected = {**result.collected_information, config.selection_field: chosen}
        await self.store.merge_step_meta(ctx.step.id, {"collectedInformation": collected})
        await self.complete_step(ctx, ai_suggestion=chosen)
        return StepOutcome(completed=True, suggested_next_step=result.suggested_next_step)

    async def _review(self, ctx: StepContext, config: JsonDialogConfig, exchange: DialogExchange) -> StepOutcome:
        result = exchange.result
        if isinstance(result, DialogIncomplete) and result.fallback:
            await self.store.merge_step_meta(ctx.step.id, {"reviewDecision": ReviewDecision.UNCLEAR.value})
            return StepOutcome(completed=False, response=result.next_question)

        # Review fields were stripped from collected_so_far, so these come from this reply only.
        collected = result.collected_information
        if "reviewDecision" in collected:
            decision = ReviewDecision.parse(collected["reviewDecision"])
        elif isinstance(result, DialogComplete):
            decision = ReviewDecision.APPROVED
        else:
            decision = ReviewDecision.UNCLEAR
        feedback = _feedback_text(collected, ctx.user_input)
        await self.store.merge_step_meta(
            ctx.step.id,
            {
                "collectedInformation": _without_review_fields(collected),
                "reviewDecision": decision.value,
                "reviewFeedback": feedback,
            },
        )

        if decision is ReviewDecision.APPROVED:
            revision = ctx.step_named(config.revision_step)
            if revision is not None:
                await self.skip_step(ctx, revision, "approved")
            await self.complete_step(ctx)
            return StepOutcome(completed=True)

        if decision is ReviewDecision.REVISION_REQUESTED:
            generation = ctx.step_named(config.generation_step)
            asset, kind = await regenerate_asset(self.services, ctx, generation, feedback)
            prompt = REVIEW_PROMPT.format(label=kind.label, asset=asset.content)
            await self.store.update_step(ctx.step.id, prompt=prompt)
            await self.notifier.add_direct_message(
                ctx.workflow.thread_id,
                prompt,
                kind=NotificationKind.ASSET,
                idempotency_key=f"asset:{generation.id}:v{asset.version}",
            )
            return StepOutcome(completed=False, response=prompt, self_loop=True)

        question = getattr(result, "next_question", None) or (
            "Would you like to approve this version, or tell me what you'd like changed?"
        )
        return StepOutcome(completed=False, response=question)


class ApiCallHandler(BaseStepHandler):
    step_type = StepType.API_CALL

    def __init__(self, services: HandlerServices):
        super().__init__(services)
        self.actions: dict[ApiCallAction, Callable[[StepContext, ApiCallConfig], Awaitable[StepOutcome]]] = {
            ApiCallAction.GENERATE_THREAD_TITLE: self._generate_thread_title,
            ApiCallAction.RECOMMEND_ASSETS: self._recommend_assets,
            ApiCallAction.REVISE_ASSET: self._revise_asset,
        }

    async def handle(self, ctx: StepContext) -> StepOutcome:
        config: ApiCallConfig = ctx.config
        return await self.actions[config.action](ctx, config)

    async def _generate_thread_title(self, ctx: StepContext, config: ApiCallConfig) -> StepOutcome:
        selection = step_value(ctx.step_named(config.source_step), config.source_field) or "New conversation"
        fallback = config.title_format.format(selection=selection, date=date.today().isoformat())
        try:
            raw = await self.ask(build_title_instructions(selection), selection, ctx)
            title = (raw.strip().splitlines() or [""])[0].strip().strip('"')[:80]
        except (asyncio.TimeoutError, CompletionError) as exc:
            logger.warning("Title generation failed for workflow %s: %s", ctx.workflow.id, exc)
            title = ""
        title = title or fallback

        await self.store.merge_step_meta(ctx.step.id, {"threadTitle": title})
        await self.notifier.add_direct_message(
            ctx.workflow.thread_id,
            f'Conversation renamed to "{title}"',
            kind=NotificationKind.SYSTEM,
            idempotency_key=f"title:{ctx.step.id}",
        )
        await self.complete_step(ctx, ai_suggestion=title)
        return StepOutcome(completed=True)

    async def _recommend_assets(self, ctx: StepContext, config: ApiCallConfig) -> StepOutcome:
        selection = step_value(ctx.step_named(config.source_step), config.source_field)
        announcement = match_name(selection, ASSETS_BY_ANNOUNCEMENT) or DEFAULT_ANNOUNCEMENT
        kinds = ASSETS_BY_ANNOUNCEMENT[announcement]
        lines = [f"For a {announcement}, I recommend these assets:", ""]
        lines += [f"- {kind.label}: {ASSET_DESCRIPTIONS[kind]}" for kind in kinds]
        text = "\n".join(lines)

        await self.store.merge_step_meta(
            ctx.step.id,
            {"announcementType": announcement, "recommendedAssets": [kind.label for kind in kinds]},
        )
        await self.notifier.add_direct_message(
            ctx.workflow.thread_id,
            text,
            kind=NotificationKind.PROMPT,
            idempotency_key=f"recommendations:{ctx.step.id}",
        )
        await self.complete_step(ctx, ai_suggestion=text)
        return StepOutcome(completed=True)

    async def _revise_asset(self, ctx: StepContext, config: ApiCallConfig) -> StepOutcome:
        """Gate after the review loop.

        Revisions are generated inside the review step's self-loop, and the
        review only completes once the asset is approved. Reaching this step
        (normally it is skipped on approval; a rollback or force activation
        can run it) therefore records the final version instead of producing
        a new one.
        """
        review = ctx.step_named(config.review_step)
        generation = ctx.step_named(config.generation_step)
        if review is None or review.status != StepStatus.COMPLETE.value:
            return StepOutcome(
                completed=False,
                response="The asset review has to be finished before revisions can be closed.",
            )
        generation_meta = (generation.meta or {}) if generation else {}
        await self.store.merge_step_meta(
            ctx.step.id,
            {
                "reviewDecision": (review.meta or {}).get("reviewDecision", ReviewDecision.APPROVED.value),
                "finalAssetVersion": generation_meta.get("assetVersion"),
                "revisionCount": int(generation_meta.get("revisionCount", 0)),
            },
        )
        await self.complete_step(ctx, ai_suggestion=generation.ai_suggestion if generation else None)
        return StepOutcome(completed=True)


class AssetCreationHandler(BaseStepHandler):
    step_type = StepType.ASSET_CREATION

    async def handle(self, ctx: StepContext) -> StepOutcome:
        config: AssetCreationConfig = ctx.config
        kind = resolve_asset_kind(ctx, config)
        instructions = build_generation_instructions(config, kind)

        source: dict[str, Any] = {}
        for name in config.source_steps:
            step = ctx.step_named(name)
            if step is None:
                continue
            collected = (step.meta or {}).get("collectedInformation")
            if collected:
                source.update(collected)
            elif step.user_input:
                source[name] = step.user_input

        await self.notifier.add_direct_message(
            ctx.workflow.thread_id,
            f"Generating your {kind.label}...",
            kind=NotificationKind.STATUS,
            idempotency_key=f"generating:{ctx.step.id}",
        )
        content = await self.services.generator.generate(
            AssetRequest(instructions=instructions, collected_information=source, asset_kind=kind)
        )
        asset = await self.store.create_asset(
            thread_id=ctx.workflow.thread_id,
            workflow_id=ctx.workflow.id,
            step_id=ctx.step.id,
            kind=kind,
            title=kind.label,
            content=content,
        )
        await self.store.merge_step_meta(
            ctx.step.id,
            {
                "assetKind": kind.value,
                "assetVersion": asset.version,
                "generationInstructions": instructions,
                "sourceInformation": source,
            },
        )
        await self.notifier.add_direct_message(
            ctx.workflow.thread_id,
            f"Here's your {kind.label}:\n\n{content}",
            kind=NotificationKind.ASSET,
            idempotency_key=f"asset:{ctx.step.id}:v{asset.version}",
        )
        await self.complete_step(ctx, ai_suggestion=content, completion_prompt=instructions)
        return StepOutcome(completed=True)


HANDLER_CLASSES: dict[StepType, type[BaseStepHandler]] = {
    StepType.USER_INPUT: UserInputHandler,
    StepType.AI_SUGGESTION: AiSuggestionHandler,
    StepType.JSON_DIALOG: JsonDialogHandler,
    StepType.API_CALL: ApiCallHandler,
    StepType.ASSET_CREATION: AssetCreationHandler,
}


def build_handler_table(services: HandlerServices) -> dict[StepType, BaseStepHandler]:
    return {step_type: handler_cls(services) for step_type, handler_cls in HANDLER_CLASSES.items()}
