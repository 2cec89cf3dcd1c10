"""
Pressroom - FastAPI Application
Workflow engine API for template-driven press release dialogs
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from pressroom.api import websocket
from pressroom.api.v1 import health, steps, templates, threads, workflows
from pressroom.config import Settings, get_settings
from pressroom.core.anthropic_client import build_anthropic_client
from pressroom.core.completion_client import AnthropicCompletionClient, CompletionClient
from pressroom.core.exceptions import (
    ActiveWorkflowExistsError,
    AppError,
    CompletionError,
    ConcurrentStepUpdateError,
    DependencyUnmetError,
    InvariantViolationError,
    NotFoundError,
    StepStateError,
    TemplateValidationError,
)
from pressroom.core.logger import configure_logging
from pressroom.database import build_engine, build_session_factory, init_db
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.workflow_engine import build_workflow_engine
from pressroom.services.workflow_store import WorkflowStore
from pressroom.websockets.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

ERROR_STATUS: list[tuple[type[AppError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DependencyUnmetError, status.HTTP_409_CONFLICT),
    (ActiveWorkflowExistsError, status.HTTP_409_CONFLICT),
    (ConcurrentStepUpdateError, status.HTTP_409_CONFLICT),
    (StepStateError, status.HTTP_409_CONFLICT),
    (TemplateValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CompletionError, status.HTTP_502_BAD_GATEWAY),
    (InvariantViolationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _status_for(exc: AppError) -> int:
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    code = _status_for(exc)
    if code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        detail = str(exc) if isinstance(exc, InvariantViolationError) else "The request could not be completed"
    else:
        detail = str(exc)
    return JSONResponse(status_code=code, content={"detail": detail, "error": type(exc).__name__})


def create_app(settings: Settings | None = None, completion: CompletionClient | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        configure_logging(settings.log_level)
        logger.info("Starting %s...", settings.app_name)

        db_engine = build_engine(settings)
        init_db(db_engine)
        logger.info("Database initialized (%s)", db_engine.dialect.name)

        store = WorkflowStore(build_session_factory(db_engine))
        registry = TemplateRegistry.with_builtin_templates()
        await registry.load_persisted(store)
        await registry.sync_to_store(store)

        client = completion or AnthropicCompletionClient(
            build_anthropic_client(settings),
            model=settings.anthropic_model,
            max_tokens=settings.completion_max_tokens,
            timeout_seconds=settings.completion_timeout_seconds,
        )
        connections = ConnectionManager()
        app.state.settings = settings
        app.state.db_engine = db_engine
        app.state.connection_manager = connections
        app.state.workflow_engine = build_workflow_engine(
            settings,
            store,
            client,
            registry=registry,
            broadcaster=connections,
        )
        logger.info("API running on %s environment", settings.app_env)
        yield
        db_engine.dispose()
        logger.info("Shutting down %s...", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        description="Workflow engine API for press release dialogs",
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
    )

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, app_error_handler)

    @app.get("/")
    async def root() -> dict:
        return {
            "name": settings.app_name,
            "environment": settings.app_env,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    prefix = settings.api_v1_prefix
    app.include_router(health.router, prefix=prefix, tags=["Health"])
    app.include_router(templates.router, prefix=f"{prefix}/templates", tags=["Templates"])
    app.include_router(workflows.router, prefix=f"{prefix}/workflows", tags=["Workflows"])
    app.include_router(threads.router, prefix=f"{prefix}/threads", tags=["Threads"])
    app.include_router(steps.router, prefix=f"{prefix}/steps", tags=["Steps"])
    app.include_router(websocket.router, tags=["WebSocket"])
    return app


app = create_app()
