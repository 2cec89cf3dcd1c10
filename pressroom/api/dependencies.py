"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Request

from pressroom.services.workflow_engine import WorkflowEngine


def get_engine(request: Request) -> WorkflowEngine:
    return request.app.state.workflow_engine


__all__ = ["get_engine"]
