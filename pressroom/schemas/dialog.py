from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field


class PriorStepOutput(BaseModel):
    name: str
    output: Any


class DialogIncomplete(BaseModel):
    is_complete: Literal[False] = False
    collected_information: dict[str, Any] = Field(default_factory=dict)
    missing_information: list[str] = Field(default_factory=list)
    completion_percentage: int = Field(default=0, ge=0, le=100)
    next_question: str
    # True when the reply could not be obtained or parsed and this is a stand-in.
    fallback: bool = False


class DialogComplete(BaseModel):
    is_complete: Literal[True] = True
    collected_information: dict[str, Any] = Field(default_factory=dict)
    missing_information: list[str] = Field(default_factory=list)
    suggested_next_step: str | None = None


DialogResult = Union[DialogIncomplete, DialogComplete]
