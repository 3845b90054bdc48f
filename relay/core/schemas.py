"""Request, response and error models shared by every relay variant."""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


def _non_blank(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value


class PromptRequest(BaseModel):
    prompt: str = Field(..., description="Free-form prompt forwarded to the model")

    @field_validator("prompt")
    @classmethod
    def prompt_not_empty(cls, v: str) -> str:
        return _non_blank(v, "prompt")


class SubmissionRequest(BaseModel):
    response_text: str = Field(..., description="The learner's written response")
    learning_objective: str = Field(..., description="Objective the response is judged against")
    criteria: List[str] = Field(..., description="Success criteria, one per entry")

    @field_validator("response_text", "learning_objective")
    @classmethod
    def text_not_empty(cls, v: str, info: ValidationInfo) -> str:
        return _non_blank(v, info.field_name)

    @field_validator("criteria")
    @classmethod
    def criteria_not_empty(cls, v: List[str]) -> List[str]:
        cleaned = [c.strip() for c in v if c and c.strip()]
        if not cleaned:
            raise ValueError("criteria must contain at least one non-empty string")
        return cleaned


class Verdict(str, Enum):
    MEETS = "meets"
    PARTIALLY_MEETS = "partially_meets"
    NOT_YET = "not_yet"


class TextResponse(BaseModel):
    text: str


class VerdictFeedback(BaseModel):
    verdict: Verdict
    feedback: str


class CoachFeedback(BaseModel):
    verdict: Verdict
    summary: str
    criteria_feedback: List[str] = Field(default_factory=list)
    next_step: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
    status: Optional[int] = None
    origin: Optional[str] = None
    raw_text: Optional[str] = None
    raw_upstream: Optional[str] = None
