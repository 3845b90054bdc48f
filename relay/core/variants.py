"""Relay variant configuration.

Each variant is one parameterization of the same pipeline: input model,
output model, prompts, generation parameters and guardrails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

from pydantic import BaseModel

from relay.core.origins import OriginPolicy
from relay.core.schemas import (
    CoachFeedback,
    PromptRequest,
    SubmissionRequest,
    VerdictFeedback,
)
from relay.upstream.llm_client import GenerationParams
from relay.upstream.prompt_runner import (
    COACH_SYSTEM_PROMPT,
    PLAIN_TEXT_SYSTEM_PROMPT,
    PROMPT_TEMPLATE,
    SUBMISSION_TEMPLATE,
    VERDICT_SYSTEM_PROMPT,
    PromptRunner,
)

RESPONSE_TEXT_MIN_CHARS = 10
RESPONSE_TEXT_MAX_CHARS = 2000


@dataclass(frozen=True)
class TextWindow:
    """Inclusive length bounds on one request field."""

    field_name: str
    min_chars: int
    max_chars: int

    def violation(self, value: str) -> Optional[str]:
        n = len(value)
        if n < self.min_chars:
            return f"{self.field_name} too short (min {self.min_chars} chars, got {n})"
        if n > self.max_chars:
            return f"{self.field_name} too long (max {self.max_chars} chars, got {n})"
        return None


@dataclass(frozen=True)
class RelayVariant:
    name: str
    request_model: Type[BaseModel]
    system_prompt: str
    template: str
    params: GenerationParams
    # None means plain-text mode: the reply is {"text": ...}
    response_model: Optional[Type[BaseModel]] = None
    text_window: Optional[TextWindow] = None
    origin_policy: Optional[OriginPolicy] = None
    liveness_message: Optional[str] = None

    @property
    def structured(self) -> bool:
        return self.response_model is not None

    @property
    def gated(self) -> bool:
        return self.origin_policy is not None

    def prompt_runner(self) -> PromptRunner:
        return PromptRunner(system_prompt=self.system_prompt, template=self.template)


def default_variants(
    model: str,
    allowed_origins: Tuple[str, ...] = (),
) -> Dict[str, RelayVariant]:
    plain = GenerationParams(model=model, max_output_tokens=250, temperature=0.2)
    structured = GenerationParams(
        model=model, max_output_tokens=500, temperature=0.2, json_mode=True
    )
    variants = [
        RelayVariant(
            name="prompt",
            request_model=PromptRequest,
            system_prompt=PLAIN_TEXT_SYSTEM_PROMPT,
            template=PROMPT_TEMPLATE,
            params=plain,
        ),
        RelayVariant(
            name="feedback",
            request_model=SubmissionRequest,
            system_prompt=VERDICT_SYSTEM_PROMPT,
            template=SUBMISSION_TEMPLATE,
            params=structured,
            response_model=VerdictFeedback,
        ),
        RelayVariant(
            name="coach",
            request_model=SubmissionRequest,
            system_prompt=COACH_SYSTEM_PROMPT,
            template=SUBMISSION_TEMPLATE,
            params=structured,
            response_model=CoachFeedback,
            text_window=TextWindow(
                "response_text", RESPONSE_TEXT_MIN_CHARS, RESPONSE_TEXT_MAX_CHARS
            ),
            origin_policy=OriginPolicy.from_list(allowed_origins),
            liveness_message="Coach relay is running.",
        ),
    ]
    return {v.name: v for v in variants}

