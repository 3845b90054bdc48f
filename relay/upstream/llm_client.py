"""LLM client abstraction, the OpenAI Responses API client and a Mock implementation for deterministic testing."""

from __future__ import annotations

import abc
import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

DEFAULT_API_URL = "https://api.openai.com/v1/responses"
DEFAULT_MODEL = "gpt-4.1-mini"


class UpstreamError(Exception):
    """Raised when the generation endpoint cannot produce a usable payload."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


@dataclass(frozen=True)
class GenerationParams:
    model: str = DEFAULT_MODEL
    max_output_tokens: int = 250
    temperature: float = 0.2
    json_mode: bool = False


def build_request_body(messages: List[Dict[str, str]], params: GenerationParams) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "model": params.model,
        "input": messages,
        "max_output_tokens": params.max_output_tokens,
        "temperature": params.temperature,
    }
    if params.json_mode:
        body["text"] = {"format": {"type": "json_object"}}
    return body


class LLMClient(abc.ABC):
    """Abstract LLM client interface."""

    @abc.abstractmethod
    async def generate(
        self, messages: List[Dict[str, str]], params: GenerationParams, api_key: str
    ) -> Dict[str, Any]:
        """
        Send role-tagged messages upstream and return the parsed JSON payload.

        Implementations raise UpstreamError on any failure of the upstream leg.
        """
        raise NotImplementedError


class OpenAIResponsesClient(LLMClient):
    """
    Client for the OpenAI Responses API.

    One POST per call, bearer-authenticated, never retried. ``transport`` is
    passed through to ``httpx.AsyncClient`` so tests can plug in a MockTransport.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def generate(
        self, messages: List[Dict[str, str]], params: GenerationParams, api_key: str
    ) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        body = build_request_body(messages, params)
        client_kwargs: Dict[str, Any] = {"transport": self.transport}
        if self.timeout is not None:
            client_kwargs["timeout"] = self.timeout
        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                resp = await client.post(self.api_url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Upstream transport failure: %s", exc)
            raise UpstreamError("Upstream request failed", body=str(exc)) from exc

        if not resp.is_success:
            logger.warning("Upstream returned status %s", resp.status_code)
            raise UpstreamError(
                "Upstream returned an error status", status=resp.status_code, body=resp.text
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(
                "Upstream returned a non-JSON body", status=resp.status_code, body=resp.text
            ) from exc


@dataclass
class MockLLMClient(LLMClient):
    """
    Deterministic mock LLM client used for testing, CI and keyless local runs.

    Behavior:
    - Returns a Responses API shaped payload with one output_text content part.
    - In json_mode the text is a JSON object whose verdict is derived from a
      SHA256 hash of the user message; otherwise it is a short plain reply.
    - Every call is recorded in ``calls``.
    """

    salt: str = "mock-llm-salt-v1"
    calls: List[Dict[str, Any]] = field(default_factory=list)

    VERDICTS = ("meets", "partially_meets", "not_yet")

    def _deterministic_index(self, text: str, modulo: int) -> int:
        h = hashlib.sha256()
        h.update(self.salt.encode("utf-8"))
        h.update(text.encode("utf-8"))
        return h.digest()[0] % modulo

    def _mock_text(self, user_text: str, json_mode: bool) -> str:
        verdict = self.VERDICTS[self._deterministic_index(user_text, len(self.VERDICTS))]
        if not json_mode:
            return f"Mock reply ({verdict})."
        return json.dumps(
            {
                "verdict": verdict,
                "feedback": f"Mock feedback: {verdict} (based on prompt hash).",
                "summary": "Mock summary of the response.",
                "criteria_feedback": ["Mock note for each criterion."],
                "next_step": "Mock next step: revise one sentence.",
            }
        )

    async def generate(
        self, messages: List[Dict[str, str]], params: GenerationParams, api_key: str
    ) -> Dict[str, Any]:
        self.calls.append({"messages": messages, "params": params})
        user_text = next((m["content"] for m in messages if m.get("role") == "user"), "")
        text = self._mock_text(user_text, params.json_mode)
        return {
            "object": "response",
            "model": params.model,
            "output": [
                {
                    "type": "message",
                    "role": "assistant",
                    "content": [{"type": "output_text", "text": text}],
                }
            ],
        }
