"""RelayHandler: validates an inbound request, calls upstream, shapes the reply.

The handler is framework-neutral. It consumes a RelayRequest (method, Origin
header, raw body) and always returns a RelayResponse; failures are converted
to JSON error payloads here and never escape to the host.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from relay.core.schemas import ErrorResponse, TextResponse
from relay.core.extraction import classify_payload, extract_text, strip_code_fences, truncate
from relay.core.variants import RelayVariant
from relay.upstream.llm_client import LLMClient, UpstreamError

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MAX_DETAIL_CHARS = 2000
MAX_PREVIEW_CHARS = 500

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"
JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def cors_headers(allow_origin: Optional[str]) -> Dict[str, str]:
    """Permission headers for a validated origin; none when it was rejected."""
    if allow_origin is None:
        return {}
    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }
    if allow_origin != "*":
        headers["Vary"] = "Origin"
    return headers


@dataclass(frozen=True)
class RelayRequest:
    method: str
    body: bytes = b""
    origin: Optional[str] = None


@dataclass
class RelayResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    payload: Optional[Dict[str, Any]] = None
    text: Optional[str] = None

    @property
    def body(self) -> bytes:
        if self.payload is not None:
            return json.dumps(self.payload).encode("utf-8")
        if self.text is not None:
            return self.text.encode("utf-8")
        return b""


class RelayHandler:
    """
    One configurable relay pipeline.

    Example:
        handler = RelayHandler(variant, llm_client=MockLLMClient(), api_key="sk-...")
        resp = await handler.handle(RelayRequest("POST", b'{"prompt": "2+2=?"}'))
    """

    def __init__(
        self,
        variant: RelayVariant,
        llm_client: LLMClient,
        api_key: Optional[str],
        max_detail_chars: int = MAX_DETAIL_CHARS,
        max_preview_chars: int = MAX_PREVIEW_CHARS,
    ):
        self.variant = variant
        self.llm = llm_client
        self.api_key = api_key
        self.max_detail_chars = max_detail_chars
        self.max_preview_chars = max_preview_chars

    def _allowed_origin(self, origin: Optional[str]) -> Optional[str]:
        if not self.variant.gated:
            return "*"
        if self.variant.origin_policy.is_allowed(origin):
            return origin
        return None

    def _json(self, http_status: int, body: BaseModel, allow_origin: Optional[str]) -> RelayResponse:
        headers = cors_headers(allow_origin)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        return RelayResponse(
            status=http_status, headers=headers, payload=body.model_dump(mode="json", exclude_none=True)
        )

    def _error(self, http_status: int, allow_origin: Optional[str], **fields: Any) -> RelayResponse:
        return self._json(http_status, ErrorResponse(**fields), allow_origin)

    async def handle(self, request: RelayRequest) -> RelayResponse:
        allow_origin = self._allowed_origin(request.origin)
        try:
            return await self._handle(request, allow_origin)
        except Exception as exc:
            logger.exception("Unhandled relay failure in variant %s", self.variant.name)
            return self._error(
                500,
                allow_origin,
                error="Relay error",
                details=truncate(str(exc), self.max_detail_chars),
            )

    async def _handle(self, request: RelayRequest, allow_origin: Optional[str]) -> RelayResponse:
        method = request.method.upper()

        if method == "OPTIONS":
            return RelayResponse(status=204, headers=cors_headers(allow_origin))

        if method == "GET" and self.variant.liveness_message:
            return RelayResponse(
                status=200,
                headers={"Content-Type": TEXT_CONTENT_TYPE},
                text=self.variant.liveness_message,
            )

        if method != "POST":
            return self._error(405, allow_origin, error="Method Not Allowed")

        if self.variant.gated and allow_origin is None:
            logger.info("Rejected origin %r for variant %s", request.origin, self.variant.name)
            return self._error(403, None, error="Origin not allowed", origin=request.origin)

        if not self.api_key:
            return self._error(500, allow_origin, error="Missing OPENAI_API_KEY in env")

        try:
            data = json.loads(request.body or b"")
        except (ValueError, RecursionError):
            return self._error(400, allow_origin, error="Request body must be valid JSON")

        try:
            validated = self.variant.request_model.model_validate(data)
        except ValidationError as exc:
            errors = exc.errors()
            first = ".".join(str(p) for p in errors[0]["loc"]) if errors else ""
            details = [
                f"{'.'.join(str(p) for p in e['loc']) or 'body'}: {e['msg']}" for e in errors
            ]
            return self._error(
                400,
                allow_origin,
                error=f"Missing or invalid {first or 'request body'}",
                details=details,
            )

        fields = validated.model_dump()
        window = self.variant.text_window
        if window is not None:
            problem = window.violation(fields[window.field_name])
            if problem:
                return self._error(400, allow_origin, error=problem)

        messages = self.variant.prompt_runner().build_messages(fields)
        try:
            data = await self.llm.generate(messages, self.variant.params, self.api_key)
        except UpstreamError as exc:
            return self._error(
                502,
                allow_origin,
                error="OpenAI proxy error",
                status=exc.status,
                details=truncate(exc.body, self.max_detail_chars),
            )

        text = strip_code_fences(extract_text(classify_payload(data)))

        if not self.variant.structured:
            return self._json(200, TextResponse(text=text), allow_origin)

        try:
            parsed = json.loads(text)
            if not isinstance(parsed, dict):
                raise ValueError("model output is not a JSON object")
            result = self.variant.response_model.model_validate(parsed)
        except (ValueError, RecursionError, ValidationError) as exc:
            logger.warning("Unparseable structured output in %s: %s", self.variant.name, exc)
            return self._error(
                500,
                allow_origin,
                error="Model did not return valid JSON",
                details=truncate(str(exc), self.max_detail_chars),
                raw_text=truncate(text, self.max_preview_chars),
                raw_upstream=truncate(json.dumps(data, default=str), self.max_preview_chars),
            )
        return self._json(200, result, allow_origin)
