# relay/api/main.py
from __future__ import annotations

import json
import time
import uuid
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.core.handler import RelayHandler, RelayRequest, cors_headers
from relay.core.origins import parse_origin_list
from relay.core.schemas import ErrorResponse
from relay.core.variants import RelayVariant, default_variants
from relay.upstream.llm_client import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    LLMClient,
    MockLLMClient,
    OpenAIResponsesClient,
)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_VARIANT = "prompt"


# Config via env and an optional .env file
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "activity-relay"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = "dev"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_API_URL: str = DEFAULT_API_URL
    OPENAI_MODEL: str = DEFAULT_MODEL
    UPSTREAM_TIMEOUT_S: float = 60.0
    ALLOWED_ORIGINS: str = "https://learn.example.edu"
    USE_MOCK_LLM: bool = False
    LOG_JSON: bool = True
    MAX_DETAIL_CHARS: int = 2000
    MAX_PREVIEW_CHARS: int = 500

    def allowed_origins(self) -> List[str]:
        return parse_origin_list(self.ALLOWED_ORIGINS)


settings = Settings()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

VARIANTS: Dict[str, RelayVariant] = default_variants(
    model=settings.OPENAI_MODEL,
    allowed_origins=tuple(settings.allowed_origins()),
)


def _json_log(entry: dict):
    if settings.LOG_JSON:
        print(json.dumps(entry, default=str), flush=True)
    else:
        print(entry)


# Dependency to provide the upstream LLM client
def get_llm_client() -> LLMClient:
    if settings.USE_MOCK_LLM:
        return MockLLMClient()
    return OpenAIResponsesClient(
        api_url=settings.OPENAI_API_URL, timeout=settings.UPSTREAM_TIMEOUT_S
    )


def get_api_key() -> Optional[str]:
    if settings.USE_MOCK_LLM and not settings.OPENAI_API_KEY:
        return "mock-key"
    return settings.OPENAI_API_KEY


@app.get("/health", response_model=dict)
async def health():
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "env": settings.APP_ENV,
        "variants": sorted(VARIANTS),
    }


def _unknown_relay(variant_name: str, request: Request) -> Response:
    headers = cors_headers("*")
    if request.method.upper() == "OPTIONS":
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)
    body = ErrorResponse(error=f"Unknown relay '{variant_name}'")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


async def _relay(
    variant_name: str, request: Request, llm: LLMClient, api_key: Optional[str]
) -> Response:
    variant = VARIANTS.get(variant_name)
    if variant is None:
        return _unknown_relay(variant_name, request)

    req_id = uuid.uuid4().hex[:12]
    start = time.time()
    handler = RelayHandler(
        variant,
        llm_client=llm,
        api_key=api_key,
        max_detail_chars=settings.MAX_DETAIL_CHARS,
        max_preview_chars=settings.MAX_PREVIEW_CHARS,
    )
    result = await handler.handle(
        RelayRequest(
            method=request.method,
            body=await request.body(),
            origin=request.headers.get("origin"),
        )
    )
    _json_log(
        {
            "event": "relay_request",
            "request_id": req_id,
            "variant": variant.name,
            "method": request.method,
            "origin": request.headers.get("origin"),
            "status": result.status,
            "latency_ms": int((time.time() - start) * 1000),
        }
    )
    return Response(content=result.body, status_code=result.status, headers=result.headers)


@app.api_route("/", methods=ALL_METHODS)
async def relay_default(
    request: Request,
    llm: LLMClient = Depends(get_llm_client),
    api_key: Optional[str] = Depends(get_api_key),
):
    return await _relay(DEFAULT_VARIANT, request, llm, api_key)


@app.api_route("/api/{variant_name}", methods=ALL_METHODS)
async def relay_variant(
    variant_name: str,
    request: Request,
    llm: LLMClient = Depends(get_llm_client),
    api_key: Optional[str] = Depends(get_api_key),
):
    return await _relay(variant_name, request, llm, api_key)


# Every other path relays to the default variant.
@app.api_route("/{path:path}", methods=ALL_METHODS)
async def relay_any_path(
    path: str,
    request: Request,
    llm: LLMClient = Depends(get_llm_client),
    api_key: Optional[str] = Depends(get_api_key),
):
    return await _relay(DEFAULT_VARIANT, request, llm, api_key)
