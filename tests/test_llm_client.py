import asyncio
import json

import httpx
import pytest

from relay.upstream.llm_client import (
    GenerationParams,
    MockLLMClient,
    OpenAIResponsesClient,
    UpstreamError,
    build_request_body,
)
from relay.upstream.prompt_runner import PLAIN_TEXT_SYSTEM_PROMPT, PromptRunner

MESSAGES = PromptRunner(system_prompt=PLAIN_TEXT_SYSTEM_PROMPT).build_messages({"prompt": "2+2=?"})


def _client(handler):
    return OpenAIResponsesClient(
        api_url="https://upstream.test/v1/responses", transport=httpx.MockTransport(handler)
    )


def test_request_body_shape():
    plain = build_request_body(MESSAGES, GenerationParams())
    assert plain["model"] == "gpt-4.1-mini"
    assert plain["max_output_tokens"] == 250
    assert plain["temperature"] == 0.2
    assert plain["input"] == MESSAGES
    assert "text" not in plain

    structured = build_request_body(MESSAGES, GenerationParams(json_mode=True))
    assert structured["text"] == {"format": {"type": "json_object"}}


def test_client_posts_bearer_authenticated_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"output_text": "4"})

    data = asyncio.run(_client(handler).generate(MESSAGES, GenerationParams(), "sk-test"))

    assert data == {"output_text": "4"}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://upstream.test/v1/responses"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["input"][0]["role"] == "system"
    assert seen["body"]["input"][1] == {"role": "user", "content": "2+2=?"}


def test_client_raises_on_error_status():
    def handler(request):
        return httpx.Response(401, text='{"error": {"message": "Incorrect API key"}}')

    with pytest.raises(UpstreamError) as info:
        asyncio.run(_client(handler).generate(MESSAGES, GenerationParams(), "bad"))
    assert info.value.status == 401
    assert "Incorrect API key" in info.value.body


def test_client_raises_on_non_json_body():
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(UpstreamError) as info:
        asyncio.run(_client(handler).generate(MESSAGES, GenerationParams(), "sk"))
    assert info.value.status == 200


def test_client_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as info:
        asyncio.run(_client(handler).generate(MESSAGES, GenerationParams(), "sk"))
    assert info.value.status is None
    assert "connection refused" in info.value.body


def test_mock_client_is_deterministic_and_records_calls():
    mock = MockLLMClient(salt="test-salt")
    params = GenerationParams(json_mode=True)
    first = asyncio.run(mock.generate(MESSAGES, params, "ignored"))
    second = asyncio.run(mock.generate(MESSAGES, params, "ignored"))

    assert first == second
    assert len(mock.calls) == 2
    text = first["output"][0]["content"][0]["text"]
    assert json.loads(text)["verdict"] in MockLLMClient.VERDICTS
