import json

import httpx
import pytest

from agentloop.config import ModelConfig
from agentloop.exceptions import LLMAPIError, LLMError
from agentloop.llm import GenerationOptions, Message, OllamaClient, create_client


def _client(handler) -> OllamaClient:
    return OllamaClient(base_url="http://ollama:11434/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_generate_sends_chat_request():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "<wait>1</wait>"}})

    client = _client(handler)
    try:
        text = await client.generate(
            "llama3",
            "system text",
            "user text",
            options=GenerationOptions(context_window_size=2048, temperature=0.1, repeat_penalty=1.0, top_k=5),
            history=[
                Message(role="assistant", content="<wait>1</wait>"),
                Message(role="user", content="(the command produced no output)"),
            ],
        )
    finally:
        await client.close()

    assert text == "<wait>1</wait>"
    assert seen["url"] == "http://ollama:11434/api/chat"
    body = seen["body"]
    assert body["model"] == "llama3"
    assert body["stream"] is False
    assert body["options"] == {"num_ctx": 2048, "temperature": 0.1, "repeat_penalty": 1.0, "top_k": 5}
    assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant", "user"]
    assert body["messages"][0]["content"] == "system text"


@pytest.mark.asyncio
async def test_generate_raises_api_error_on_bad_status():
    client = _client(lambda request: httpx.Response(500, text="model not loaded"))
    try:
        with pytest.raises(LLMAPIError) as exc_info:
            await client.generate("llama3", "s", "p")
    finally:
        await client.close()

    assert exc_info.value.status_code == 500
    assert "model not loaded" in str(exc_info.value)


@pytest.mark.asyncio
async def test_generate_raises_on_missing_message():
    client = _client(lambda request: httpx.Response(200, json={"done": True}))
    try:
        with pytest.raises(LLMError):
            await client.generate("llama3", "s", "p")
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_generate_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(LLMAPIError):
            await client.generate("llama3", "s", "p")
    finally:
        await client.close()


def test_options_from_config():
    options = GenerationOptions.from_config(ModelConfig(context_window=4096, top_k=40))

    assert options.to_ollama() == {
        "num_ctx": 4096,
        "temperature": 0.9,
        "repeat_penalty": 1.3,
        "top_k": 40,
    }


def test_create_client_rejects_unknown_provider():
    assert isinstance(create_client("ollama"), OllamaClient)
    with pytest.raises(ValueError):
        create_client("openai")

