import asyncio
import json

import httpx
import pytest
from openai import AsyncOpenAI

from app.config import Settings
from app.domain.errors import UpstreamError
from app.infra.llm.openai_adapter import OpenAILlm

COMPLETION = {
    "id": "chatcmpl-1", "object": "chat.completion", "created": 1700000000, "model": "k2",
    "choices": [{"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": "ok"}}],
}


def _llm(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = AsyncOpenAI(api_key="k", base_url="https://llm.test/v1", http_client=http, max_retries=0)
    return OpenAILlm(Settings(llm_api_key="k"), client)


def test_chat_forwards_messages_and_model():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=COMPLETION)

    body = asyncio.run(_llm(handler).chat([{"role": "user", "content": "hi"}], model="k2"))
    assert body["choices"][0]["message"]["content"] == "ok"
    assert seen[0]["model"] == "k2" and seen[0]["messages"] == [{"role": "user", "content": "hi"}]

    asyncio.run(_llm(handler).chat([{"role": "user", "content": "hi"}]))
    assert seen[1]["model"] == Settings().llm_model


def test_chat_upstream_status_and_transport_errors():
    def limited(request):
        return httpx.Response(429, json={"error": {"message": "slow down"}})

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_llm(limited).chat([{"role": "user", "content": "hi"}]))
    assert exc.value.status == 429

    def unreachable(request):
        raise httpx.ConnectError("refused")

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_llm(unreachable).chat([{"role": "user", "content": "hi"}]))
    assert exc.value.status is None


def test_complete_returns_none_on_failure():
    def broken(request):
        return httpx.Response(503, json={"error": {"message": "busy"}})

    assert asyncio.run(_llm(broken).complete(system="s", user="u")) is None
