import asyncio
import json

import httpx
import pytest
from conftest import collect, mock_client

from studysphere.schemas.chat import ChatRequest, Message, Role
from studysphere.services.chat import ChatService
from studysphere.services.llm.relay_client import RelayClient
from studysphere.services.session_store import SessionStore
from studysphere.services.sse import encode_frame
from studysphere.services.storage import InMemoryStorage
from studysphere.utils.errors import UpstreamError


def test_relay_client_posts_wire_format_and_decodes_frames():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        body = encode_frame("Hi") + "data: not-json\n\n" + encode_frame(" there")
        return httpx.Response(200, content=body.encode(), headers={"content-type": "text/event-stream"})

    relay = RelayClient("http://relay.test/", client=mock_client(handler))
    request = ChatRequest(
        message="Next",
        conversation_history=[Message(role=Role.USER, content="First")],
        deep_thinking=True
    )

    async def run():
        return await collect(await relay.open_text_stream(request))

    assert asyncio.run(run()) == ["Hi", " there"]
    assert captured["url"] == "http://relay.test/api/chat"
    assert captured["body"] == {
        "message": "Next",
        "conversationHistory": [{"role": "user", "content": "First"}],
        "deepThinking": True
    }


def test_relay_client_raises_with_relay_error_code():
    error = {"error": {"code": "MISSING_MESSAGE", "message": "Message or images are required"}}
    relay = RelayClient("http://relay.test", client=mock_client(lambda r: httpx.Response(400, json=error)))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(relay.open_text_stream(ChatRequest(message="")))

    assert exc_info.value.status_code == 400
    assert exc_info.value.error_code == "MISSING_MESSAGE"


def test_chat_service_runs_over_relay_client():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=(encode_frame("4") + encode_frame("2")).encode())

    store = SessionStore(InMemoryStorage()).load()
    service = ChatService(store, RelayClient("http://relay.test", client=mock_client(handler)))

    async def run():
        return await collect(await service.send_message(store.current.id, "6 * 7?"))

    assert asyncio.run(run()) == ["4", "2"]
    assert store.current.messages[-1].content == "42"
