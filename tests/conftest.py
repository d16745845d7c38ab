import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from studysphere.core.config import Settings
from studysphere.main import create_app
from studysphere.schemas.auth import AuthSession, AuthUser
from studysphere.schemas.chat import ChatRequest
from studysphere.services.llm.base import ChatStreamProvider
from studysphere.services.llm.gemini import GeminiService
from studysphere.services.storage import InMemoryStorage

GOOD_TOKEN = "good-token"
AUTH_HEADERS = {"Authorization": f"Bearer {GOOD_TOKEN}"}


def gemini_chunk(text: str) -> str:
    payload = {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
    return f"data: {json.dumps(payload)}\r\n\r\n"


def sse_body(*lines: str) -> bytes:
    return "".join(lines).encode()


class FakeAuthProvider:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.user = AuthUser(id="user-1", email="ada@example.com", user_metadata={"name": "Ada Lovelace"})

    async def get_session(self, request) -> Optional[AuthSession]:
        if self.fail:
            raise RuntimeError("auth provider down")
        if request.headers.get("authorization") == f"Bearer {GOOD_TOKEN}":
            return AuthSession(user=self.user, access_token=GOOD_TOKEN)
        return None


class FakeStreamProvider(ChatStreamProvider):
    """Scripted stream provider recording every request it receives."""

    def __init__(
            self,
            deltas: Optional[list[str]] = None,
            open_error: Optional[Exception] = None,
            fail_after: Optional[int] = None
    ):
        self.deltas = deltas if deltas is not None else ["Hello", " there"]
        self.open_error = open_error
        self.fail_after = fail_after
        self.requests: list[ChatRequest] = []

    async def open_text_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        if self.open_error is not None:
            raise self.open_error
        return self._stream()

    async def _stream(self) -> AsyncIterator[str]:
        for i, text in enumerate(self.deltas):
            if self.fail_after is not None and i == self.fail_after:
                raise RuntimeError("stream broke")
            yield text


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        GOOGLE_GEMINI_API_KEY="gemini-key",
        GEMINI_API_BASE="https://gemini.test/v1beta",
        AUTUMN_SECRET_KEY="autumn-key",
        AUTUMN_API_URL="https://autumn.test/v1",
        SUPABASE_URL="https://supabase.test",
        SUPABASE_ANON_KEY="anon-key",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        app.state.auth_provider = FakeAuthProvider()
        app.state.storage = InMemoryStorage()
        app.state.llm_service = FakeStreamProvider()
        yield test_client


@pytest.fixture
def use_gemini(app, settings):
    """Install a GeminiService backed by ``handler`` on the running app."""
    def install(handler):
        service = GeminiService(settings, client=mock_client(handler))
        app.state.llm_service = service
        return service
    return install


async def collect(deltas: AsyncIterator[str]) -> list[str]:
    return [text async for text in deltas]


def run_turn(start: Callable[[], Awaitable[AsyncIterator[str]]]) -> list[str]:
    """Start a turn and drain its deltas on a fresh event loop."""
    async def run():
        return await collect(await start())
    return asyncio.run(run())
