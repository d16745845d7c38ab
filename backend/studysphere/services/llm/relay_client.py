# studysphere/services/llm/relay_client.py
import logging
from typing import AsyncIterator, Optional

import httpx

from studysphere.schemas.chat import ChatRequest
from studysphere.services.sse import iter_text_deltas, relay_text
from studysphere.utils.errors import ErrorCode, RelayStreamError, UpstreamError
from studysphere.utils.http import read_payload

from .base import ChatStreamProvider

logger = logging.getLogger(__name__)


class RelayClient(ChatStreamProvider):
    """Consumes a StudySphere relay (``POST /api/chat``) over HTTP."""

    def __init__(
            self,
            base_url: str,
            client: Optional[httpx.AsyncClient] = None,
            path: str = "/api/chat"
    ):
        self.url = base_url.rstrip("/") + path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    async def open_text_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        http_request = self._client.build_request(
            "POST",
            self.url,
            json=request.to_wire(),
            headers={"Accept": "text/event-stream"}
        )
        response = await self._client.send(http_request, stream=True)

        if response.is_error:
            try:
                payload = await read_payload(response)
            finally:
                await response.aclose()
            logger.error(f"Relay rejected turn ({response.status_code}): {payload}")
            code = ErrorCode.GEMINI_API_ERROR
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                code = payload["error"].get("code", code)
            raise UpstreamError(code, "Failed to get response", response.status_code, payload)

        return self._read(response)

    async def _read(self, response: httpx.Response) -> AsyncIterator[str]:
        try:
            async for text in iter_text_deltas(response.aiter_lines(), relay_text):
                yield text
        except httpx.HTTPError as e:
            logger.error(f"Relay stream error: {str(e)}")
            raise RelayStreamError(f"Relay stream failed: {str(e)}") from e
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
