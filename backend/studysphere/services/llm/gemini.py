# studysphere/services/llm/gemini.py
import logging
import re
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from studysphere.core.config import Settings
from studysphere.schemas.chat import ChatRequest, Message, Role
from studysphere.services.prompts import FIRST_TURN_TEMPLATE, build_system_instruction
from studysphere.services.sse import gemini_text, iter_text_deltas
from studysphere.utils.errors import (
    ConfigurationError,
    ErrorCode,
    RelayStreamError,
    UpstreamError,
    ValidationError
)
from studysphere.utils.http import read_payload

from .base import ChatStreamProvider

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:([^;,]+)(?:;[^,]*)?,(.*)$", re.DOTALL)


def parse_data_uri(uri: str) -> tuple[str, str]:
    """Split ``data:<mime>;base64,<payload>`` into (mime type, base64 payload)."""
    match = DATA_URI_PATTERN.match(uri)
    if not match or not match.group(2):
        raise ValidationError(ErrorCode.INVALID_REQUEST, "Images must be data URIs",
                              {"image": uri[:64]})
    return match.group(1), match.group(2)


def image_part(uri: str) -> Dict[str, Any]:
    mime_type, data = parse_data_uri(uri)
    return {"inline_data": {"mime_type": mime_type, "data": data}}


def history_content(message: Message) -> Dict[str, Any]:
    return {
        "role": "model" if message.role == Role.ASSISTANT else "user",
        "parts": [{"text": message.content}]
    }


class GeminiService(ChatStreamProvider):
    """Relays chat turns to Google Gemini's streamGenerateContent endpoint."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    def _api_key(self) -> str:
        if not self.settings.GOOGLE_GEMINI_API_KEY:
            raise ConfigurationError("Gemini API key not configured",
                                     {"setting": "GOOGLE_GEMINI_API_KEY"})
        return self.settings.GOOGLE_GEMINI_API_KEY

    def select_model(self, request: ChatRequest) -> str:
        if request.images:
            return self.settings.GEMINI_VISION_MODEL
        return self.settings.GEMINI_TEXT_MODEL

    def build_payload(self, request: ChatRequest) -> Dict[str, Any]:
        image_parts = [image_part(uri) for uri in request.images or []]
        contents = []

        if not request.conversation_history:
            # First turn carries the tutoring instruction inline
            text = FIRST_TURN_TEMPLATE.format(
                instruction=build_system_instruction(request.deep_thinking),
                message=request.message
            )
        else:
            contents.extend(history_content(m) for m in request.conversation_history)
            text = request.message

        contents.append({"role": "user", "parts": [{"text": text}, *image_parts]})

        return {
            "contents": contents,
            "generationConfig": {
                "temperature": 0.9 if request.deep_thinking else 0.7,
                "maxOutputTokens": 4000 if request.deep_thinking else 2000,
                "topP": 0.8,
                "topK": 10
            }
        }

    async def open_text_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        if not request.has_content():
            raise ValidationError(ErrorCode.MISSING_MESSAGE, "Message or images are required")

        api_key = self._api_key()
        payload = self.build_payload(request)
        model = self.select_model(request)

        http_request = self._client.build_request(
            "POST",
            f"{self.settings.GEMINI_API_BASE}/models/{model}:streamGenerateContent",
            params={"alt": "sse", "key": api_key},
            json=payload
        )
        response = await self._client.send(http_request, stream=True)

        if response.is_error:
            try:
                error_payload = await read_payload(response)
            finally:
                await response.aclose()
            logger.error(f"Gemini API error ({response.status_code}): {error_payload}")
            raise UpstreamError(
                ErrorCode.GEMINI_API_ERROR,
                "Failed to get response from AI",
                response.status_code,
                error_payload
            )

        logger.debug(f"Streaming {model} response")
        return self._relay(response)

    async def _relay(self, response: httpx.Response) -> AsyncIterator[str]:
        try:
            async for text in iter_text_deltas(response.aiter_lines(), gemini_text):
                yield text
        except httpx.HTTPError as e:
            logger.error(f"Gemini stream error: {str(e)}")
            raise RelayStreamError(f"Gemini stream failed: {str(e)}") from e
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
