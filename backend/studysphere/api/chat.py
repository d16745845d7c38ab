# studysphere/api/chat.py
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ..dependencies import get_llm_service
from ..schemas.chat import ChatRequest
from ..services.llm.base import ChatStreamProvider
from ..services.sse import STREAM_HEADERS, encode_stream

router = APIRouter()


def event_stream(
        deltas: AsyncIterator[str],
        on_close: Optional[Callable[[], Awaitable[None]]] = None
) -> StreamingResponse:
    """SSE response for ``deltas``; ``on_close`` runs once the response is done,
    also when the client went away before the body started."""
    return StreamingResponse(
        encode_stream(deltas),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
        background=BackgroundTask(on_close) if on_close else None
    )


@router.post("/chat")
async def relay_chat(
        request: ChatRequest,
        llm_service: ChatStreamProvider = Depends(get_llm_service)
) -> StreamingResponse:
    """Forward one turn to the model and stream its text back as SSE frames."""
    deltas = await llm_service.open_text_stream(request)
    return event_stream(deltas)
