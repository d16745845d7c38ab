# studysphere/services/sse.py
"""Server-sent event framing.

Every line read from a stream is classified as either a ``TextDelta`` or an
``Unparseable`` frame. Callers forward the former and drop the latter, so a
provider that changes its payload shape degrades to skipped frames instead of
leaking unexpected values downstream.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, Union

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class Unparseable:
    raw: str
    reason: str


Frame = Union[TextDelta, Unparseable]
TextExtractor = Callable[[Any], Optional[str]]


def gemini_text(payload: Any) -> Optional[str]:
    """Text of the first part of the first candidate in a Gemini chunk."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


def relay_text(payload: Any) -> Optional[str]:
    """Text of a frame emitted by our own relay: ``{"text": ...}``."""
    if not isinstance(payload, dict):
        return None
    text = payload.get("text")
    return text if isinstance(text, str) else None


def decode_frame(line: str, extract: TextExtractor) -> Frame:
    if not line.startswith(DATA_PREFIX):
        return Unparseable(line, "not a data line")

    data = line[len(DATA_PREFIX):]
    if data.strip() == DONE_MARKER:
        return Unparseable(line, "done marker")

    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return Unparseable(line, "invalid json")

    text = extract(payload)
    if not text:
        return Unparseable(line, "no text")
    return TextDelta(text)


def encode_frame(text: str) -> str:
    return f"{DATA_PREFIX}{json.dumps({'text': text})}\n\n"


async def iter_text_deltas(lines: AsyncIterator[str], extract: TextExtractor) -> AsyncIterator[str]:
    async for line in lines:
        if not line:
            continue
        frame = decode_frame(line, extract)
        if isinstance(frame, TextDelta):
            yield frame.text
        else:
            logger.debug(f"Skipping frame ({frame.reason}): {frame.raw[:200]}")


async def encode_stream(deltas: AsyncIterator[str]) -> AsyncIterator[str]:
    async for text in deltas:
        yield encode_frame(text)
