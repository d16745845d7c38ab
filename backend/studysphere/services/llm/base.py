# studysphere/services/llm/base.py
from abc import ABC, abstractmethod
from typing import AsyncIterator

from studysphere.schemas.chat import ChatRequest


class ChatStreamProvider(ABC):
    """Anything that turns one chat turn into a stream of text deltas."""

    @abstractmethod
    async def open_text_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """Start a turn.

        Rejections (validation, configuration, upstream status) are raised here,
        before the returned iterator yields anything. Failures while reading the
        opened stream surface from the iterator itself.
        """
        pass

    async def aclose(self) -> None:
        pass
