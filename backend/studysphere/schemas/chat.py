# studysphere/schemas/chat.py
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import CamelModel

NEW_CHAT_TITLE = "New Chat"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class SortOrder(str, Enum):
    RECENT = "recent"
    OLDEST = "oldest"
    ALPHABETICAL = "alphabetical"


class Message(CamelModel):
    role: Role
    content: str
    images: Optional[list[str]] = None  # data URIs


class ChatSession(CamelModel):
    id: str
    title: str = NEW_CHAT_TITLE
    messages: list[Message] = Field(default_factory=list)
    timestamp: int  # last modification, epoch milliseconds


class ChatRequest(CamelModel):
    """Body of a relay call: one new turn plus the conversation before it."""
    message: str = ""
    conversation_history: list[Message] = Field(default_factory=list)
    deep_thinking: bool = False
    images: Optional[list[str]] = None

    def has_content(self) -> bool:
        return bool(self.message.strip()) or bool(self.images)


class SendMessageRequest(CamelModel):
    message: str = ""
    images: Optional[list[str]] = None
    deep_thinking: bool = False


class McqSelectionRequest(CamelModel):
    option: str
    deep_thinking: bool = False


class EditMessageRequest(CamelModel):
    content: str
    deep_thinking: bool = False


class RegenerateRequest(CamelModel):
    deep_thinking: bool = False


class RenameRequest(CamelModel):
    title: str


class SessionListResponse(CamelModel):
    pinned: list[ChatSession]
    sessions: list[ChatSession]
    active_session_id: str


class DeleteSessionResponse(CamelModel):
    active_session_id: str


class PinResponse(CamelModel):
    session_id: str
    pinned: bool
