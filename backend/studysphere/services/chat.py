# studysphere/services/chat.py
import logging
import re
from dataclasses import dataclass
from functools import partial
from typing import AsyncGenerator, AsyncIterator, Callable, Optional

from starlette.concurrency import run_in_threadpool

from .llm.base import ChatStreamProvider
from .session_store import SessionStore
from ..schemas.chat import ChatRequest, Message, Role
from ..utils.errors import ChatBusyError, ErrorCode, ValidationError

logger = logging.getLogger(__name__)

MCQ_PATTERN = re.compile(r"\[MCQ\]([\s\S]*?)\[/MCQ\]")


@dataclass
class McqBlock:
    before: str
    options: list[str]
    after: str


def parse_mcq(content: str) -> Optional[McqBlock]:
    """First ``[MCQ]...[/MCQ]`` block of an assistant reply, split into options."""
    match = MCQ_PATTERN.search(content)
    if not match:
        return None
    options = [line.strip() for line in match.group(1).strip().split("\n") if line.strip()]
    return McqBlock(
        before=content[:match.start()],
        options=options,
        after=content[match.end():]
    )


class TurnGuard:
    """Sessions with a turn in flight. At most one per session.

    ``acquire`` hands out a token and only the matching token releases the
    session, so a late release from a finished turn cannot free a newer one.
    """

    def __init__(self):
        self._active: dict[str, object] = {}

    def acquire(self, session_id: str) -> object:
        if session_id in self._active:
            raise ChatBusyError(session_id)
        token = object()
        self._active[session_id] = token
        return token

    def release(self, session_id: str, token: object) -> None:
        if self._active.get(session_id) is token:
            del self._active[session_id]

    def is_busy(self, session_id: str) -> bool:
        return session_id in self._active


class ChatTurn:
    """Text deltas of one running turn.

    The session stays busy until the deltas run out or ``aclose`` is called.
    ``aclose`` also ends a turn whose deltas were never iterated.
    """

    def __init__(self, deltas: AsyncGenerator[str, None], release: Callable[[], None]):
        self._deltas = deltas
        self._release = release

    def __aiter__(self) -> "ChatTurn":
        return self

    async def __anext__(self) -> str:
        return await self._deltas.__anext__()

    async def aclose(self) -> None:
        try:
            await self._deltas.aclose()
        finally:
            self._release()


class ChatService:
    """Runs chat turns against a stream provider and records them in a session store.

    Each public turn method validates and applies its truncation synchronously,
    opens the provider stream, and returns a ``ChatTurn`` of text deltas.
    While the turn is consumed the reply is appended to the session's last
    message. Failures propagate to the caller; a partial reply is kept, except
    for ``regenerate`` which puts back the messages it replaced.
    """

    def __init__(
            self,
            store: SessionStore,
            provider: ChatStreamProvider,
            guard: Optional[TurnGuard] = None
    ):
        self.store = store
        self.provider = provider
        self.guard = guard or TurnGuard()

    async def send_message(
            self,
            session_id: str,
            message: str,
            images: Optional[list[str]] = None,
            deep_thinking: bool = False
    ) -> ChatTurn:
        message = message.strip()
        images = list(images) if images else None
        if not message and not images:
            raise ValidationError(ErrorCode.MISSING_MESSAGE, "Message or images are required")

        history = list(self.store.get(session_id).messages)
        request = ChatRequest(
            message=message,
            conversation_history=history,
            deep_thinking=deep_thinking,
            images=images
        )
        user_message = Message(role=Role.USER, content=message, images=images)
        return await self._start_turn(session_id, [*history, user_message], request)

    async def select_option(
            self,
            session_id: str,
            option: str,
            deep_thinking: bool = False
    ) -> ChatTurn:
        option = option.strip()
        messages = self.store.get(session_id).messages
        last = messages[-1] if messages else None
        block = parse_mcq(last.content) if last and last.role == Role.ASSISTANT else None
        if block is None or option not in block.options:
            raise ValidationError(ErrorCode.INVALID_REQUEST,
                                  "Option does not belong to the latest question",
                                  {"option": option})

        request = ChatRequest(
            message=option,
            conversation_history=list(messages),
            deep_thinking=deep_thinking
        )
        return await self._start_turn(session_id, [*messages, Message(role=Role.USER, content=option)], request)

    async def edit_and_regenerate(
            self,
            session_id: str,
            index: int,
            content: str,
            deep_thinking: bool = False
    ) -> ChatTurn:
        content = content.strip()
        if not content:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Edited message must not be empty")

        messages = self.store.get(session_id).messages
        if not 0 <= index < len(messages) or messages[index].role != Role.USER:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Only user messages can be edited",
                                  {"index": index})

        kept = list(messages[:index])
        edited = messages[index].model_copy(update={"content": content})
        request = ChatRequest(
            message=content,
            conversation_history=kept,
            deep_thinking=deep_thinking,
            images=edited.images
        )
        return await self._start_turn(session_id, [*kept, edited], request)

    async def regenerate(
            self,
            session_id: str,
            index: int,
            deep_thinking: bool = False
    ) -> ChatTurn:
        """Replace the reply at ``index`` (and everything after it).

        ``index`` must point at an assistant reply, or one past the end when the
        last reply is missing, and the message before it must be the question.
        """
        messages = list(self.store.get(session_id).messages)
        if not 0 < index <= len(messages):
            raise ValidationError(ErrorCode.INVALID_REQUEST, "No message to regenerate",
                                  {"index": index})
        if index < len(messages) and messages[index].role != Role.ASSISTANT:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Only assistant replies can be regenerated",
                                  {"index": index})

        anchor = index - 1
        if messages[anchor].role != Role.USER:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Cannot find original question",
                                  {"index": index})

        question = messages[anchor]
        request = ChatRequest(
            message=question.content,
            conversation_history=messages[:anchor],
            deep_thinking=deep_thinking,
            images=question.images
        )
        return await self._start_turn(session_id, messages[:index], request, restore=messages)

    async def _start_turn(
            self,
            session_id: str,
            messages: list[Message],
            request: ChatRequest,
            restore: Optional[list[Message]] = None
    ) -> ChatTurn:
        token = self.guard.acquire(session_id)
        release = partial(self.guard.release, session_id, token)
        try:
            await self._save(session_id, messages)
            deltas = await self.provider.open_text_stream(request)
        except Exception as e:
            logger.error(f"Chat turn for {session_id} rejected: {str(e)}")
            try:
                await self._rollback(session_id, restore)
            finally:
                release()
            raise
        return ChatTurn(self._stream_reply(session_id, messages, deltas, restore, release), release)

    async def _stream_reply(
            self,
            session_id: str,
            messages: list[Message],
            deltas: AsyncIterator[str],
            restore: Optional[list[Message]],
            release: Callable[[], None]
    ) -> AsyncGenerator[str, None]:
        reply = ""
        try:
            await self._save(session_id, [*messages, Message(role=Role.ASSISTANT, content=reply)])
            async for text in deltas:
                reply += text
                await self._save(session_id, [*messages, Message(role=Role.ASSISTANT, content=reply)])
                yield text
        except Exception as e:
            logger.error(f"Chat turn for {session_id} failed mid-stream: {str(e)}")
            await self._rollback(session_id, restore)
            raise
        finally:
            release()

    async def _save(self, session_id: str, messages: list[Message]) -> None:
        # Storage may block on the database
        await run_in_threadpool(self.store.set_messages, session_id, messages)

    async def _rollback(self, session_id: str, restore: Optional[list[Message]]) -> None:
        if restore is not None:
            await self._save(session_id, restore)
