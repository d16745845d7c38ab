# studysphere/services/session_store.py
"""Chat sessions and pinned chats for one user.

The store keeps its state in memory and writes every mutation straight through
to the storage port. Each session is its own document (``chatSession:<id>``);
``chatSessions`` holds the ids newest first, ``pinnedChats`` the pinned ids and
``activeChat`` the selected session. Writes touch only the session they change
and merge into the shared lists, so several stores over the same storage never
drop each other's sessions.
"""
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from ..schemas.chat import NEW_CHAT_TITLE, ChatSession, Message, Role, SortOrder
from ..utils.errors import ChatNotFoundError, ErrorCode, ValidationError
from .storage import StoragePort

logger = logging.getLogger(__name__)

SESSIONS_KEY = "chatSessions"
PINNED_KEY = "pinnedChats"
ACTIVE_KEY = "activeChat"
SESSION_KEY_PREFIX = "chatSession:"
TITLE_LENGTH = 40


def session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def generate_title(messages: list[Message]) -> str:
    first_user = next((m for m in messages if m.role == Role.USER), None)
    if first_user is None:
        return NEW_CHAT_TITLE
    first_line = first_user.content.split("\n")[0]
    truncated = first_line[:TITLE_LENGTH]
    return truncated + ("..." if len(first_line) > TITLE_LENGTH else "")


def export_text(messages: list[Message]) -> str:
    return "\n\n".join(f"{m.role.value.upper()}: {m.content}" for m in messages)


def _matches(session: ChatSession, query: str) -> bool:
    needle = query.lower()
    if needle in session.title.lower():
        return True
    return any(needle in m.content.lower() for m in session.messages)


def _prepend(session_id: str):
    return lambda ids: [session_id, *[i for i in ids or [] if i != session_id]]


def _without(session_id: str):
    return lambda ids: [i for i in ids or [] if i != session_id]


def _toggle(session_id: str):
    def mutate(ids):
        ids = list(ids or [])
        return _without(session_id)(ids) if session_id in ids else [*ids, session_id]
    return mutate


class SessionStore:
    def __init__(self, storage: StoragePort, clock: Callable[[], float] = time.time):
        self.storage = storage
        self._clock = clock
        self.sessions: list[ChatSession] = []
        self.pinned: list[str] = []
        self.current_session_id: Optional[str] = None

    def load(self) -> "SessionStore":
        self.pinned = [p for p in self.storage.get(PINNED_KEY) or [] if isinstance(p, str)]

        self.sessions = []
        for session_id in self.storage.get(SESSIONS_KEY) or []:
            raw = self.storage.get(session_key(session_id))
            if raw is None:
                logger.warning(f"Chat session {session_id} is listed but missing")
                continue
            try:
                self.sessions.append(ChatSession.model_validate(raw))
            except PydanticValidationError as e:
                logger.warning(f"Dropping unreadable chat session {session_id}: {e}")

        if not self.sessions:
            self._add(self._create_session())

        active = self.storage.get(ACTIVE_KEY)
        known = any(s.id == active for s in self.sessions)
        self.current_session_id = active if known else self.sessions[0].id
        return self

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _create_session(self) -> ChatSession:
        now = self._now_ms()
        candidate = now
        existing = {s.id for s in self.sessions}
        while str(candidate) in existing or self.storage.get(session_key(str(candidate))) is not None:
            candidate += 1
        return ChatSession(id=str(candidate), title=NEW_CHAT_TITLE, messages=[], timestamp=now)

    def _write(self, session: ChatSession) -> None:
        self.storage.set(session_key(session.id), session.to_wire())

    def _add(self, session: ChatSession) -> None:
        self._write(session)
        self.storage.update(SESSIONS_KEY, _prepend(session.id))
        self.sessions.insert(0, session)

    def _activate(self, session_id: str) -> None:
        self.current_session_id = session_id
        self.storage.set(ACTIVE_KEY, session_id)

    def _index(self, session_id: str) -> int:
        for i, session in enumerate(self.sessions):
            if session.id == session_id:
                return i
        raise ChatNotFoundError(session_id)

    def get(self, session_id: str) -> ChatSession:
        return self.sessions[self._index(session_id)]

    @property
    def current(self) -> ChatSession:
        return self.get(self.current_session_id)

    def new_session(self) -> ChatSession:
        session = self._create_session()
        self._add(session)
        self._activate(session.id)
        return session

    def select_session(self, session_id: str) -> ChatSession:
        session = self.get(session_id)
        self._activate(session.id)
        return session

    def delete_session(self, session_id: str) -> ChatSession:
        """Remove a session and return the session that is active afterwards."""
        del self.sessions[self._index(session_id)]
        self.storage.update(SESSIONS_KEY, _without(session_id))
        self.storage.delete(session_key(session_id))

        if session_id == self.current_session_id:
            if not self.sessions:
                self._add(self._create_session())
            # Sessions are kept newest first
            self._activate(self.sessions[0].id)
        return self.current

    def rename(self, session_id: str, title: str) -> ChatSession:
        title = title.strip()
        if not title:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Title must not be empty")
        index = self._index(session_id)
        session = self.sessions[index].model_copy(update={"title": title})
        self.sessions[index] = session
        self._write(session)
        return session

    def is_pinned(self, session_id: str) -> bool:
        return session_id in self.pinned

    def toggle_pin(self, session_id: str) -> bool:
        """Pin or unpin a session; returns whether it is pinned afterwards."""
        self._index(session_id)
        self.pinned = self.storage.update(PINNED_KEY, _toggle(session_id))
        return session_id in self.pinned

    def export(self, session_id: str) -> tuple[str, str]:
        """File name and plain text transcript of a session."""
        session = self.get(session_id)
        return f"{session.title}.txt", export_text(session.messages)

    def set_messages(self, session_id: str, messages: list[Message]) -> ChatSession:
        index = self._index(session_id)
        previous = self.sessions[index]
        update = {"messages": list(messages)}

        new_title = generate_title(messages)
        # A manual rename survives until the conversation itself changes shape
        if len(messages) != len(previous.messages) or new_title != generate_title(previous.messages):
            update["title"] = new_title
            update["timestamp"] = self._now_ms()

        session = previous.model_copy(update=update)
        self.sessions[index] = session
        self._write(session)
        return session

    def list_sessions(self, query: str = "", sort_by: SortOrder = SortOrder.RECENT) -> list[ChatSession]:
        sessions = [s for s in self.sessions if _matches(s, query)]
        if sort_by == SortOrder.RECENT:
            return sorted(sessions, key=lambda s: s.timestamp, reverse=True)
        if sort_by == SortOrder.OLDEST:
            return sorted(sessions, key=lambda s: s.timestamp)
        return sorted(sessions, key=lambda s: s.title.casefold())

    def partition(
            self,
            query: str = "",
            sort_by: SortOrder = SortOrder.RECENT
    ) -> tuple[list[ChatSession], list[ChatSession]]:
        """Pinned and unpinned sessions; pins without a session are ignored."""
        sessions = self.list_sessions(query, sort_by)
        pinned = set(self.pinned)
        return (
            [s for s in sessions if s.id in pinned],
            [s for s in sessions if s.id not in pinned]
        )
