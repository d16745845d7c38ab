# studysphere/dependencies.py
from typing import Optional

from fastapi import Depends, Request

from .core.config import Settings
from .schemas.auth import AuthSession, AuthUser
from .services.auth import resolve_session
from .services.billing import AutumnService
from .services.chat import ChatService
from .services.llm.base import ChatStreamProvider
from .services.session_store import SessionStore
from .services.storage import NamespacedStorage
from .utils.errors import AuthenticationError


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_llm_service(request: Request) -> ChatStreamProvider:
    return request.app.state.llm_service


def get_autumn_service(request: Request) -> AutumnService:
    return request.app.state.autumn_service


async def get_auth_session(request: Request) -> Optional[AuthSession]:
    # Set by the auth gate on protected pages
    session = getattr(request.state, "auth_session", None)
    if session is not None:
        return session
    return await resolve_session(request.app.state.auth_provider, request)


async def require_user(
        session: Optional[AuthSession] = Depends(get_auth_session)
) -> AuthUser:
    if session is None:
        raise AuthenticationError()
    return session.user


def get_session_store(
        request: Request,
        user: AuthUser = Depends(require_user)
) -> SessionStore:
    # Runs in the threadpool
    storage = NamespacedStorage(request.app.state.storage, user.id)
    return SessionStore(storage).load()


def get_chat_service(
        request: Request,
        store: SessionStore = Depends(get_session_store)
) -> ChatService:
    return ChatService(store, request.app.state.llm_service, request.app.state.turn_guard)
