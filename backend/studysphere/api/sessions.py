# studysphere/api/sessions.py
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse

from .chat import event_stream
from ..dependencies import get_chat_service, get_session_store
from ..schemas.chat import (
    ChatSession,
    DeleteSessionResponse,
    EditMessageRequest,
    McqSelectionRequest,
    PinResponse,
    RegenerateRequest,
    RenameRequest,
    SendMessageRequest,
    SessionListResponse,
    SortOrder
)
from ..services.chat import ChatService
from ..services.session_store import SessionStore

router = APIRouter(prefix="/sessions")


@router.get("")
def list_sessions(
        q: str = "",
        sort: SortOrder = SortOrder.RECENT,
        store: SessionStore = Depends(get_session_store)
) -> SessionListResponse:
    pinned, sessions = store.partition(q, sort)
    return SessionListResponse(
        pinned=pinned,
        sessions=sessions,
        active_session_id=store.current_session_id
    )


@router.post("")
def create_session(
        store: SessionStore = Depends(get_session_store)
) -> ChatSession:
    return store.new_session()


@router.get("/{session_id}")
def get_session(
        session_id: str,
        store: SessionStore = Depends(get_session_store)
) -> ChatSession:
    return store.get(session_id)


@router.patch("/{session_id}")
def rename_session(
        session_id: str,
        body: RenameRequest,
        store: SessionStore = Depends(get_session_store)
) -> ChatSession:
    return store.rename(session_id, body.title)


@router.post("/{session_id}/select")
def select_session(
        session_id: str,
        store: SessionStore = Depends(get_session_store)
) -> ChatSession:
    return store.select_session(session_id)


@router.delete("/{session_id}")
def delete_session(
        session_id: str,
        store: SessionStore = Depends(get_session_store)
) -> DeleteSessionResponse:
    active = store.delete_session(session_id)
    return DeleteSessionResponse(active_session_id=active.id)


@router.post("/{session_id}/pin")
def toggle_pin(
        session_id: str,
        store: SessionStore = Depends(get_session_store)
) -> PinResponse:
    pinned = store.toggle_pin(session_id)
    return PinResponse(session_id=session_id, pinned=pinned)


@router.get("/{session_id}/export")
def export_session(
        session_id: str,
        store: SessionStore = Depends(get_session_store)
) -> PlainTextResponse:
    filename, content = store.export(session_id)
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    )


@router.post("/{session_id}/messages")
async def send_message(
        session_id: str,
        body: SendMessageRequest,
        chat_service: ChatService = Depends(get_chat_service)
) -> StreamingResponse:
    turn = await chat_service.send_message(session_id, body.message, body.images, body.deep_thinking)
    return event_stream(turn, on_close=turn.aclose)


@router.post("/{session_id}/mcq")
async def select_option(
        session_id: str,
        body: McqSelectionRequest,
        chat_service: ChatService = Depends(get_chat_service)
) -> StreamingResponse:
    turn = await chat_service.select_option(session_id, body.option, body.deep_thinking)
    return event_stream(turn, on_close=turn.aclose)


@router.put("/{session_id}/messages/{index}")
async def edit_message(
        session_id: str,
        index: int,
        body: EditMessageRequest,
        chat_service: ChatService = Depends(get_chat_service)
) -> StreamingResponse:
    turn = await chat_service.edit_and_regenerate(session_id, index, body.content, body.deep_thinking)
    return event_stream(turn, on_close=turn.aclose)


@router.post("/{session_id}/messages/{index}/regenerate")
async def regenerate(
        session_id: str,
        index: int,
        body: RegenerateRequest,
        chat_service: ChatService = Depends(get_chat_service)
) -> StreamingResponse:
    turn = await chat_service.regenerate(session_id, index, body.deep_thinking)
    return event_stream(turn, on_close=turn.aclose)
