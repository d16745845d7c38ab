# studysphere/api/auth.py
from typing import Optional

from fastapi import APIRouter, Depends

from ..dependencies import get_auth_session
from ..schemas.auth import AuthSession

router = APIRouter()


@router.get("/session")
async def current_session(
        session: Optional[AuthSession] = Depends(get_auth_session)
) -> dict:
    return session.to_wire() if session else {}
