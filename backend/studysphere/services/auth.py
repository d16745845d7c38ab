# studysphere/services/auth.py
import logging
from typing import Optional, Protocol

import httpx
from fastapi import Request

from ..core.config import Settings
from ..schemas.auth import AuthSession, AuthUser
from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)


class AuthProvider(Protocol):
    async def get_session(self, request: Request) -> Optional[AuthSession]: ...


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(cookie_name) or None


class SupabaseAuthProvider:
    """Resolves an access token to a user through Supabase's ``/auth/v1/user``."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    async def get_session(self, request: Request) -> Optional[AuthSession]:
        token = extract_token(request, self.settings.AUTH_COOKIE_NAME)
        if not token:
            return None

        if not self.settings.SUPABASE_URL or not self.settings.SUPABASE_ANON_KEY:
            raise ConfigurationError("Supabase auth not configured",
                                     {"setting": "SUPABASE_URL/SUPABASE_ANON_KEY"})

        response = await self._client.get(
            f"{self.settings.SUPABASE_URL.rstrip('/')}/auth/v1/user",
            headers={
                "apikey": self.settings.SUPABASE_ANON_KEY,
                "Authorization": f"Bearer {token}"
            }
        )
        if response.status_code != 200:
            logger.debug(f"Supabase rejected token ({response.status_code})")
            return None

        return AuthSession(user=AuthUser.model_validate(response.json()), access_token=token)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def resolve_session(provider: AuthProvider, request: Request) -> Optional[AuthSession]:
    """Current session, or ``None`` when unauthenticated or the provider fails."""
    try:
        return await provider.get_session(request)
    except Exception as e:
        logger.error(f"Auth provider error: {str(e)}")
        return None
