# studysphere/core/middleware.py
import logging

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from ..services.auth import resolve_session
from ..utils.errors import APIError, ErrorCode, error_body

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except APIError as e:
            logger.error(f"API Error: {str(e)}")
            return JSONResponse(
                status_code=e.status_code,
                content=e.to_dict()
            )
        except SQLAlchemyError as e:
            logger.error(f"Database Error: {str(e)}")
            return JSONResponse(
                status_code=500,
                content=error_body(ErrorCode.DATABASE_ERROR, "Database operation failed", str(e))
            )
        except Exception as e:
            logger.exception(f"Unexpected Error: {str(e)}")
            return JSONResponse(
                status_code=500,
                content=error_body(ErrorCode.INTERNAL_ERROR, "Internal server error")
            )


def is_protected(path: str, protected_paths: list[str]) -> bool:
    return any(path == p or path.startswith(p.rstrip("/") + "/") for p in protected_paths)


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Redirects unauthenticated requests for protected pages to the login page.

    A failing auth provider counts as unauthenticated.
    """

    async def dispatch(self, request: Request, call_next):
        settings = request.app.state.settings
        if is_protected(request.url.path, settings.PROTECTED_PATHS):
            session = await resolve_session(request.app.state.auth_provider, request)
            if session is None:
                logger.debug(f"Redirecting unauthenticated request for {request.url.path}")
                return RedirectResponse(settings.LOGIN_PATH, status_code=307)
            request.state.auth_session = session
        return await call_next(request)
