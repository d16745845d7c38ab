# studysphere/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .api import auth, billing, chat, pages, sessions
from .core.config import Settings
from .core.database import create_db_engine, create_session_factory, init_db, verify_db_connection
from .core.middleware import AuthGateMiddleware, ErrorHandlingMiddleware
from .services.auth import SupabaseAuthProvider
from .services.billing import AutumnService
from .services.chat import TurnGuard
from .services.llm.gemini import GeminiService
from .services.storage import DatabaseStorage
from .utils.errors import APIError, error_body

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    # Setup database
    engine = create_db_engine(settings.DATABASE_URL)
    verify_db_connection(engine)
    init_db(engine)

    # Setup services
    llm_service = GeminiService(settings)
    autumn_service = AutumnService(settings)
    auth_provider = SupabaseAuthProvider(settings)

    # Add to app state
    app.state.storage = DatabaseStorage(create_session_factory(engine))
    app.state.llm_service = llm_service
    app.state.autumn_service = autumn_service
    app.state.auth_provider = auth_provider
    app.state.turn_guard = TurnGuard()

    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    yield

    await llm_service.aclose()
    await autumn_service.aclose()
    await auth_provider.aclose()
    engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(AuthGateMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(f"HTTP_{exc.status_code}", str(exc.detail))
        )

    # Include routers
    app.include_router(chat.router, prefix="/api")
    app.include_router(sessions.router, prefix="/api")
    app.include_router(billing.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(pages.router)

    return app


app = create_app()
