"""FastAPI application factory for PromptEnhancer"""

from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from prompt_enhancer import __version__
from prompt_enhancer.auth.identities import IdentityStore
from prompt_enhancer.auth.notifier import Notifier, build_notifier
from prompt_enhancer.auth.service import AuthService
from prompt_enhancer.auth.session import SessionSigner
from prompt_enhancer.auth.store import PendingCodeStore
from prompt_enhancer.core.config import Settings, load_settings
from prompt_enhancer.enhance.client import EnhanceClient
from prompt_enhancer.stores.history import HistoryStore
from prompt_enhancer.utils.logger import configure_logging, get_logger

from .auth_routes import router as auth_router
from .enhance_routes import router as enhance_router
from .page_routes import router as page_router
from .route_guard import RouteGuardASGI

logger = get_logger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Error bodies are {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first invalid field as a 400."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": first.get("msg", "Invalid request"),
            "field": loc[-1] if loc else None,
        },
    )


def create_app(
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
    enhancer: Optional[EnhanceClient] = None,
) -> FastAPI:
    """
    Build the application.

    Settings are loaded once here and handed to every component. A missing
    session secret raises ConfigError, so the process never starts serving
    without one.
    """
    settings = settings or load_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    signer = SessionSigner(
        settings.auth.session_secret,
        ttl=timedelta(days=settings.auth.session_ttl_days),
    )
    data_dir = settings.storage.path
    lock_timeout = settings.storage.lock_timeout_seconds
    codes = PendingCodeStore(data_dir, lock_timeout)
    auth_service = AuthService(
        identities=IdentityStore(data_dir, lock_timeout),
        codes=codes,
        notifier=notifier or build_notifier(settings),
        signer=signer,
        code_length=settings.auth.code_length,
        code_ttl=timedelta(minutes=settings.auth.code_ttl_minutes),
    )

    app = FastAPI(
        title=settings.app.name,
        description="Passwordless login and AI prompt enhancement",
        version=__version__,
    )
    app.state.settings = settings
    app.state.auth_service = auth_service
    app.state.history = HistoryStore(data_dir, lock_timeout)
    app.state.enhancer = enhancer or EnhanceClient(settings.enhance, app_url=settings.app.base_url)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(
        RouteGuardASGI,
        signer=signer,
        routes=settings.routes,
        cookie_name=settings.auth.cookie_name,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app.base_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(enhance_router)
    app.include_router(page_router)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    @app.on_event("startup")
    async def startup_event():
        removed = await run_in_threadpool(codes.purge_expired)
        logger.info(
            "PromptEnhancer started",
            environment=settings.app.environment,
            data_dir=str(data_dir),
            purged_codes=removed,
        )

    return app
