# app.py
import logging
import secrets

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

from .api import router
from .config import Settings, get_settings
from .exceptions import DrivegateError
from .providers import ProviderRegistry, build_registry

SESSION_COOKIE = "drivegate_session"


async def handle_drivegate_error(request: Request, exc: DrivegateError):
    """Renders application errors as plain-text bodies with the error's status code."""
    if exc.status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logging.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
    return PlainTextResponse(str(exc), status_code=exc.status_code)


def create_app(
    settings: Settings | None = None,
    registry: ProviderRegistry | None = None,
) -> FastAPI:
    """
    Builds the HTTP application. The registry can be passed in, e.g. to
    serve fake storage clients in tests.
    """
    settings = settings or get_settings()
    if registry is None:
        registry = build_registry(settings)

    app = FastAPI(
        title="drivegate",
        description="HTTP access to cloud storage providers: browse, upload, read, delete and publish files.",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.registry = registry

    secret_key = settings.SESSION_SECRET_KEY
    if not secret_key:
        logging.warning(
            "SESSION_SECRET_KEY is not set. Using a random key: pending OAuth2 logins "
            "will not survive a restart or work across several workers."
        )
        secret_key = secrets.token_urlsafe(32)

    # Signed cookie session holding the pending OAuth2 state
    app.add_middleware(
        SessionMiddleware,
        secret_key=secret_key,
        session_cookie=SESSION_COOKIE,
        max_age=settings.OAUTH_STATE_TTL_SECONDS,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(DrivegateError, handle_drivegate_error)
    app.include_router(router)
    return app
