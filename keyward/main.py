"""Keyward FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request

from keyward import __version__
from keyward.config import Settings, get_settings
from keyward.db import close_db, init_db
from keyward.handlers import install_error_handler
from keyward.middleware import TokenBucketLimiter
from keyward.services.email import ResendEmailSender
from keyward.services.http import http_client_manager

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings: Settings = app.state.settings

    logger.info("keyward.startup", version=__version__)
    await init_db(settings.database)
    await http_client_manager.startup()

    if settings.email.is_configured:
        app.state.email_sender = ResendEmailSender(settings.email, http_client_manager.client)
    else:
        logger.warning("keyward.email.unconfigured", msg="POST /register will answer 503")

    yield

    logger.info("keyward.shutdown")
    app.state.email_sender = None
    await http_client_manager.shutdown()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Keyward",
        description="API key and activation code issuance and validation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = TokenBucketLimiter(settings.rate_limit)
    app.state.email_sender = None

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    install_error_handler(app)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    from keyward.api import router

    app.include_router(router)

    return app


def run(host: str | None = None, port: int | None = None) -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.server.host,
        port=port or settings.server.port,
    )


if __name__ == "__main__":
    run()
