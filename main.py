"""
Content-automation API — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_exception_handlers
from api.health import router as health_router
from api.middleware import register_middleware
from auth.routes import router as auth_router
from config.settings import Settings, config, validate_config
from connectors.routes import router as connectors_router
from core.context import AppContext
from database.session import create_all

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "aiosqlite", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def _redact(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if "@" not in rest:
        return url
    return f"{scheme}{sep}***@{rest.split('@', 1)[1]}"


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AppContext] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    ``context`` lets callers (tests) supply a ready-made ``AppContext``; it is
    then owned by the caller and not closed on shutdown.
    """
    settings = settings or config
    validate_config(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        own_context = context is None
        ctx = context or AppContext.build(settings)
        app.state.context = ctx
        if settings.database_auto_create and ctx.engine is not None:
            await create_all(ctx.engine)
            logger.info("Database tables ensured")
        logger.info("Environment: %s", settings.environment)
        logger.info("Database: %s", _redact(settings.database_url))
        logger.info("Application ready to accept requests.")
        try:
            yield
        finally:
            if own_context:
                await ctx.aclose()

    app = FastAPI(
        title="Content Automation API",
        version="0.1.0",
        description="Identity and LinkedIn OAuth foundation for content automation.",
        lifespan=lifespan,
    )
    if context is not None:
        app.state.context = context

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.api_base_url] if settings.is_production else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(health_router)
    app.include_router(auth_router, prefix="/auth")
    app.include_router(connectors_router, prefix="/auth")

    return app


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
