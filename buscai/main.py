"""
FastAPI application factory.
"""

import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from buscai.api.router import api_router
from buscai.config import settings
from buscai.errors import register_error_handlers
from buscai.models.database import close_db, init_db
from buscai.observability.logging import setup_logging

print(f"[STARTUP] {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})", flush=True)
print(f"[STARTUP] PORT={os.environ.get('PORT', 'NOT SET')}", flush=True)
print(f"[STARTUP] Python {sys.version}", flush=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    setup_logging()

    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    if settings.DB_AUTO_CREATE:
        await init_db()

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="BUSCAÍ Marketplace API",
        description="Local business directory with pay-per-position search placement.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        app.mount("/metrics", make_asgi_app())

    register_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
