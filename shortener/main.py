"""
FastAPI Application Entry Point

create_app() builds the application and configures:
- API routes
- Middleware (logging, gzip)
- Rate limiting
- Storage lifecycle: the backend is created and initialized on startup and
  closed on shutdown

uvicorn runs it in factory mode: uvicorn shortener.main:create_app --factory
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.gzip import GZipMiddleware

from shortener.api import endpoints
from shortener.core.exceptions import URLShortenerException
from shortener.core.rate_limit import limiter
from shortener.core.setting import Settings, get_settings
from shortener.middleware.logging import add_logging_middleware
from shortener.services.url_service import URLShorteningService
from shortener.storage import create_storage

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one storage backend.

    Args:
        settings: Explicit settings; defaults to the cached process settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="URL Shortener Service",
        description="Content-addressed URL shortening with file or relational storage",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    add_logging_middleware(app)

    @app.on_event("startup")
    async def startup_event():
        storage = create_storage(settings.storage_config())
        await storage.initialize()
        app.state.storage = storage
        app.state.url_service = URLShorteningService(
            storage,
            base_url=settings.base_url,
            timeout=settings.operation_timeout,
            deletion_queue_size=settings.deletion_queue_size,
        )
        logger.info(f"Service started: storage={storage.name} base_url={settings.base_url}")

    @app.on_event("shutdown")
    async def shutdown_event():
        storage = getattr(app.state, "storage", None)
        if storage is not None:
            await storage.close()
        logger.info("Service stopped")

    # Health endpoints defined before router to match before catch-all route
    @app.get("/ping", tags=["Health"])
    async def ping(request: Request):
        """Report whether the storage backend is reachable."""
        try:
            await request.app.state.url_service.ping()
        except (URLShortenerException, TimeoutError) as e:
            logger.error(f"Health check failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Storage is unavailable"
            )
        return {"status": "ok"}

    app.include_router(endpoints.router, tags=["URL Shortener"])

    return app
