"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Tests can hand in their own settings and storage client

For local development:
    uvicorn cloud_gallery.main:app --reload --port 3001

For production:
    gunicorn cloud_gallery.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.dependencies import ensure_storage_client
from .api.errors import gallery_error_handler, unhandled_exception_handler
from .api.routes import health, images
from .config.settings import Settings, get_settings
from .core.gallery.errors import GalleryError
from .core.gallery.service import ObjectStore

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the shared storage client once at startup. Every request
    reuses it through the get_storage_client dependency.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Cloud Gallery API starting",
        extra={
            "version": __version__,
            "environment": settings.environment,
            "bucket": settings.aws_s3_bucket_name,
            "region": settings.aws_region,
            "mock_mode": settings.storage_mock_mode,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    ensure_storage_client(app)

    yield

    logger.info("Cloud Gallery API shutting down")


def create_app(
    settings: Optional[Settings] = None,
    storage_client: Optional[ObjectStore] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to run with (defaults to environment settings)
        storage_client: Store to use instead of building one from settings
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Cloud image gallery backend.

        Uploads, lists, deletes and describes images stored in an S3 bucket.
        Listings are ordered newest first and paginated with a fixed page size.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage_client = storage_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/api/health",
        tags=["Health"],
    )

    app.include_router(
        images.router,
        prefix="/api",
        tags=["Images"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - service banner."""
        return {
            "message": "Cloud Gallery API",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
        }

    app.add_exception_handler(GalleryError, gallery_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "cloud_gallery.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
