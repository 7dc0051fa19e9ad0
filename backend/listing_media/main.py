# backend/listing_media/main.py
"""
FastAPI application entry point for the listing media service.

create_app builds the storage backends and the media services from injected
settings and stores them on app.state; routers reach them through
dependencies.py. Tests build their own app with temporary settings.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, settings as default_settings
from .enums import LogEmoji, LoggerName, LogSource, StorageDriver
from .middleware import (
    ErrorHandlerMiddleware,
    RateLimitMiddleware,
    RequestLoggerMiddleware,
    register_exception_handlers,
)
from .routers import cache_routers as cache_admin
from .routers import chunked_upload_routers as chunked_uploads
from .routers import image_routers as images
from .routers import property_media_routers as property_media
from .routers import video_routers as videos
from .services.chunked_upload_service import ChunkedUploadService
from .services.logger import get_service_logger, initialize_global_logger
from .services.media_service import MediaService
from .services.storage import StorageRegistry
from .utils.cache_manager import MemoryCache

APP_VERSION = "1.0.0"

logger = get_service_logger(LoggerName.SYSTEM, LogSource.SYSTEM)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Handle application startup and shutdown"""
    app_settings: Settings = _app.state.settings
    initialize_global_logger(level=app_settings.log_level, log_file=app_settings.log_file)
    app_settings.ensure_directories()

    logger.info(
        "Starting listing media API",
        extra_context={
            "operation": "application_startup",
            "environment": app_settings.environment,
            "image_storage": app_settings.image_storage_driver.value,
            "video_storage": app_settings.video_storage_driver.value,
        },
        emoji=LogEmoji.STARTUP,
    )

    yield

    removed = await _app.state.media_service.clear_cache()
    logger.info(
        "Shutting down listing media API",
        extra_context={
            "operation": "application_shutdown",
            "cache_entries_dropped": removed,
        },
        emoji=LogEmoji.SHUTDOWN,
    )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageRegistry] = None,
    cache_instance: Optional[MemoryCache] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the environment-loaded ones)
        storage: Storage backends (defaults to the configured drivers)
        cache_instance: Cache for reads (defaults to the global cache)

    Raises:
        ConfigurationError: When a configured storage driver is invalid
    """
    app_settings = settings or default_settings
    registry = storage or StorageRegistry.from_settings(app_settings)

    app = FastAPI(
        title="Listing Media API",
        description="Image and video storage for property listings",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.media_service = MediaService(
        app_settings, registry, cache_instance=cache_instance
    )
    app.state.chunked_upload_service = ChunkedUploadService(
        app_settings, app.state.media_service
    )

    # Middleware stack (order matters: last added = first executed)
    app.add_middleware(RateLimitMiddleware, settings=app_settings)
    app.add_middleware(RequestLoggerMiddleware)
    app.add_middleware(
        ErrorHandlerMiddleware,
        debug_mode=app_settings.environment == "development",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(images.router, prefix="/api", tags=["images"])
    app.include_router(videos.router, prefix="/api", tags=["videos"])
    app.include_router(chunked_uploads.router, prefix="/api", tags=["chunked-uploads"])
    app.include_router(property_media.router, prefix="/api", tags=["property-media"])
    app.include_router(cache_admin.router, prefix="/api", tags=["cache"])

    if StorageDriver.LOCAL in (
        app_settings.image_storage_driver,
        app_settings.video_storage_driver,
    ):
        app.mount(
            "/" + app_settings.public_url_prefix.strip("/"),
            StaticFiles(directory=str(app_settings.public_storage_path), check_dir=False),
            name="public-storage",
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": APP_VERSION}

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {"message": "Listing Media API", "version": APP_VERSION, "docs": "/docs"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "listing_media.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=default_settings.api_reload,
        log_level=default_settings.log_level.value.lower(),
    )
