"""
Tubely API entry point.

This module creates and configures the FastAPI application through an
application factory (create_app), so tests can build instances with
different settings.

For local development:
    uvicorn tubely.main:app --reload --port 8091

For production:
    gunicorn tubely.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.routes import health, videos
from .config.settings import Settings, get_settings
from .infrastructure.storage.assets import LocalAssetStore

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)

VIDEO_UPLOAD_PATH_PREFIX = "/api/video_upload/"
THUMBNAIL_UPLOAD_PATH_PREFIX = "/api/thumbnail_upload/"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and shutdown."""
    settings = get_settings()

    logger.info(
        "Tubely API starting",
        extra={
            "version": settings.api_version,
            "platform": settings.platform,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "video_processor": settings.video_processor_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Logged rather than fatal so mock-mode development still starts
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Tubely API shutting down")


def _upload_limit_for(path: str, settings: Settings) -> int | None:
    if path.startswith(VIDEO_UPLOAD_PATH_PREFIX):
        return settings.max_video_upload_bytes
    if path.startswith(THUMBNAIL_UPLOAD_PATH_PREFIX):
        return settings.max_thumbnail_upload_bytes
    return None


def create_app() -> FastAPI:
    """Build the app from the current settings. Tests call this directly."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Video hosting backend.

        ## Workflow

        1. **Create a record**: `POST /api/videos`
        2. **Upload the video**: `POST /api/video_upload/{video_id}` (multipart field `video`, MP4)
           - Remuxed for fast start, classified as landscape / portrait / other, stored in S3
        3. **Upload a thumbnail**: `POST /api/thumbnail_upload/{video_id}` (field `thumbnail`)
        4. **Watch**: `GET /api/videos/{video_id}` returns a presigned URL valid for 15 minutes

        ## Authentication

        All `/api` endpoints require `Authorization: Bearer <JWT>`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_upload_size(request: Request, call_next):
        """
        Reject oversized uploads from Content-Length before the body is read.

        Chunked bodies without a length are still capped while staging.
        """
        limit = _upload_limit_for(request.url.path, settings)
        content_length = request.headers.get("content-length")
        if limit is not None and content_length and content_length.isdigit():
            if int(content_length) > limit:
                logger.warning(
                    "Rejected oversized upload",
                    extra={"path": request.url.path, "content_length": int(content_length)}
                )
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"detail": f"Upload exceeds {limit} bytes"},
                )
        return await call_next(request)

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api",
        tags=["Videos"],
    )

    # Thumbnails are served straight from disk
    assets = LocalAssetStore(root=settings.assets_root, base_url=settings.assets_url)
    assets.ensure_root()
    app.mount("/assets", StaticFiles(directory=str(assets.root)), name="assets")

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Tubely API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Anything the routes didn't map becomes a logged, generic 500."""
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error"
            }
        )

    logger.info(
        "Tubely app configured",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Module-level instance for uvicorn and gunicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "tubely.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.platform == "dev",
        log_level=settings.log_level.lower(),
    )
