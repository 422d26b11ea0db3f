import logging
import os
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from .api.dependencies import get_publication_service
from .api.v1.router import api_router
from .api.v1.schemas import StandardAPIResponse
from .config import Settings, get_settings
from .core.database import create_tables
from .exceptions import NewsroomError, NotFoundError
from .services.image_proxy import ImageProxy
from .services.media_resolver import MediaResolver
from .services.news_provider import NewsProviderClient
from .services.object_storage import ObjectStorage
from .services.publication_service import PublicationService


def apply_logging_preferences(settings):
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s"
)

apply_logging_preferences(settings)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Newsroom API", version="0.1.0")
    try:
        create_tables()
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    await app.state.news_provider.close()
    await app.state.image_proxy.close()
    logger.info("Shutting down Newsroom API")


def build_components(app: FastAPI, settings: Settings) -> None:
    """Process-wide collaborators, constructed once and reached through app.state"""
    app.state.object_storage = ObjectStorage(settings)
    app.state.media_resolver = MediaResolver(settings, app.state.object_storage)
    app.state.news_provider = NewsProviderClient(settings)
    app.state.image_proxy = ImageProxy(settings, app.state.object_storage)
    logger.info(
        "Components ready",
        object_storage=app.state.object_storage.enabled,
        news_provider=app.state.news_provider.provider
    )


def mount_uploads(app: FastAPI, settings: Settings) -> None:
    os.makedirs(settings.upload_dir, exist_ok=True)

    @app.get("/uploads/{filename:path}", include_in_schema=False)
    async def serve_upload(
        filename: str,
        request: Request,
        publication: PublicationService = Depends(get_publication_service)
    ):
        name = os.path.basename(filename.strip())
        local = os.path.join(settings.upload_dir, name)
        if name and os.path.isfile(local):
            return FileResponse(local)

        # records that still point at a file no longer on disk go through the media endpoints
        if name and "undefined" not in name.lower():
            match = publication.locate_media_file(name)
            if match is not None:
                item, gallery_index = match
                target = f"/api/v1/news/media/{item.id}/image"
                if gallery_index is not None:
                    target = f"/api/v1/news/media/{item.id}/gallery/{gallery_index}"
                logger.info("Redirecting missing upload to media endpoint", filename=name, news_id=item.id)
                return RedirectResponse(target, status_code=302)

        # legacy /uploads links keep working after media moved to the bucket
        target = await request.app.state.media_resolver.redirect_for_upload(name)
        if target:
            return RedirectResponse(target, status_code=302)
        raise NotFoundError("Media not found", error_code="MEDIA_NOT_FOUND")


def create_application(settings: Settings = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Newsroom",
        description="News publishing backend with live news aggregation, media storage and a reporter moderation workflow",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NewsroomError)
    async def newsroom_exception_handler(request: Request, exc: NewsroomError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            error_code=exc.error_code,
            error=exc.message,
        )
        response = StandardAPIResponse(
            status="error",
            body=exc.details or None,
            message=exc.message,
            error_code=exc.error_code,
        )
        return JSONResponse(status_code=exc.status_code, content=response.model_dump(mode="json"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(
            "Unhandled exception occurred",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": getattr(request.state, "request_id", None),
            }
        )

    build_components(app, settings)

    # Health check at root
    from .api.v1.endpoints import health
    app.include_router(health.router, tags=["health"])

    mount_uploads(app, settings)

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsroom.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info",
        access_log=False,
    )
