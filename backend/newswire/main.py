"""
Main FastAPI application for Newswire.
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from newswire.api.routes import router, set_services
from newswire.config import get_settings
from newswire.core.errors import (
    ArticleNotFoundError,
    NewswireError,
    QuotaError,
    UpstreamUnavailableError,
)
from newswire.core.logging_setup import configure_logging
from newswire.models.database import Database
from newswire.repositories.articles import ArticleRepository
from newswire.services.enrichment import Enricher
from newswire.services.ingestion import IngestionPipeline
from newswire.sources.gnews import GNewsSource

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    settings = get_settings()

    logger.info("Initializing database", url=settings.database_url)
    database = Database(settings.database_url, echo=settings.debug)
    await database.create_tables()

    repository = ArticleRepository(database)
    enricher = Enricher.from_settings(settings)
    pipeline = IngestionPipeline(
        news=GNewsSource(settings),
        store=repository,
        enricher=enricher,
        settings=settings.ingestion,
    )
    set_services(repository, pipeline)
    logger.info("Ingestion pipeline ready", provider=enricher.provider.name)

    yield

    logger.info("Shutting down")
    await database.dispose()


def _error_status(exc: NewswireError) -> int:
    if isinstance(exc, ArticleNotFoundError):
        return 404
    if isinstance(exc, QuotaError):
        return 429
    if isinstance(exc, UpstreamUnavailableError):
        return 502
    return 500


async def newswire_error_handler(request: Request, exc: NewswireError) -> JSONResponse:
    status_code = _error_status(exc)
    logger.error(
        "Request failed",
        path=request.url.path,
        method=request.method,
        status_code=status_code,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": str(exc)},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="News ingestion with AI summaries and semantic embeddings.",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NewswireError, newswire_error_handler)
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "newswire.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
