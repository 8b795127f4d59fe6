"""
FastAPI routes for the Newswire API.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from newswire.core.errors import ArticleNotFoundError
from newswire.repositories.articles import ArticleRepository
from newswire.services.ingestion import IngestionPipeline

logger = structlog.get_logger(__name__)
router = APIRouter()

_repository: Optional[ArticleRepository] = None
_pipeline: Optional[IngestionPipeline] = None


def set_services(repository: ArticleRepository, pipeline: IngestionPipeline) -> None:
    """Install the services used by the route handlers."""
    global _repository, _pipeline
    _repository = repository
    _pipeline = pipeline


def get_repository() -> ArticleRepository:
    if _repository is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Service not initialized")
    return _repository


def get_pipeline() -> IngestionPipeline:
    if _pipeline is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Service not initialized")
    return _pipeline


RepositoryDep = Annotated[ArticleRepository, Depends(get_repository)]
PipelineDep = Annotated[IngestionPipeline, Depends(get_pipeline)]


class StartIngestionRequest(BaseModel):
    category: str = "general"
    max: int = Field(default=3, ge=1)


class SearchIngestionRequest(BaseModel):
    query: Optional[str] = None
    max: int = Field(default=3, ge=1)


# ============================================================================
# Ingestion Routes
# ============================================================================


@router.post("/ingestion/start")
async def start_ingestion(body: StartIngestionRequest, pipeline: PipelineDep):
    """Fetch top headlines for a category, enrich and store them."""
    logger.info("Ingestion request received", category=body.category, max=body.max)
    result = await pipeline.ingest_category(body.category, body.max)
    return {
        "success": True,
        "message": "Ingestion completed",
        "data": result.model_dump(),
    }


@router.post("/ingestion/search")
async def search_and_ingest(body: SearchIngestionRequest, pipeline: PipelineDep):
    """Search the news feed, enrich and store the matches."""
    if not body.query or not body.query.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Query is required")

    logger.info("Search ingestion request", query=body.query, max=body.max)
    result = await pipeline.search_and_ingest(body.query.strip(), body.max)
    return {
        "success": True,
        "message": "Search and ingest completed",
        "data": result.model_dump(),
    }


# ============================================================================
# Article Routes
# ============================================================================


@router.get("/articles")
async def list_articles(
    repository: RepositoryDep,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """List stored articles, newest first."""
    articles = await repository.get_all(limit, offset)
    total = await repository.count()
    return {
        "success": True,
        "data": {
            "articles": [a.model_dump() for a in articles],
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.get("/articles/{article_id}")
async def get_article(article_id: str, repository: RepositoryDep):
    article = await repository.get_by_id(article_id)
    if article is None:
        raise ArticleNotFoundError(article_id)
    return {"success": True, "data": article.model_dump()}


@router.get("/articles/{article_id}/similar")
async def find_similar(
    article_id: str,
    repository: RepositoryDep,
    limit: int = Query(default=10, ge=1, le=100),
):
    """Articles closest to this one by embedding, the article itself excluded."""
    article = await repository.get_by_id(article_id)
    if article is None:
        raise ArticleNotFoundError(article_id)
    if not article.embedding:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Article has no embedding")

    similar = await repository.find_similar(article.embedding, limit + 1)
    filtered = [a for a in similar if a.id != article_id][:limit]

    return {
        "success": True,
        "data": {
            "source_article": {"id": article.id, "title": article.title},
            "similar_articles": [a.model_dump(exclude={"embedding"}) for a in filtered],
        },
    }


# ============================================================================
# Stats & Health
# ============================================================================


@router.get("/stats")
async def get_stats(pipeline: PipelineDep):
    stats = await pipeline.stats()
    return {"success": True, "data": stats.model_dump()}


@router.get("/health")
async def health_check():
    return {
        "success": True,
        "message": "Service is healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
