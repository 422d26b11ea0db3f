from typing import List, Optional
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from ...dependencies import (
    get_news_provider,
    get_publication_service,
    get_response_mapper,
    require_roles,
)
from ..mappers import NewsResponseMapper
from ..schemas import (
    LiveNewsPage,
    NewsDetailResponse,
    NewsItemResponse,
    NewsPage,
    Pagination,
    StandardAPIResponse,
    ViewCountResponse,
)
from ....config import Settings, get_settings
from ....exceptions import NotFoundError
from ....models.enums import UserRole
from ....services.news_provider import LiveArticle, NewsProviderClient, search_term_from_slug
from ....services.publication_service import PublicationService
from ....utils.url_utils import strip_trailing_slash

logger = structlog.get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Live provider news
# ---------------------------------------------------------------------------

@router.get("", response_model=StandardAPIResponse[LiveNewsPage])
async def list_live_news(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None, description="Provider category, e.g. india, sports"),
    search: Optional[str] = Query(None, description="Free-text search"),
    provider: NewsProviderClient = Depends(get_news_provider)
):
    """Live news from the configured provider"""
    if search:
        articles = await provider.search(search, limit)
    elif category and category != "all":
        articles = await provider.fetch_top_headlines(category, limit)
    else:
        articles = await provider.fetch_top_headlines("india", limit)

    # the provider returns at most `limit` items, slice locally
    start = (page - 1) * limit
    return StandardAPIResponse.success(
        LiveNewsPage(
            items=articles[start:start + limit],
            pagination=Pagination.build(len(articles), page, limit)
        ),
        message="Live news"
    )


@router.get("/breaking", response_model=StandardAPIResponse[List[LiveArticle]])
async def list_breaking_news(provider: NewsProviderClient = Depends(get_news_provider)):
    return StandardAPIResponse.success(await provider.fetch_breaking(10), message="Live breaking news")


@router.get("/featured", response_model=StandardAPIResponse[List[LiveArticle]])
async def list_featured_news(provider: NewsProviderClient = Depends(get_news_provider)):
    return StandardAPIResponse.success(await provider.fetch_featured(6), message="Live featured news")


@router.get("/trending", response_model=StandardAPIResponse[List[LiveArticle]])
async def list_trending_news(provider: NewsProviderClient = Depends(get_news_provider)):
    return StandardAPIResponse.success(await provider.fetch_trending(), message="Live trending news")


@router.post("/cache/clear", response_model=StandardAPIResponse[None])
async def clear_provider_cache(
    provider: NewsProviderClient = Depends(get_news_provider),
    _=Depends(require_roles(UserRole.ADMIN))
):
    provider.clear_cache()
    return StandardAPIResponse.success(None, message="Cache cleared successfully")


# ---------------------------------------------------------------------------
# Stored news, public reads
# ---------------------------------------------------------------------------

@router.get("/ujala", response_model=StandardAPIResponse[NewsPage])
async def list_ujala_news(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    """Approved stored news, breaking first then newest"""
    items, total = publication.list_public(page, limit)
    return StandardAPIResponse.success(
        NewsPage(items=mapper.map_items(items), pagination=Pagination.build(total, page, limit))
    )


@router.get("/ujala-events", response_model=StandardAPIResponse[NewsPage])
async def list_ujala_events(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    items, total = publication.list_public_events(page, limit)
    return StandardAPIResponse.success(
        NewsPage(items=mapper.map_items(items), pagination=Pagination.build(total, page, limit))
    )


@router.get("/featured-db", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_featured_stored_news(
    limit: int = Query(6, ge=1, le=50),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_featured(limit)))


@router.get("/r/{short_id}", response_class=RedirectResponse, status_code=302)
async def follow_short_link(
    short_id: str,
    publication: PublicationService = Depends(get_publication_service),
    settings: Settings = Depends(get_settings)
):
    item = publication.get_public_by_short_id(short_id)
    return RedirectResponse(f"{strip_trailing_slash(settings.frontend_url)}/news/{quote(item.slug)}", status_code=302)


@router.get("/{slug}", response_model=StandardAPIResponse[NewsDetailResponse])
async def get_news_by_slug(
    slug: str,
    publication: PublicationService = Depends(get_publication_service),
    provider: NewsProviderClient = Depends(get_news_provider),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    """
    Detail lookup: stored item first, then an article seen in an earlier live
    listing, then a live search built from the slug words.
    """
    item = publication.find_public_by_slug(slug)
    if item is not None:
        return StandardAPIResponse.success(
            NewsDetailResponse(source="database", item=mapper.map_item(item)),
            message="News detail from database"
        )

    cached = provider.get_article_by_slug(slug)
    if cached is not None:
        return StandardAPIResponse.success(NewsDetailResponse(source="live-cache", live=cached))

    search_term = search_term_from_slug(slug)
    if not search_term or not provider.configured:
        logger.info("No usable search term for slug", slug=slug)
        raise NotFoundError("News not found", error_code="NEWS_NOT_FOUND", details={"slug": slug})

    results = await provider.search(search_term, 1)
    if not results:
        raise NotFoundError("News not found", error_code="NEWS_NOT_FOUND", details={"slug": slug})
    return StandardAPIResponse.success(NewsDetailResponse(source="live-api", live=results[0]))


@router.post("/{news_id}/view", response_model=StandardAPIResponse[ViewCountResponse])
async def increment_news_view(
    news_id: str,
    publication: PublicationService = Depends(get_publication_service)
):
    """Count one view. Kept apart from the detail read so repeated fetches do not inflate it."""
    views = publication.increment_view(news_id)
    return StandardAPIResponse.success(ViewCountResponse(id=news_id, views=views))
