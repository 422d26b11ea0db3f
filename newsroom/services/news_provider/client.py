import asyncio
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ...config import Settings
from ...exceptions import ExternalServiceError
from .cache import TTLCache
from .mapper import (
    NEWSAPI_CATEGORIES,
    ArticleMapper,
    LiveArticle,
    filter_by_category,
    map_category,
)

logger = structlog.get_logger(__name__)

GNEWS_BASE_URL = "https://gnews.io/api/v4"
NEWSAPI_BASE_URL = "https://newsapi.org/v2"


class NewsProviderClient:
    """
    Live news from GNews or NewsAPI.org.

    Responses are cached per (kind, params) for the configured TTL. Every
    article handed out is also recorded in `slug_index` so a later detail
    lookup can answer without a stored item.
    """

    def __init__(
        self,
        settings: Settings,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_key = settings.news_api_key
        self.provider = (settings.news_provider or "gnews").lower()
        self.base_url = NEWSAPI_BASE_URL if self.provider == "newsapi" else GNEWS_BASE_URL
        self.cache = cache if cache is not None else TTLCache(settings.news_cache_ttl_seconds)
        self.client = client if client is not None else httpx.AsyncClient(timeout=settings.news_request_timeout_seconds)
        self.mapper = ArticleMapper(settings.default_placeholder_image)
        self.slug_index: Dict[str, LiveArticle] = {}
        logger.info("News provider client initialized", provider=self.provider, base_url=self.base_url)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _require_key(self) -> None:
        if not self.api_key:
            raise ExternalServiceError(
                "NEWS_API_KEY not configured. Add your news provider API key to the environment.",
                error_code="NEWS_API_KEY_MISSING"
            )

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error("News provider returned an error", provider=self.provider, path=path, status=e.response.status_code)
            raise ExternalServiceError(
                f"News provider error: {e.response.status_code}",
                error_code="NEWS_PROVIDER_ERROR",
                details={"status": e.response.status_code}
            )
        except httpx.HTTPError as e:
            logger.error("News provider request failed", provider=self.provider, path=path, error=str(e))
            raise ExternalServiceError(f"News provider request failed: {e}", error_code="NEWS_PROVIDER_UNREACHABLE")

    def _remember(self, articles: List[LiveArticle]) -> List[LiveArticle]:
        for article in articles:
            self.slug_index[article.slug] = article
        return articles

    async def fetch_top_headlines(self, category: str = "general", limit: int = 10) -> List[LiveArticle]:
        self._require_key()
        cache_key = TTLCache.make_key("headlines", {"category": category, "limit": limit})
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Returning cached headlines", category=category)
            return cached

        if self.provider == "newsapi":
            raw = await self._newsapi_headlines(category, limit)
        else:
            data = await self._get("/top-headlines", {
                "category": map_category(category),
                "lang": "hi",
                "country": "in",
                "max": limit,
                "apikey": self.api_key,
            })
            if "articles" not in data:
                raise ExternalServiceError("No articles returned from news provider", error_code="NEWS_PROVIDER_EMPTY")
            raw = data["articles"] or []

        articles = self._remember(self.mapper.map_articles(raw, category))
        self.cache.set(cache_key, articles)
        logger.info("Fetched live headlines", provider=self.provider, category=category, count=len(articles))
        return articles

    async def _newsapi_headlines(self, category: str, limit: int) -> List[Dict[str, Any]]:
        mapped = map_category(category)
        params: Dict[str, Any] = {"apiKey": self.api_key, "pageSize": limit, "country": "in"}
        if category != "india" and mapped in NEWSAPI_CATEGORIES:
            params["category"] = mapped

        data = await self._get("/top-headlines", params)
        if "articles" not in data:
            raise ExternalServiceError("No articles returned from news provider", error_code="NEWS_PROVIDER_EMPTY")
        articles = data["articles"] or []
        if articles:
            return articles

        # relaxed retries when the category comes back empty
        logger.warning("Provider returned no articles, trying fallback query", category=category)
        try:
            relaxed = {key: value for key, value in params.items() if key != "category"}
            relaxed["q"] = "india"
            articles = (await self._get("/top-headlines", relaxed)).get("articles") or []
            if not articles:
                articles = (await self._get("/everything", {
                    "q": "india OR भारत",
                    "language": "en",
                    "pageSize": limit,
                    "apiKey": self.api_key,
                })).get("articles") or []
        except ExternalServiceError as e:
            logger.warning("Provider fallback failed", category=category, error=e.message)
            return []
        return filter_by_category(articles, category)

    async def search(self, query: str, limit: int = 10) -> List[LiveArticle]:
        self._require_key()
        cache_key = TTLCache.make_key("search", {"query": query, "limit": limit})
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if self.provider == "newsapi":
            data = await self._get("/everything", {
                "q": query,
                "language": "en",
                "pageSize": limit,
                "apiKey": self.api_key,
            })
        else:
            data = await self._get("/search", {
                "q": query,
                "lang": "hi",
                "country": "in",
                "max": limit,
                "apikey": self.api_key,
            })

        articles = self._remember(self.mapper.map_articles(data.get("articles") or []))
        self.cache.set(cache_key, articles)
        logger.info("Live search finished", provider=self.provider, query=query, count=len(articles))
        return articles

    async def fetch_breaking(self, limit: int = 10) -> List[LiveArticle]:
        return await self.fetch_top_headlines("breaking", limit)

    async def fetch_featured(self, limit: int = 6) -> List[LiveArticle]:
        if not self.configured:
            logger.warning("No news API key configured, featured list is empty")
            return []
        india, sports, technology = await asyncio.gather(
            self.fetch_top_headlines("india", 2),
            self.fetch_top_headlines("sports", 2),
            self.fetch_top_headlines("technology", 2),
        )
        return [*india, *sports, *technology][:limit]

    async def fetch_trending(self) -> List[LiveArticle]:
        sports, entertainment, business = await asyncio.gather(
            self.fetch_top_headlines("sports", 4),
            self.fetch_top_headlines("entertainment", 3),
            self.fetch_top_headlines("business", 3),
        )
        return [*sports, *entertainment, *business]

    def get_article_by_slug(self, slug: str) -> Optional[LiveArticle]:
        return self.slug_index.get(slug)

    def clear_cache(self) -> None:
        self.cache.clear()

    async def close(self):
        await self.client.aclose()
