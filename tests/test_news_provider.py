import httpx
import pytest
from unittest.mock import patch, MagicMock, AsyncMock

from newsroom.exceptions import ExternalServiceError
from newsroom.services.news_provider import (
    ArticleMapper,
    NewsProviderClient,
    TTLCache,
    extract_tags,
    search_term_from_slug,
)


def gnews_article(title, **overrides):
    article = {
        "title": title,
        "description": f"{title} description",
        "content": f"{title} content",
        "url": f"https://news.example.com/{title.lower().replace(' ', '-')}",
        "image": "https://img.example.com/a.jpg",
        "publishedAt": "2024-05-01T10:00:00Z",
        "source": {"name": "Example Times", "url": "https://news.example.com"},
    }
    article.update(overrides)
    return article


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestNewsProviderClient:
    @pytest.fixture(autouse=True)
    def setup_provider(self, settings):
        self.settings = settings.model_copy(update={"news_api_key": "test-key"})
        self.requests = []
        self.responses = {}

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            status, body = self.responses.get(request.url.path, (200, {"articles": []}))
            return httpx.Response(status, json=body)

        self.clock = FakeClock()
        self.provider = NewsProviderClient(
            self.settings,
            cache=TTLCache(600, clock=self.clock),
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    @pytest.mark.asyncio
    async def test_headlines_are_mapped(self):
        self.responses["/api/v4/top-headlines"] = (200, {"articles": [
            gnews_article("India wins the series"),
            gnews_article("Markets close higher"),
            gnews_article("Rain expected tomorrow"),
        ]})

        articles = await self.provider.fetch_top_headlines("india", 3)

        assert len(articles) == 3
        assert [a.is_breaking for a in articles] == [True, True, False]
        assert articles[0].source == "Example Times"
        assert articles[0].category == "india"
        assert articles[0].id.startswith("live-")
        assert articles[0].slug.startswith("india-wins-the-series-")
        params = self.requests[0].url.params
        assert params["category"] == "nation"
        assert params["lang"] == "hi"
        assert params["country"] == "in"
        assert params["max"] == "3"

    @pytest.mark.asyncio
    async def test_responses_are_cached_until_ttl(self):
        self.responses["/api/v4/top-headlines"] = (200, {"articles": [gnews_article("Cached story")]})

        first = await self.provider.fetch_top_headlines("sports", 5)
        second = await self.provider.fetch_top_headlines("sports", 5)
        assert len(self.requests) == 1
        assert first == second

        self.clock.now += 600
        await self.provider.fetch_top_headlines("sports", 5)
        assert len(self.requests) == 2

    def test_empty_injected_cache_is_kept(self):
        cache = TTLCache(600, clock=self.clock)
        provider = NewsProviderClient(self.settings, cache=cache, client=self.provider.client)

        assert len(cache) == 0
        assert provider.cache is cache
        assert provider.client is self.provider.client

    @pytest.mark.asyncio
    async def test_clear_cache_forces_refetch(self):
        await self.provider.fetch_top_headlines("sports", 5)
        self.provider.clear_cache()
        await self.provider.fetch_top_headlines("sports", 5)

        assert len(self.requests) == 2

    @pytest.mark.asyncio
    async def test_missing_articles_key_is_an_error(self):
        self.responses["/api/v4/top-headlines"] = (200, {"errors": ["quota"]})

        with pytest.raises(ExternalServiceError) as exc_info:
            await self.provider.fetch_top_headlines("india", 5)

        assert exc_info.value.error_code == "NEWS_PROVIDER_EMPTY"

    @pytest.mark.asyncio
    async def test_upstream_status_error(self):
        self.responses["/api/v4/search"] = (429, {"errors": ["too many requests"]})

        with pytest.raises(ExternalServiceError) as exc_info:
            await self.provider.search("election")

        assert exc_info.value.error_code == "NEWS_PROVIDER_ERROR"
        assert exc_info.value.details == {"status": 429}

    @pytest.mark.asyncio
    async def test_articles_are_indexed_by_slug(self):
        self.responses["/api/v4/search"] = (200, {"articles": [gnews_article("Election results declared")]})

        articles = await self.provider.search("election")

        assert self.provider.get_article_by_slug(articles[0].slug) == articles[0]
        assert self.provider.get_article_by_slug("never-seen") is None

    @pytest.mark.asyncio
    async def test_featured_combines_three_categories(self):
        self.responses["/api/v4/top-headlines"] = (200, {"articles": [gnews_article("A"), gnews_article("B")]})

        featured = await self.provider.fetch_featured()

        assert len(featured) == 6
        assert sorted(r.url.params["category"] for r in self.requests) == ["nation", "sports", "technology"]

    @pytest.mark.asyncio
    async def test_missing_key(self, settings):
        provider = NewsProviderClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))))

        assert provider.configured is False
        assert await provider.fetch_featured() == []
        with pytest.raises(ExternalServiceError) as exc_info:
            await provider.fetch_breaking()
        assert exc_info.value.error_code == "NEWS_API_KEY_MISSING"

    @pytest.mark.asyncio
    async def test_newsapi_falls_back_to_broad_query(self):
        settings = self.settings.model_copy(update={"news_provider": "newsapi"})
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/v2/everything":
                return httpx.Response(200, json={"articles": [
                    {"title": "Cricket match tonight", "description": "", "source": {"name": "Wire"}},
                    {"title": "Stock market rally", "description": "", "source": {"name": "Wire"}},
                ]})
            return httpx.Response(200, json={"articles": []})

        provider = NewsProviderClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        articles = await provider.fetch_top_headlines("sports", 5)

        assert [a.title for a in articles] == ["Cricket match tonight"]
        assert [r.url.path for r in requests] == ["/v2/top-headlines", "/v2/top-headlines", "/v2/everything"]
        assert requests[0].url.params["category"] == "sports"
        assert requests[1].url.params["q"] == "india"


class TestPatchedHttpClient:
    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_search_uses_gnews_search(self, mock_client, settings):
        mock_response = MagicMock()
        mock_response.json.return_value = {"articles": [gnews_article("Court verdict today")]}
        mock_response.raise_for_status = MagicMock()
        mock_client.return_value.get = AsyncMock(return_value=mock_response)

        provider = NewsProviderClient(settings.model_copy(update={"news_api_key": "test-key"}))
        articles = await provider.search("court")

        assert articles[0].title == "Court verdict today"
        url = mock_client.return_value.get.call_args.args[0]
        assert url == "https://gnews.io/api/v4/search"

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_network_failure(self, mock_client, settings):
        mock_client.return_value.get = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        provider = NewsProviderClient(settings.model_copy(update={"news_api_key": "test-key"}))

        with pytest.raises(ExternalServiceError) as exc_info:
            await provider.search("court")

        assert exc_info.value.error_code == "NEWS_PROVIDER_UNREACHABLE"


class TestArticleMapping:
    def test_tags_are_capped_at_five(self):
        tags = extract_tags("India wins cricket match", "Government announces update, latest news")
        assert tags == ["cricket", "india", "government", "match", "update"]

    def test_live_slug_for_non_latin_title(self):
        mapper = ArticleMapper()
        assert mapper.live_slug("चुनाव परिणाम", 2, 1700000000000) == "article-1700000000000-1700000000000-2"

    def test_missing_fields_get_defaults(self):
        mapper = ArticleMapper("https://cdn.example.com/placeholder.png")

        article = mapper.map_article({"title": "Bare"}, 5, "general", 1700000000000)

        assert article.description == "Read full article..."
        assert article.content == "Bare"
        assert article.image_url == "https://cdn.example.com/placeholder.png"
        assert article.source == "External Source"
        assert article.is_breaking is False
        assert article.views == 0

    def test_search_term_from_slug(self):
        assert search_term_from_slug("modi-visits-up-2024-1699999999999-3") == "modi visits"
        assert search_term_from_slug("चुनाव-परिणाम-12") == "चुनाव परिणाम"
        assert search_term_from_slug("12-34-5") == ""

    def test_search_term_keeps_four_tokens(self):
        assert search_term_from_slug("one-two-three-four-five-six") == "one two three four"


class TestTTLCache:
    def test_expired_entries_are_evicted_on_read(self):
        clock = FakeClock()
        cache = TTLCache(10, clock=clock)
        cache.set("k", [1])

        assert "k" in cache
        clock.now += 9
        assert cache.get("k") == [1]
        clock.now += 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_key_ignores_param_order(self):
        assert TTLCache.make_key("search", {"a": 1, "b": 2}) == TTLCache.make_key("search", {"b": 2, "a": 1})
