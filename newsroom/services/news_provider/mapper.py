"""
Provider article mapper
Normalizes GNews and NewsAPI.org articles into LiveArticle objects
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..slug_service import ascii_slugify, now_ms

LIVE_SLUG_BASE_LENGTH = 80
MAX_TAGS = 5
BREAKING_COUNT = 2

CATEGORY_MAP = {
    "breaking": "general",
    "india": "nation",
    "world": "world",
    "sports": "sports",
    "entertainment": "entertainment",
    "business": "business",
    "technology": "technology",
    "health": "health",
    "education": "general",
    "lifestyle": "general",
    "auto": "technology",
    "religion": "general",
}

# categories NewsAPI.org accepts on top-headlines
NEWSAPI_CATEGORIES = {"business", "entertainment", "general", "health", "science", "sports", "technology"}

CATEGORY_KEYWORDS = {
    "breaking": ["breaking", "live", "update", "latest"],
    "sports": ["cricket", "football", "tennis", "match", "score", "player"],
    "entertainment": ["film", "movie", "actor", "actress", "bollywood", "series", "music"],
    "business": ["business", "stock", "market", "economy", "company", "shares"],
    "technology": ["technology", "tech", "ai", "app", "software", "google", "apple"],
    "health": ["health", "covid", "hospital", "disease", "medical", "doctor"],
    "world": ["world", "international", "united", "countries", "global"],
    "india": ["india", "modi", "government", "delhi", "mumbai", "bharat", "भारत"],
    "general": [],
}

TAG_KEYWORDS = [
    "election", "politics", "cricket", "football", "tennis", "business",
    "stock", "market", "technology", "ai", "india", "modi", "government",
    "court", "police", "accident", "weather", "health", "covid",
    "education", "exam", "university", "film", "actor", "actress",
    "bollywood", "series", "match", "player", "minister", "pm",
    "breaking", "live", "update", "latest", "news",
]

_SEARCHABLE_TOKEN = re.compile(r"[A-Za-z]{3,}|[ऀ-ॿ]{3,}")


class LiveArticle(BaseModel):
    """Provider article shaped like a stored item, never persisted"""
    id: str
    title: str
    slug: str
    description: str
    content: str
    category: str = "general"
    image_url: str = ""
    author: str = "News Desk"
    source: str = "External Source"
    views: int = 0
    is_featured: bool = False
    is_breaking: bool = False
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    published_at: Optional[str] = None
    external_url: Optional[str] = None
    video_url: Optional[str] = None


def map_category(category: str) -> str:
    return CATEGORY_MAP.get(category, "general")


def extract_tags(title: Optional[str], description: Optional[str]) -> List[str]:
    text = f"{title or ''} {description or ''}".lower()
    return [keyword for keyword in TAG_KEYWORDS if keyword in text][:MAX_TAGS]


def filter_by_category(articles: List[Dict[str, Any]], category: str) -> List[Dict[str, Any]]:
    """
    Bias broad results toward a category by keyword match. Returns the input
    unchanged when nothing matches.
    """
    if not articles or not category or category == "general":
        return articles
    keywords = CATEGORY_KEYWORDS.get(category, [category])
    if not keywords:
        return articles
    filtered = []
    for article in articles:
        text = f"{article.get('title') or ''} {article.get('description') or ''} {article.get('content') or ''}".lower()
        if any(keyword in text for keyword in keywords):
            filtered.append(article)
    return filtered or articles


def search_term_from_slug(slug: str, max_tokens: int = 4) -> str:
    """Search query for a slug no stored or cached article answers."""
    tokens = [token.strip() for token in str(slug or "").split("-") if token.strip()]
    good = [token for token in tokens if _SEARCHABLE_TOKEN.search(token)]
    return " ".join(good[:max_tokens]).strip()


class ArticleMapper:
    def __init__(self, placeholder_image: str = ""):
        self.placeholder_image = placeholder_image

    def live_slug(self, title: Optional[str], index: int, timestamp: int) -> str:
        base = ascii_slugify(title or "")[:LIVE_SLUG_BASE_LENGTH].strip("-")
        if not base:
            base = f"article-{timestamp}"
        return f"{base}-{timestamp}-{index}"

    def map_article(self, raw: Dict[str, Any], index: int, category: str, timestamp: int) -> LiveArticle:
        source = raw.get("source")
        if isinstance(source, dict):
            source_name = source.get("name") or ""
        else:
            source_name = source or ""
        source_name = source_name or "External Source"

        title = raw.get("title") or ""
        description = raw.get("description") or (raw.get("content") or "")[:200] or "Read full article..."
        published_at = raw.get("publishedAt") or raw.get("published_at")

        return LiveArticle(
            id=f"live-{timestamp}-{index}",
            title=title,
            slug=self.live_slug(title, index, timestamp),
            description=description,
            content=raw.get("content") or raw.get("description") or title,
            category=category,
            image_url=raw.get("urlToImage") or raw.get("image") or self.placeholder_image,
            author=raw.get("author") or source_name,
            source=source_name,
            is_breaking=index < BREAKING_COUNT,
            tags=extract_tags(title, raw.get("description")),
            created_at=published_at,
            published_at=published_at,
            external_url=raw.get("url") or raw.get("urlToImage"),
        )

    def map_articles(self, articles: List[Dict[str, Any]], category: str = "general") -> List[LiveArticle]:
        timestamp = now_ms()
        return [self.map_article(raw, index, category, timestamp) for index, raw in enumerate(articles or [])]
