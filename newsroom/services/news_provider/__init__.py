from .cache import TTLCache
from .client import NewsProviderClient
from .mapper import ArticleMapper, LiveArticle, extract_tags, search_term_from_slug

__all__ = [
    "TTLCache",
    "NewsProviderClient",
    "ArticleMapper",
    "LiveArticle",
    "extract_tags",
    "search_term_from_slug",
]
