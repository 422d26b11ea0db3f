from .news_response_mapper import NewsResponseMapper

__all__ = ["NewsResponseMapper"]
