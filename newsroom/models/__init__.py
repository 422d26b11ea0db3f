from .news_item import NewsItem
from .user import User
from .category import Category
from .contact import ContactMessage
from .media import MediaReference
from .enums import ContentKind, MediaKind, UserRole

__all__ = ["NewsItem", "User", "Category", "ContactMessage", "MediaReference", "ContentKind", "MediaKind", "UserRole"]
