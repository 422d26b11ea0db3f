from .news_repository import NewsRepository
from .user_repository import UserRepository
from .category_repository import CategoryRepository
from .contact_repository import ContactRepository

__all__ = ["NewsRepository", "UserRepository", "CategoryRepository", "ContactRepository"]
