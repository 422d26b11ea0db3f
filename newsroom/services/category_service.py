from typing import List, Optional

import structlog

from ..exceptions import NotFoundError, ValidationError
from ..models.category import Category
from ..repositories.category_repository import CategoryRepository
from ..utils.validation_utils import validate_required_fields
from .slug_service import slugify

logger = structlog.get_logger(__name__)


class CategoryService:
    def __init__(self, category_repo: CategoryRepository):
        self.category_repo = category_repo

    def list_categories(self) -> List[Category]:
        return self.category_repo.list_ordered()

    def get_by_slug(self, slug: str) -> Category:
        category = self.category_repo.find_by_slug(slug)
        if category is None:
            raise NotFoundError("Category not found", error_code="CATEGORY_NOT_FOUND", details={"slug": slug})
        return category

    def create(self, name: str, slug: Optional[str] = None, order: int = 0, description: Optional[str] = None) -> Category:
        validate_required_fields({"name": name})
        slug = slugify(slug or name)
        if not slug:
            raise ValidationError("Category slug cannot be empty", error_code="INVALID_SLUG", details={"name": name})

        category = self.category_repo.insert(Category(
            name=name.strip(),
            slug=slug,
            order=order,
            description=(description or "").strip() or None,
        ))
        logger.info("Category created", slug=category.slug, order=category.order)
        return category
