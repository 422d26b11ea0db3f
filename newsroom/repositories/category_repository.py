from typing import List, Optional

from sqlalchemy import asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateKeyError
from ..models.category import Category


class CategoryRepository:
    def __init__(self, session: Session):
        self.session = session

    def list_ordered(self) -> List[Category]:
        return self.session.query(Category).order_by(asc(Category.order), asc(Category.name)).all()

    def find_by_slug(self, slug: str) -> Optional[Category]:
        return self.session.query(Category).filter(Category.slug == slug).first()

    def insert(self, category: Category) -> Category:
        self.session.add(category)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateKeyError(
                "A category with this name or slug already exists",
                error_code="DUPLICATE_KEY",
                details={"name": category.name, "slug": category.slug, "error": str(e.orig)}
            )
        self.session.refresh(category)
        return category
