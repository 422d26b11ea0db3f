from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import String, asc, cast, desc, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateKeyError, ValidationError
from ..models.news_item import NewsItem
from ..utils.validation_utils import validate_entity_id

# (field, descending)
SortSpec = Sequence[Tuple[str, bool]]


class NewsRepository:
    def __init__(self, session: Session):
        self.session = session

    def _column(self, field: str):
        if field == "kind":
            field = "content_kind"
        column = getattr(NewsItem, field, None)
        if column is None or not hasattr(column, "property"):
            raise ValidationError(f"Unknown news field: {field}")
        return column

    def _query(self, filters: Optional[Dict[str, Any]] = None):
        query = self.session.query(NewsItem)
        for field, value in (filters or {}).items():
            column = self._column(field)
            if isinstance(value, Enum):
                value = value.value
            if value is None:
                query = query.filter(column.is_(None))
            else:
                query = query.filter(column == value)
        return query

    def find_by_id(self, news_id: str) -> Optional[NewsItem]:
        news_id = validate_entity_id(news_id)
        return self.session.query(NewsItem).filter(NewsItem.id == news_id).first()

    def find_one(self, **filters) -> Optional[NewsItem]:
        return self._query(filters).first()

    def find_many(
        self,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[NewsItem]:
        query = self._query(filters)
        for field, descending in (sort or [("created_at", True)]):
            column = self._column(field)
            query = query.order_by(desc(column) if descending else asc(column))
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_by_media_filename(self, filename: str) -> Optional[NewsItem]:
        """Newest item whose image or gallery references mention `filename`."""
        escaped = filename.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return (
            self.session.query(NewsItem)
            .filter(or_(
                NewsItem.image_ref.like(pattern, escape="\\"),
                cast(NewsItem.gallery, String).like(pattern, escape="\\"),
            ))
            .order_by(desc(NewsItem.created_at))
            .first()
        )

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._query(filters).count()

    def field_taken(self, field: str, value: Any, exclude_id: Optional[str] = None) -> bool:
        """True when another item already holds `value` in `field`."""
        query = self.session.query(NewsItem.id).filter(self._column(field) == value)
        if exclude_id:
            query = query.filter(NewsItem.id != exclude_id)
        return query.first() is not None

    def insert(self, item: NewsItem) -> NewsItem:
        self.session.add(item)
        self._commit(item)
        self.session.refresh(item)
        return item

    def save(self, item: NewsItem) -> NewsItem:
        self._commit(item)
        self.session.refresh(item)
        return item

    def update_by_id(self, news_id: str, patch: Dict[str, Any]) -> Optional[NewsItem]:
        item = self.find_by_id(news_id)
        if not item:
            return None
        for field, value in patch.items():
            if field == "views":
                raise ValidationError("views can only change through increment_views")
            setattr(item, field, value)
        return self.save(item)

    def delete_by_id(self, news_id: str) -> Optional[NewsItem]:
        item = self.find_by_id(news_id)
        if not item:
            return None
        self.session.delete(item)
        self.session.commit()
        return item

    def increment_views(self, news_id: str) -> Optional[int]:
        news_id = validate_entity_id(news_id)
        result = self.session.execute(
            update(NewsItem)
            .where(NewsItem.id == news_id)
            .values(views=NewsItem.views + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        if result.rowcount == 0:
            return None
        return self.session.query(NewsItem.views).filter(NewsItem.id == news_id).scalar()

    def _commit(self, item: NewsItem) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateKeyError(
                "Duplicate key error: an item with similar slug already exists",
                error_code="DUPLICATE_KEY",
                details={"slug": item.slug, "short_id": item.short_id, "error": str(e.orig)}
            )
