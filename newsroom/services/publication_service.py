"""
Moderation and publication workflow for stored news items.

    submit ──> pending (approved=False) ──approve / approve-as-gallery / approve-as-event──> published
    published ──feature / unfeature / edit──> published
    any ──delete──> gone (media cleanup is best effort)

There is no transition back from published to pending.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any

import structlog

from ..config import Settings
from ..exceptions import DuplicateKeyError, NotFoundError
from ..models.enums import ContentKind
from ..models.news_item import NewsItem
from ..models.user import User
from ..repositories.news_repository import NewsRepository
from ..utils.validation_utils import validate_required_fields
from .media_resolver import IncomingMedia, MediaResolver
from .slug_service import SlugService, generate_slug

logger = structlog.get_logger(__name__)

PUBLIC_FILTER = {"is_ujala": True, "approved": True}
PUBLIC_SORT = [("is_breaking", True), ("created_at", True)]
NEWEST_FIRST = [("created_at", True)]
FEATURED_SORT = [("featured_at", True), ("created_at", True)]


class SubmissionFlow(str, Enum):
    ADMIN = "admin"
    REPORTER = "reporter"


@dataclass
class NewsSubmission:
    title: str
    description: str
    content: str
    kind: ContentKind = ContentKind.PLAIN
    author: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[str] = None
    event_venue: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    image: Optional[IncomingMedia] = None
    video: Optional[IncomingMedia] = None
    gallery: List[IncomingMedia] = field(default_factory=list)


@dataclass
class NewsEdit:
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    image: Optional[IncomingMedia] = None
    video: Optional[IncomingMedia] = None
    gallery: List[IncomingMedia] = field(default_factory=list)


def parse_event_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable event date", event_date=value)
        return None


def page_to_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


class PublicationService:
    def __init__(
        self,
        news_repo: NewsRepository,
        slug_service: SlugService,
        media_resolver: MediaResolver,
        settings: Settings
    ):
        self.news_repo = news_repo
        self.slug_service = slug_service
        self.media_resolver = media_resolver
        self.settings = settings

    # ------------------------------------------------------------------
    # Per-flow defaults
    # ------------------------------------------------------------------

    def category_for(self, kind: ContentKind, flow: SubmissionFlow) -> str:
        if kind == ContentKind.GALLERY:
            return self.settings.gallery_category
        if kind == ContentKind.EVENT:
            return self.settings.event_category
        return self.settings.admin_category if flow == SubmissionFlow.ADMIN else self.settings.default_category

    def approved_default(self, flow: SubmissionFlow) -> bool:
        if flow == SubmissionFlow.ADMIN:
            return self.settings.admin_upload_approved
        return self.settings.reporter_upload_approved

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def submit(self, submission: NewsSubmission, flow: SubmissionFlow, actor: Optional[User] = None) -> NewsItem:
        validate_required_fields({
            "title": submission.title,
            "description": submission.description,
            "content": submission.content,
        })

        author = submission.author
        if not author and flow == SubmissionFlow.REPORTER and actor is not None:
            author = actor.full_name

        item = NewsItem(
            title=submission.title.strip(),
            description=submission.description,
            content=submission.content,
            author=author or self.settings.default_author,
            source=self.settings.default_author,
            location=submission.location or "",
            tags=list(submission.tags or []),
            category=self.category_for(submission.kind, flow),
            is_ujala=True,
            approved=self.approved_default(flow),
            event_date=parse_event_date(submission.event_date),
            event_venue=submission.event_venue or None,
            views=0,
        )
        item.kind = submission.kind
        if flow == SubmissionFlow.REPORTER and actor is not None:
            item.reporter_id = actor.user_id

        item.slug = self.slug_service.slug_for_title(item.title)
        item.short_id = self.slug_service.new_short_id()

        if submission.image:
            item.image = await self.media_resolver.store_upload(submission.image)
        if submission.video:
            item.video = await self.media_resolver.store_upload(submission.video)
        if submission.gallery:
            item.gallery_images = await self.media_resolver.store_gallery(submission.gallery)

        try:
            item = self.news_repo.insert(item)
        except DuplicateKeyError:
            # a concurrent writer took the slug or short id; drop the blobs stored for this attempt
            await self.media_resolver.delete_all(item.media_references())
            raise
        logger.info(
            "News submitted",
            news_id=item.id,
            slug=item.slug,
            flow=flow.value,
            kind=item.kind.value,
            approved=item.approved
        )
        return item

    async def edit(self, news_id: str, changes: NewsEdit) -> NewsItem:
        item = self.get(news_id)

        if changes.title and changes.title.strip() != item.title:
            item.title = changes.title.strip()
            item.slug = self.slug_service.ensure_unique_slug(generate_slug(item.title), self_id=item.id)
        for name in ("description", "content", "author", "location", "category"):
            value = getattr(changes, name)
            if value:
                setattr(item, name, value)

        if changes.image:
            item.image = await self.media_resolver.store_upload(changes.image)
        if changes.video:
            item.video = await self.media_resolver.store_upload(changes.video)
        if changes.gallery:
            item.gallery_images = await self.media_resolver.store_gallery(changes.gallery)

        if not item.short_id:
            item.short_id = self.slug_service.new_short_id()

        item = self.news_repo.save(item)
        logger.info("News updated", news_id=item.id, slug=item.slug)
        return item

    def approve(self, news_id: str) -> NewsItem:
        item = self.get(news_id)
        if item.kind == ContentKind.GALLERY:
            item.category = self.settings.gallery_category
        elif item.kind == ContentKind.EVENT:
            item.category = self.settings.event_category
        elif not (item.category or "").strip():
            # a category chosen by the submitter is kept as-is
            item.category = self.settings.default_category
        return self._publish(item)

    def approve_as(self, news_id: str, kind: ContentKind) -> NewsItem:
        item = self.get(news_id)
        item.kind = kind
        if kind == ContentKind.GALLERY:
            item.category = self.settings.gallery_category
        elif kind == ContentKind.EVENT:
            item.category = self.settings.event_category
        elif not (item.category or "").strip():
            item.category = self.settings.default_category
        return self._publish(item)

    def approve_as_gallery(self, news_id: str) -> NewsItem:
        return self.approve_as(news_id, ContentKind.GALLERY)

    def approve_as_event(self, news_id: str) -> NewsItem:
        return self.approve_as(news_id, ContentKind.EVENT)

    def _publish(self, item: NewsItem) -> NewsItem:
        item.approved = True
        item.is_ujala = True
        # freshly approved items surface at the top of the public listing
        item.is_breaking = True
        item = self.news_repo.save(item)
        logger.info("News approved", news_id=item.id, kind=item.kind.value, category=item.category)
        return item

    def feature(self, news_id: str) -> NewsItem:
        item = self.get(news_id)
        item.is_featured = True
        item.featured_at = datetime.now(timezone.utc)
        return self.news_repo.save(item)

    def unfeature(self, news_id: str) -> NewsItem:
        item = self.get(news_id)
        item.is_featured = False
        item.featured_at = None
        return self.news_repo.save(item)

    async def delete(self, news_id: str, kind: Optional[ContentKind] = None) -> NewsItem:
        """
        Remove an item, then its media. The record removal stands even when
        blob cleanup fails.
        """
        item = self.get(news_id)
        if kind is not None and item.kind != kind:
            raise NotFoundError("Not found", error_code="NEWS_NOT_FOUND", details={"id": news_id})
        refs = item.media_references()
        deleted = self.news_repo.delete_by_id(item.id)
        if deleted is None:
            raise NotFoundError("Not found", error_code="NEWS_NOT_FOUND", details={"id": news_id})

        removed = await self.media_resolver.delete_all(refs)
        logger.info("News deleted", news_id=news_id, media_total=len(refs), media_removed=removed)
        return deleted

    def increment_view(self, news_id: str) -> int:
        views = self.news_repo.increment_views(news_id)
        if views is None:
            raise NotFoundError("Not found", error_code="NEWS_NOT_FOUND", details={"id": news_id})
        return views

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, news_id: str) -> NewsItem:
        item = self.news_repo.find_by_id(news_id)
        if not item:
            raise NotFoundError("Not found", error_code="NEWS_NOT_FOUND", details={"id": news_id})
        return item

    def find_public_by_slug(self, slug: str) -> Optional[NewsItem]:
        """
        Stored item for a public slug lookup. Returns None when nothing is
        stored and raises NotFoundError when the item exists but is hidden.
        """
        item = self.news_repo.find_one(slug=slug)
        if item is None:
            return None
        if not item.is_publicly_visible:
            raise NotFoundError("News not found", error_code="NEWS_NOT_FOUND", details={"slug": slug})
        return item

    def locate_media_file(self, filename: str) -> Optional[Tuple[NewsItem, Optional[int]]]:
        """Item referencing an upload filename, plus its gallery index when the match is a gallery entry."""
        item = self.news_repo.find_by_media_filename(filename)
        if item is None:
            return None
        for index, ref in enumerate(item.gallery_images):
            if filename in ref.value:
                return item, index
        return item, None

    def get_public_by_short_id(self, short_id: str) -> NewsItem:
        item = self.news_repo.find_one(short_id=short_id)
        if item is None or not item.is_publicly_visible:
            raise NotFoundError("News not found", error_code="NEWS_NOT_FOUND", details={"short_id": short_id})
        return item

    def list_public(self, page: int = 1, limit: int = 20) -> Tuple[List[NewsItem], int]:
        return self._paginate(dict(PUBLIC_FILTER), PUBLIC_SORT, page, limit)

    def list_public_events(self, page: int = 1, limit: int = 20) -> Tuple[List[NewsItem], int]:
        return self._paginate({**PUBLIC_FILTER, "kind": ContentKind.EVENT}, NEWEST_FIRST, page, limit)

    def list_featured(self, limit: int = 6) -> List[NewsItem]:
        return self.news_repo.find_many({**PUBLIC_FILTER, "is_featured": True}, FEATURED_SORT, limit=limit)

    def list_pending(self, kind: Optional[ContentKind] = None) -> List[NewsItem]:
        return self.news_repo.find_many(self._moderation_filter(False, kind), NEWEST_FIRST)

    def list_approved(self, kind: Optional[ContentKind] = None) -> List[NewsItem]:
        return self.news_repo.find_many(self._moderation_filter(True, kind), NEWEST_FIRST)

    @staticmethod
    def _moderation_filter(approved: bool, kind: Optional[ContentKind]) -> Dict[str, Any]:
        filters: Dict[str, Any] = {"is_ujala": True, "approved": approved}
        if kind is not None:
            filters["kind"] = kind
        return filters

    def _paginate(self, filters: Dict[str, Any], sort, page: int, limit: int) -> Tuple[List[NewsItem], int]:
        total = self.news_repo.count(filters)
        items = self.news_repo.find_many(filters, sort, offset=page_to_offset(page, limit), limit=limit)
        return items, total
