import uuid
from typing import List

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON, ForeignKey
from sqlalchemy.sql import func

from ..core.database import Base
from .enums import ContentKind, MediaKind
from .media import MediaReference


def generate_uuid():
    return str(uuid.uuid4())


class NewsItem(Base):
    """
    A stored news item. Covers directly published admin content as well as
    citizen-reporter submissions waiting for moderation.
    """
    __tablename__ = "news_items"

    id = Column(String, primary_key=True, index=True, default=generate_uuid)

    # Identity
    title = Column(String(500), nullable=False)
    slug = Column(String(600), nullable=False, unique=True, index=True)
    short_id = Column(String(10), nullable=True, unique=True, index=True)

    # Content
    description = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    author = Column(String(200), nullable=True)
    source = Column(String(200), nullable=True)
    location = Column(String(200), nullable=True)
    tags = Column(JSON, default=list)

    # Classification
    content_kind = Column(String(20), nullable=False, default=ContentKind.PLAIN.value)
    is_ujala = Column(Boolean, nullable=False, default=False)
    is_breaking = Column(Boolean, nullable=False, default=False)
    is_featured = Column(Boolean, nullable=False, default=False)
    featured_at = Column(DateTime(timezone=True), nullable=True)

    # Moderation and provenance
    approved = Column(Boolean, nullable=False, default=True)
    reporter_id = Column(String, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True)

    # Event-specific fields
    event_date = Column(DateTime(timezone=True), nullable=True)
    event_venue = Column(String(300), nullable=True)

    # Media, each stored as a (kind, ref) pair
    image_kind = Column(String(20), nullable=False, default=MediaKind.EMPTY.value)
    image_ref = Column(String(1000), nullable=True)
    video_kind = Column(String(20), nullable=False, default=MediaKind.EMPTY.value)
    video_ref = Column(String(1000), nullable=True)
    gallery = Column(JSON, default=list)  # ordered list of {"kind", "value"}

    # Engagement, only changed through NewsRepository.increment_views
    views = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<NewsItem(id={self.id}, slug='{self.slug}', approved={self.approved})>"

    @property
    def kind(self) -> ContentKind:
        return ContentKind(self.content_kind or ContentKind.PLAIN.value)

    @kind.setter
    def kind(self, value: ContentKind):
        self.content_kind = ContentKind(value).value

    @property
    def is_gallery(self) -> bool:
        return self.kind == ContentKind.GALLERY

    @property
    def is_event(self) -> bool:
        return self.kind == ContentKind.EVENT

    @property
    def image(self) -> MediaReference:
        return MediaReference(self.image_kind or MediaKind.EMPTY, self.image_ref or "")

    @image.setter
    def image(self, ref: MediaReference):
        self.image_kind = ref.kind.value
        self.image_ref = ref.value or None

    @property
    def video(self) -> MediaReference:
        return MediaReference(self.video_kind or MediaKind.EMPTY, self.video_ref or "")

    @video.setter
    def video(self, ref: MediaReference):
        self.video_kind = ref.kind.value
        self.video_ref = ref.value or None

    @property
    def gallery_images(self) -> List[MediaReference]:
        return [MediaReference.from_dict(entry) for entry in (self.gallery or [])]

    @gallery_images.setter
    def gallery_images(self, refs: List[MediaReference]):
        self.gallery = [ref.to_dict() for ref in refs if not ref.is_empty]

    def media_references(self) -> List[MediaReference]:
        """Every non-empty media reference held by this item"""
        refs = [self.image, self.video, *self.gallery_images]
        return [ref for ref in refs if not ref.is_empty]

    @property
    def is_publicly_visible(self) -> bool:
        return bool(self.approved)
