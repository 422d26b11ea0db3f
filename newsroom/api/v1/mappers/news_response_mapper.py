from typing import List, Optional

from ....models.enums import MediaKind
from ....models.media import MediaReference
from ....models.news_item import NewsItem
from ....models.user import User
from ....services.media_resolver import MediaResolver
from ....utils.url_utils import make_absolute_url
from ..schemas import NewsItemResponse, UserResponse


class NewsResponseMapper:
    """Maps stored entities to API payloads with client-usable media URLs"""

    def __init__(self, resolver: MediaResolver, server_url: Optional[str] = None):
        self.resolver = resolver
        self.server_url = server_url

    def media_url(self, ref: MediaReference) -> str:
        return make_absolute_url(self.server_url, self.resolver.resolve_for_listing(ref))

    @staticmethod
    def media_path(ref: MediaReference) -> Optional[str]:
        return ref.value if ref.kind == MediaKind.LOCAL_PATH else None

    def map_item(self, item: NewsItem) -> NewsItemResponse:
        image, video = item.image, item.video
        return NewsItemResponse(
            id=item.id,
            title=item.title,
            slug=item.slug,
            short_id=item.short_id,
            description=item.description,
            content=item.content,
            category=item.category,
            author=item.author,
            source=item.source,
            location=item.location,
            tags=list(item.tags or []),
            kind=item.kind.value,
            is_ujala=bool(item.is_ujala),
            is_gallery=item.is_gallery,
            is_event=item.is_event,
            is_breaking=bool(item.is_breaking),
            is_featured=bool(item.is_featured),
            featured_at=item.featured_at,
            approved=bool(item.approved),
            reporter_id=item.reporter_id,
            event_date=item.event_date,
            event_venue=item.event_venue,
            image_url=self.media_url(image),
            image_path=self.media_path(image),
            video_url=self.media_url(video),
            video_path=self.media_path(video),
            gallery_images=[self.media_url(ref) for ref in item.gallery_images],
            views=item.views or 0,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def map_items(self, items: List[NewsItem]) -> List[NewsItemResponse]:
        return [self.map_item(item) for item in items]

    def map_user(self, user: User) -> UserResponse:
        return UserResponse(
            user_id=user.user_id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            is_approved=bool(user.is_approved),
            reporter_id=user.reporter_id,
            approved_at=user.approved_at,
            avatar=self.media_url(MediaReference.parse(user.avatar)),
            region=user.region,
            press_role=user.press_role,
            created_at=user.created_at,
        )
