"""
Moderation queues and management lists.

Superadmins approve pending submissions; admins curate the approved gallery
and event lists.
"""

from typing import List

from fastapi import APIRouter, Depends

from ...dependencies import get_publication_service, get_response_mapper, require_roles
from ..mappers import NewsResponseMapper
from ..schemas import DeleteResponse, NewsItemResponse, StandardAPIResponse
from ....models.enums import ContentKind, UserRole
from ....services.publication_service import PublicationService

router = APIRouter()

superadmin_only = require_roles(UserRole.SUPERADMIN)
admin_or_superadmin = require_roles(UserRole.ADMIN, UserRole.SUPERADMIN)


# ---------------------------------------------------------------------------
# Pending queues
# ---------------------------------------------------------------------------

@router.get("/superadmin/approval", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_pending(
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_pending()))


@router.get("/superadmin/approval/gallery", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_pending_gallery(
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_pending(ContentKind.GALLERY)))


@router.get("/superadmin/approval/events", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_pending_events(
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_pending(ContentKind.EVENT)))


@router.put("/superadmin/approval/{news_id}/approve", response_model=StandardAPIResponse[NewsItemResponse])
async def approve_news(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_item(publication.approve(news_id)), message="News approved")


@router.put("/superadmin/approval/{news_id}/approve/gallery", response_model=StandardAPIResponse[NewsItemResponse])
async def approve_news_as_gallery(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    item = publication.approve_as_gallery(news_id)
    return StandardAPIResponse.success(mapper.map_item(item), message="News approved as gallery")


@router.put("/superadmin/approval/{news_id}/approve/event", response_model=StandardAPIResponse[NewsItemResponse])
async def approve_news_as_event(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    item = publication.approve_as_event(news_id)
    return StandardAPIResponse.success(mapper.map_item(item), message="News approved as event")


# ---------------------------------------------------------------------------
# Approved lists
# ---------------------------------------------------------------------------

@router.get("/admin/approved-news", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_approved_news(
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_approved()))


@router.get("/admin/approved-gallery", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_approved_gallery(
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_approved(ContentKind.GALLERY)))


@router.get("/admin/approved-events", response_model=StandardAPIResponse[List[NewsItemResponse]])
async def list_approved_events(
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_items(publication.list_approved(ContentKind.EVENT)))


# ---------------------------------------------------------------------------
# Featuring
# ---------------------------------------------------------------------------

@router.put("/admin/approved-news/{news_id}/feature", response_model=StandardAPIResponse[NewsItemResponse])
async def feature_news(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_item(publication.feature(news_id)), message="News featured")


@router.put("/admin/approved-news/{news_id}/unfeature", response_model=StandardAPIResponse[NewsItemResponse])
async def unfeature_news(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_item(publication.unfeature(news_id)), message="News unfeatured")


@router.put("/admin/approved-gallery/{news_id}/feature", response_model=StandardAPIResponse[NewsItemResponse])
async def feature_gallery(
    news_id: str,
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_item(publication.feature(news_id)), message="Gallery featured")


@router.put("/admin/approved-gallery/{news_id}/unfeature", response_model=StandardAPIResponse[NewsItemResponse])
async def unfeature_gallery(
    news_id: str,
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_item(publication.unfeature(news_id)), message="Gallery unfeatured")


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

@router.delete("/admin/approved-news/{news_id}", response_model=StandardAPIResponse[DeleteResponse])
async def delete_approved_news(
    news_id: str,
    _=Depends(superadmin_only),
    publication: PublicationService = Depends(get_publication_service)
):
    deleted = await publication.delete(news_id)
    return StandardAPIResponse.success(DeleteResponse(id=deleted.id, slug=deleted.slug), message="News deleted")


@router.delete("/admin/approved-gallery/{news_id}", response_model=StandardAPIResponse[DeleteResponse])
async def delete_approved_gallery(
    news_id: str,
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service)
):
    deleted = await publication.delete(news_id, kind=ContentKind.GALLERY)
    return StandardAPIResponse.success(DeleteResponse(id=deleted.id, slug=deleted.slug), message="Gallery item deleted")


@router.delete("/admin/approved-events/{news_id}", response_model=StandardAPIResponse[DeleteResponse])
async def delete_approved_event(
    news_id: str,
    _=Depends(admin_or_superadmin),
    publication: PublicationService = Depends(get_publication_service)
):
    deleted = await publication.delete(news_id, kind=ContentKind.EVENT)
    return StandardAPIResponse.success(DeleteResponse(id=deleted.id, slug=deleted.slug), message="Event deleted")
