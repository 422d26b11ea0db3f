import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, RedirectResponse

from ...dependencies import get_media_resolver, get_publication_service
from ....exceptions import NotFoundError
from ....models.media import MediaReference
from ....services.media_resolver import MediaResolver, ServeAction, ServeDecision
from ....services.publication_service import PublicationService

logger = structlog.get_logger(__name__)

router = APIRouter()


def decision_to_response(decision: ServeDecision):
    if decision.action == ServeAction.REDIRECT:
        return RedirectResponse(decision.target, status_code=302)
    if decision.action == ServeAction.FILE:
        return FileResponse(decision.target)
    raise NotFoundError("Media not found", error_code="MEDIA_NOT_FOUND")


async def serve(ref: MediaReference, resolver: MediaResolver):
    if ref.is_empty:
        raise NotFoundError("Media not found", error_code="MEDIA_NOT_FOUND")
    return decision_to_response(await resolver.resolve_for_serving(ref))


@router.get("/media/{news_id}/image")
async def serve_image(
    news_id: str,
    publication: PublicationService = Depends(get_publication_service),
    resolver: MediaResolver = Depends(get_media_resolver)
):
    return await serve(publication.get(news_id).image, resolver)


@router.get("/media/{news_id}/video")
async def serve_video(
    news_id: str,
    publication: PublicationService = Depends(get_publication_service),
    resolver: MediaResolver = Depends(get_media_resolver)
):
    return await serve(publication.get(news_id).video, resolver)


@router.get("/media/{news_id}/gallery/{index}")
async def serve_gallery_image(
    news_id: str,
    index: int,
    publication: PublicationService = Depends(get_publication_service),
    resolver: MediaResolver = Depends(get_media_resolver)
):
    gallery = publication.get(news_id).gallery_images
    if index < 0 or index >= len(gallery):
        raise NotFoundError("Gallery image not found", error_code="MEDIA_NOT_FOUND", details={"index": index})
    return await serve(gallery[index], resolver)
