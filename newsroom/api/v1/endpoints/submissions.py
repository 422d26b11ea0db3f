from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile

from ...dependencies import get_publication_service, get_response_mapper, require_roles
from ..mappers import NewsResponseMapper
from ..schemas import DeleteResponse, NewsItemResponse, StandardAPIResponse
from ....config import Settings, get_settings
from ....exceptions import ValidationError
from ....models.enums import ContentKind, UserRole
from ....models.user import User
from ....services.media_resolver import IncomingMedia
from ....services.publication_service import (
    NewsEdit,
    NewsSubmission,
    PublicationService,
    SubmissionFlow,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


async def to_incoming(upload: Optional[UploadFile]) -> Optional[IncomingMedia]:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return IncomingMedia(filename=upload.filename, data=data, content_type=upload.content_type)


async def to_incoming_gallery(uploads: Optional[List[UploadFile]], max_files: int) -> List[IncomingMedia]:
    uploads = [upload for upload in (uploads or []) if upload is not None and upload.filename]
    if len(uploads) > max_files:
        raise ValidationError(
            f"At most {max_files} gallery images are allowed",
            error_code="TOO_MANY_GALLERY_IMAGES",
            details={"received": len(uploads), "max": max_files}
        )
    return [media for media in [await to_incoming(upload) for upload in uploads] if media is not None]


async def _submit(
    flow: SubmissionFlow,
    user: User,
    publication: PublicationService,
    settings: Settings,
    title: str,
    description: str,
    content: str,
    author: Optional[str],
    location: Optional[str],
    type: Optional[str],
    event_date: Optional[str],
    event_venue: Optional[str],
    image: Optional[UploadFile],
    video: Optional[UploadFile],
    gallery_images: Optional[List[UploadFile]]
):
    submission = NewsSubmission(
        title=title,
        description=description,
        content=content,
        kind=ContentKind.from_form(type),
        author=author,
        location=location,
        event_date=event_date,
        event_venue=event_venue,
        image=await to_incoming(image),
        video=await to_incoming(video),
        gallery=await to_incoming_gallery(gallery_images, settings.max_gallery_images),
    )
    logger.info(
        "Upload received",
        flow=flow.value,
        user_id=user.user_id,
        kind=submission.kind.value,
        has_image=submission.image is not None,
        has_video=submission.video is not None,
        gallery_count=len(submission.gallery)
    )
    return await publication.submit(submission, flow, actor=user)


@router.post("/admin/upload", response_model=StandardAPIResponse[NewsItemResponse])
async def admin_upload(
    title: str = Form(""),
    description: str = Form(""),
    content: str = Form(""),
    author: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    type: Optional[str] = Form(None, description="plain, gallery or event"),
    event_date: Optional[str] = Form(None),
    event_venue: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    gallery_images: Optional[List[UploadFile]] = File(None),
    user: User = Depends(require_roles(UserRole.ADMIN)),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper),
    settings: Settings = Depends(get_settings)
):
    item = await _submit(
        SubmissionFlow.ADMIN, user, publication, settings,
        title, description, content, author, location, type, event_date, event_venue,
        image, video, gallery_images
    )
    message = "News published" if item.approved else "News uploaded and pending approval"
    return StandardAPIResponse.success(mapper.map_item(item), message=message)


@router.post("/reporter/upload", response_model=StandardAPIResponse[NewsItemResponse])
async def reporter_upload(
    title: str = Form(""),
    description: str = Form(""),
    content: str = Form(""),
    author: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    type: Optional[str] = Form(None, description="plain, gallery or event"),
    event_date: Optional[str] = Form(None),
    event_venue: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    gallery_images: Optional[List[UploadFile]] = File(None),
    user: User = Depends(require_roles(UserRole.REPORTER, UserRole.ADMIN)),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper),
    settings: Settings = Depends(get_settings)
):
    item = await _submit(
        SubmissionFlow.REPORTER, user, publication, settings,
        title, description, content, author, location, type, event_date, event_venue,
        image, video, gallery_images
    )
    message = "News published" if item.approved else "News submitted for approval"
    return StandardAPIResponse.success(mapper.map_item(item), message=message)


@router.put("/{news_id}", response_model=StandardAPIResponse[NewsItemResponse])
async def update_news(
    news_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    gallery_images: Optional[List[UploadFile]] = File(None),
    _=Depends(require_roles(UserRole.ADMIN)),
    publication: PublicationService = Depends(get_publication_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper),
    settings: Settings = Depends(get_settings)
):
    changes = NewsEdit(
        title=title,
        description=description,
        content=content,
        author=author,
        location=location,
        category=category,
        image=await to_incoming(image),
        video=await to_incoming(video),
        gallery=await to_incoming_gallery(gallery_images, settings.max_gallery_images),
    )
    item = await publication.edit(news_id, changes)
    return StandardAPIResponse.success(mapper.map_item(item), message="News updated")


@router.delete("/{news_id}", response_model=StandardAPIResponse[DeleteResponse])
async def delete_news(
    news_id: str,
    _=Depends(require_roles(UserRole.SUPERADMIN)),
    publication: PublicationService = Depends(get_publication_service)
):
    deleted = await publication.delete(news_id)
    return StandardAPIResponse.success(DeleteResponse(id=deleted.id, slug=deleted.slug), message="News deleted")
