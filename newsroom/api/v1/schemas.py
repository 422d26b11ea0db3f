from datetime import datetime
from typing import Optional, List, Generic, TypeVar

from pydantic import BaseModel, Field

from ...services.news_provider import LiveArticle

T = TypeVar('T')


class StandardAPIResponse(BaseModel, Generic[T]):
    status: str = Field(..., description="success or error")
    body: Optional[T] = Field(None, description="Response body")
    message: Optional[str] = Field(None, description="Human readable message")
    error_code: Optional[str] = Field(None, description="Error code for client handling")

    @classmethod
    def success(cls, data: T, message: str = "Success"):
        return cls(status="success", body=data, message=message)

    @classmethod
    def error(cls, message: str, error_code: str = None):
        return cls(status="error", message=message, error_code=error_code)


class Pagination(BaseModel):
    total: int
    page: int
    pages: int
    limit: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        pages = (total + limit - 1) // limit if limit > 0 else 0
        return cls(total=total, page=page, pages=pages, limit=limit)


class NewsItemResponse(BaseModel):
    id: str
    title: str
    slug: str
    short_id: Optional[str] = None
    description: str
    content: str
    category: Optional[str] = None
    author: Optional[str] = None
    source: Optional[str] = None
    location: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    kind: str = "plain"
    is_ujala: bool = False
    is_gallery: bool = False
    is_event: bool = False
    is_breaking: bool = False
    is_featured: bool = False
    featured_at: Optional[datetime] = None
    approved: bool = True
    reporter_id: Optional[str] = None

    event_date: Optional[datetime] = None
    event_venue: Optional[str] = None

    image_url: str = ""
    image_path: Optional[str] = None
    video_url: str = ""
    video_path: Optional[str] = None
    gallery_images: List[str] = Field(default_factory=list)

    views: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NewsPage(BaseModel):
    items: List[NewsItemResponse]
    pagination: Pagination


class LiveNewsPage(BaseModel):
    items: List[LiveArticle]
    pagination: Pagination
    source: str = "live-api"


class NewsDetailResponse(BaseModel):
    """Detail lookup result, either a stored item or a live provider article"""
    source: str = Field(..., description="database, live-cache or live-api")
    item: Optional[NewsItemResponse] = None
    live: Optional[LiveArticle] = None


class ViewCountResponse(BaseModel):
    id: str
    views: int


class DeleteResponse(BaseModel):
    id: str
    slug: str


class UserResponse(BaseModel):
    user_id: str
    email: str
    full_name: str
    role: str
    is_approved: bool = False
    reporter_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    avatar: str = ""
    region: Optional[str] = None
    press_role: Optional[str] = None
    created_at: Optional[datetime] = None


class PressCardResponse(BaseModel):
    id: str
    name: str
    avatar: str = ""
    region: str = ""
    role_label: str = "Reporter"
    approved_at: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_valid: bool = False

    class Config:
        from_attributes = True


class CategoryCreateRequest(BaseModel):
    name: str = ""
    slug: Optional[str] = None
    order: int = 0
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    order: int = 0
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContactRequest(BaseModel):
    name: str = ""
    email: str = ""
    mobile: str = ""
    address: Optional[str] = None
    message: str = ""


class ContactResponse(BaseModel):
    id: str
    name: str
    email: str
    mobile: str
    address: Optional[str] = None
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
