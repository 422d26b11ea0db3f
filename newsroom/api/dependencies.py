from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..core.database import get_db
from ..core.firebase import get_or_create_user, verify_firebase_token
from ..exceptions import AuthorizationError
from ..models.enums import UserRole
from ..models.user import User
from ..repositories.category_repository import CategoryRepository
from ..repositories.contact_repository import ContactRepository
from ..repositories.news_repository import NewsRepository
from ..repositories.user_repository import UserRepository
from ..services.category_service import CategoryService
from ..services.contact_service import ContactService
from ..services.image_proxy import ImageProxy
from ..services.media_resolver import MediaResolver
from ..services.news_provider import NewsProviderClient
from ..services.object_storage import ObjectStorage
from ..services.publication_service import PublicationService
from ..services.reporter_service import ReporterService
from ..services.slug_service import SlugService
from .v1.mappers import NewsResponseMapper

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


# Process-wide components are built once in create_application and kept on app.state

def get_object_storage(request: Request) -> ObjectStorage:
    return request.app.state.object_storage


def get_media_resolver(request: Request) -> MediaResolver:
    return request.app.state.media_resolver


def get_news_provider(request: Request) -> NewsProviderClient:
    return request.app.state.news_provider


def get_image_proxy(request: Request) -> ImageProxy:
    return request.app.state.image_proxy


def get_news_repository(db: Session = Depends(get_db)) -> NewsRepository:
    return NewsRepository(db)


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_slug_service(news_repo: NewsRepository = Depends(get_news_repository)) -> SlugService:
    return SlugService(news_repo)


def get_publication_service(
    news_repo: NewsRepository = Depends(get_news_repository),
    slug_service: SlugService = Depends(get_slug_service),
    resolver: MediaResolver = Depends(get_media_resolver),
    settings: Settings = Depends(get_settings)
) -> PublicationService:
    return PublicationService(news_repo, slug_service, resolver, settings)


def get_reporter_service(
    user_repo: UserRepository = Depends(get_user_repository),
    resolver: MediaResolver = Depends(get_media_resolver),
    settings: Settings = Depends(get_settings)
) -> ReporterService:
    return ReporterService(user_repo, resolver, settings)


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(CategoryRepository(db))


def get_contact_service(db: Session = Depends(get_db)) -> ContactService:
    return ContactService(ContactRepository(db))


def get_response_mapper(
    resolver: MediaResolver = Depends(get_media_resolver),
    settings: Settings = Depends(get_settings)
) -> NewsResponseMapper:
    return NewsResponseMapper(resolver, settings.server_url)


async def get_or_create_demo_user(db: Session, demo_user_id: str) -> User:
    repo = UserRepository(db)
    existing_user = repo.get(demo_user_id)
    if existing_user:
        return existing_user

    demo_user = User(
        user_id=demo_user_id,
        firebase_uid=f"demo-{demo_user_id}",
        email="demo@example.com",
        full_name="Demo User",
        role=UserRole.SUPERADMIN.value,
        is_approved=True
    )
    return repo.create(demo_user)


async def get_current_user_optional(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[User]:
    if not credentials or not credentials.credentials:
        return None

    firebase_data = verify_firebase_token(credentials.credentials)
    if not firebase_data:
        return None

    firebase_uid = firebase_data.get("uid")
    email = firebase_data.get("email")
    name = firebase_data.get("name", firebase_data.get("email", "Unknown User"))

    if not firebase_uid or not email:
        return None

    return await get_or_create_user(db=db, firebase_uid=firebase_uid, email=email, full_name=name)


async def get_current_user_required(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings)
) -> User:
    if not settings.authentication_enabled:
        return await get_or_create_demo_user(db, settings.demo_user_id)

    user = await get_current_user_optional(db, credentials)

    if not user and settings.demo_mode:
        return await get_or_create_demo_user(db, settings.demo_user_id)

    if not user:
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Please provide a valid Firebase token."
        )
    return user


def user_has_role(user: User, *roles: UserRole) -> bool:
    if user.role == UserRole.SUPERADMIN.value:
        return True
    return user.role in {UserRole(role).value for role in roles}


def require_roles(*roles: UserRole):
    """Dependency factory; superadmin passes every role check."""

    async def checker(user: User = Depends(get_current_user_required)) -> User:
        if not user_has_role(user, *roles):
            logger.warning("Role check failed", user_id=user.user_id, role=user.role, required=[UserRole(r).value for r in roles])
            raise AuthorizationError("Insufficient permissions", error_code="FORBIDDEN")
        if user.role == UserRole.REPORTER.value and not user.is_approved:
            logger.info("Unapproved reporter refused", user_id=user.user_id)
            raise AuthorizationError("Reporter account pending approval", error_code="REPORTER_NOT_APPROVED")
        return user

    return checker
