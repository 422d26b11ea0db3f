from fastapi import APIRouter

from .endpoints import categories, contact, health, images, media, moderation, news, submissions, users

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])

# Fixed-path news routes go first, news.router ends with the catch-all /{slug}
api_router.include_router(media.router, prefix="/news", tags=["media"])
api_router.include_router(moderation.router, prefix="/news", tags=["moderation"])
api_router.include_router(submissions.router, prefix="/news", tags=["submissions"])
api_router.include_router(news.router, prefix="/news", tags=["news"])

api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(images.router, prefix="/images", tags=["images"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(contact.router, prefix="/contact", tags=["contact"])
