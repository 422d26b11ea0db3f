from typing import List

from fastapi import APIRouter, Depends

from ...dependencies import get_category_service, require_roles
from ..schemas import CategoryCreateRequest, CategoryResponse, StandardAPIResponse
from ....models.enums import UserRole
from ....services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=StandardAPIResponse[List[CategoryResponse]])
async def list_categories(categories: CategoryService = Depends(get_category_service)):
    return StandardAPIResponse.success([CategoryResponse.model_validate(c) for c in categories.list_categories()])


@router.get("/{slug}", response_model=StandardAPIResponse[CategoryResponse])
async def get_category(slug: str, categories: CategoryService = Depends(get_category_service)):
    return StandardAPIResponse.success(CategoryResponse.model_validate(categories.get_by_slug(slug)))


@router.post("", response_model=StandardAPIResponse[CategoryResponse], status_code=201)
async def create_category(
    request: CategoryCreateRequest,
    _=Depends(require_roles(UserRole.ADMIN)),
    categories: CategoryService = Depends(get_category_service)
):
    category = categories.create(request.name, request.slug, request.order, request.description)
    return StandardAPIResponse.success(CategoryResponse.model_validate(category), message="Category created")
