from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ...dependencies import (
    get_current_user_required,
    get_reporter_service,
    get_response_mapper,
    require_roles,
)
from ..mappers import NewsResponseMapper
from ..schemas import PressCardResponse, StandardAPIResponse, UserResponse
from .submissions import to_incoming
from ....models.enums import UserRole
from ....models.user import User
from ....services.reporter_service import ReporterService

router = APIRouter()


@router.get("/reporters", response_model=StandardAPIResponse[List[UserResponse]])
async def list_reporters(
    _=Depends(require_roles(UserRole.SUPERADMIN)),
    reporters: ReporterService = Depends(get_reporter_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success([mapper.map_user(user) for user in reporters.list_reporters()])


@router.put("/reporters/{user_id}/approve", response_model=StandardAPIResponse[UserResponse])
async def approve_reporter(
    user_id: str,
    _=Depends(require_roles(UserRole.SUPERADMIN)),
    reporters: ReporterService = Depends(get_reporter_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_user(reporters.approve(user_id)), message="Reporter approved")


@router.delete("/reporters/{user_id}", response_model=StandardAPIResponse[None])
async def delete_reporter(
    user_id: str,
    _=Depends(require_roles(UserRole.SUPERADMIN)),
    reporters: ReporterService = Depends(get_reporter_service)
):
    reporters.delete(user_id)
    return StandardAPIResponse.success(None, message="Reporter deleted")


@router.get("/reporters/{user_id}/card", response_model=StandardAPIResponse[PressCardResponse])
async def get_reporter_card(
    user_id: str,
    reporters: ReporterService = Depends(get_reporter_service)
):
    """Public press card preview"""
    return StandardAPIResponse.success(PressCardResponse.model_validate(reporters.public_card(user_id)))


@router.get("/me", response_model=StandardAPIResponse[UserResponse])
async def get_me(
    user: User = Depends(get_current_user_required),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    return StandardAPIResponse.success(mapper.map_user(user))


@router.get("/me/press-card", response_model=StandardAPIResponse[PressCardResponse])
async def get_my_press_card(
    user: User = Depends(get_current_user_required),
    reporters: ReporterService = Depends(get_reporter_service)
):
    return StandardAPIResponse.success(PressCardResponse.model_validate(reporters.press_card(user)))


@router.post("/register-reporter", response_model=StandardAPIResponse[UserResponse])
async def register_reporter(
    full_name: Optional[str] = Form(None),
    region: Optional[str] = Form(None),
    press_role: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user_required),
    reporters: ReporterService = Depends(get_reporter_service),
    mapper: NewsResponseMapper = Depends(get_response_mapper)
):
    """Press profile for the signed-in reporter; the account stays pending until approved."""
    user = await reporters.register(user, full_name, region, press_role, await to_incoming(avatar))
    message = "Reporter profile updated" if user.is_approved else "Registered as reporter. Await superadmin approval."
    return StandardAPIResponse.success(mapper.map_user(user), message=message)
