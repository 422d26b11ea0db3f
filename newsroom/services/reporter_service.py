import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from ..config import Settings
from ..exceptions import AuthorizationError, NotFoundError, ValidationError
from ..models.media import MediaReference
from ..models.user import User
from ..repositories.user_repository import UserRepository
from ..utils.url_utils import make_absolute_url
from ..utils.validation_utils import validate_required_fields
from .media_resolver import IncomingMedia, MediaResolver
from .slug_service import find_unique, now_ms

logger = structlog.get_logger(__name__)

REPORTER_ID_PREFIX = "RJ"
MAX_REPORTER_ID_ATTEMPTS = 10
DEFAULT_PRESS_ROLE = "Reporter"


def reporter_id_candidate(rng: random.Random = random, timestamp_ms: Optional[int] = None) -> str:
    """RJ + last six digits of the millisecond clock + three random digits"""
    timestamp_ms = now_ms() if timestamp_ms is None else timestamp_ms
    return f"{REPORTER_ID_PREFIX}{str(timestamp_ms)[-6:]}{rng.randint(100, 999)}"


def forced_reporter_id(rng: random.Random = random) -> str:
    return f"{REPORTER_ID_PREFIX}{now_ms()}{rng.randint(100, 999)}"


@dataclass
class PressCard:
    id: str
    name: str
    avatar: str
    region: str
    role_label: str
    approved_at: Optional[datetime]
    valid_until: Optional[datetime]
    is_valid: bool


class ReporterService:
    def __init__(
        self,
        user_repo: UserRepository,
        media_resolver: MediaResolver,
        settings: Settings,
        rng: Optional[random.Random] = None
    ):
        self.user_repo = user_repo
        self.media_resolver = media_resolver
        self.server_url = settings.server_url
        self.rng = rng or random.Random()

    def new_reporter_id(self, exclude_user_id: Optional[str] = None) -> str:
        return find_unique(
            candidate_for=lambda attempt: reporter_id_candidate(self.rng),
            is_taken=lambda candidate: self.user_repo.reporter_id_taken(candidate, exclude_user_id=exclude_user_id),
            max_attempts=MAX_REPORTER_ID_ATTEMPTS,
            forced=lambda: forced_reporter_id(self.rng),
        )

    def list_reporters(self) -> List[User]:
        return self.user_repo.list_reporters()

    def get_reporter(self, user_id: str) -> User:
        user = self.user_repo.get(user_id)
        if not user or not user.is_reporter:
            raise NotFoundError("Reporter not found", error_code="REPORTER_NOT_FOUND", details={"id": user_id})
        return user

    async def register(
        self,
        user: User,
        full_name: Optional[str] = None,
        region: Optional[str] = None,
        press_role: Optional[str] = None,
        avatar: Optional[IncomingMedia] = None
    ) -> User:
        """
        Fill in the press profile of a reporter account. Approval is left
        untouched, so a fresh account still waits for a superadmin.
        """
        if not user.is_reporter:
            raise ValidationError("Only reporter accounts can register", error_code="NOT_A_REPORTER", details={"id": user.user_id})
        validate_required_fields({"full_name": full_name or user.full_name})

        if full_name and full_name.strip():
            user.full_name = full_name.strip()
        if region is not None:
            user.region = region.strip() or None
        if press_role is not None:
            user.press_role = press_role.strip() or None

        previous_avatar = MediaReference.parse(user.avatar)
        if avatar is not None:
            user.avatar = (await self.media_resolver.store_upload(avatar)).value

        user = self.user_repo.save(user)
        if avatar is not None and not previous_avatar.is_empty:
            await self.media_resolver.delete_media(previous_avatar)

        logger.info(
            "Reporter registered",
            user_id=user.user_id,
            region=user.region,
            has_avatar=bool(user.avatar),
            is_approved=user.is_approved
        )
        return user

    def approve(self, user_id: str) -> User:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND", details={"id": user_id})

        user.is_approved = True
        if not user.approved_at:
            user.approved_at = datetime.now(timezone.utc)
        if not user.reporter_id:
            user.reporter_id = self.new_reporter_id(exclude_user_id=user.user_id)

        user = self.user_repo.save(user)
        logger.info("Reporter approved", user_id=user.user_id, reporter_id=user.reporter_id)
        return user

    def delete(self, user_id: str) -> None:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("Reporter not found", error_code="REPORTER_NOT_FOUND", details={"id": user_id})
        if not user.is_reporter:
            raise ValidationError("Not a reporter account", error_code="NOT_A_REPORTER", details={"id": user_id})
        self.user_repo.delete(user)
        logger.info("Reporter deleted", user_id=user_id)

    def avatar_url(self, user: User) -> str:
        url = self.media_resolver.resolve_for_listing(MediaReference.parse(user.avatar))
        return make_absolute_url(self.server_url, url)

    def press_card(self, user: User, now: Optional[datetime] = None) -> PressCard:
        return PressCard(
            id=user.reporter_id or "",
            name=user.full_name,
            avatar=self.avatar_url(user),
            region=user.region or "",
            role_label=(user.press_role or "").strip() or DEFAULT_PRESS_ROLE,
            approved_at=user.approved_at,
            valid_until=user.press_card_valid_until,
            is_valid=user.press_card_is_valid(now),
        )

    def public_card(self, user_id: str) -> PressCard:
        user = self.get_reporter(user_id)
        if not user.is_approved:
            raise AuthorizationError("Reporter not approved yet", error_code="REPORTER_NOT_APPROVED")
        return self.press_card(user)
