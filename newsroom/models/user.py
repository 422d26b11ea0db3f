import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func

from ..core.database import Base
from .enums import UserRole

PRESS_CARD_VALIDITY = timedelta(days=365)


def generate_uuid():
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True, default=generate_uuid)
    firebase_uid = Column(String, nullable=False, unique=True, index=True)
    email = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.REPORTER.value)

    # Reporter accounts need superadmin approval before they can submit
    is_approved = Column(Boolean, nullable=False, default=False)
    reporter_id = Column(String(20), nullable=True, unique=True, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Press card details
    avatar = Column(String(1000), nullable=True)
    region = Column(String(200), nullable=True)
    press_role = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_reporter(self) -> bool:
        return self.role == UserRole.REPORTER.value

    @property
    def press_card_valid_until(self) -> Optional[datetime]:
        base = self.approved_at or self.created_at
        if base is None:
            return None
        return base + PRESS_CARD_VALIDITY

    def press_card_is_valid(self, now: Optional[datetime] = None) -> bool:
        valid_until = self.press_card_valid_until
        if not self.is_approved or valid_until is None:
            return False
        now = now or datetime.now(timezone.utc)
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        return now <= valid_until
