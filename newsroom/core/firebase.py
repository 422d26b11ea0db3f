import os
from typing import Optional, Dict, Any

import firebase_admin
import structlog
from firebase_admin import auth, credentials
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models.enums import UserRole
from ..models.user import User
from ..repositories.user_repository import UserRepository

logger = structlog.get_logger(__name__)

_firebase_app = None


def initialize_firebase():
    global _firebase_app
    if _firebase_app is None:
        settings = get_settings()
        try:
            if os.path.exists(settings.firebase_service_account_path):
                cred = credentials.Certificate(settings.firebase_service_account_path)
            else:
                # no key file on disk, use application default credentials
                cred = credentials.ApplicationDefault()

            _firebase_app = firebase_admin.initialize_app(cred, {
                'projectId': settings.firebase_project_id
            })
            logger.info("Firebase initialized", project_id=settings.firebase_project_id)
        except Exception as e:
            logger.error("Firebase initialization failed", error=str(e))
            return None
    return _firebase_app


def verify_firebase_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        app = initialize_firebase()
        if not app:
            logger.warning("Firebase app not initialized, rejecting token")
            return None
        return auth.verify_id_token(token)
    except Exception as e:
        logger.warning("Token verification failed", error=str(e))
        return None


async def get_or_create_user(db: Session, firebase_uid: str, email: str, full_name: str) -> User:
    """Local account for a verified token. New accounts start as unapproved reporters."""
    repo = UserRepository(db)
    user = repo.get_by_firebase_uid(firebase_uid)
    if user:
        return user

    user = User(
        firebase_uid=firebase_uid,
        email=email,
        full_name=full_name,
        role=UserRole.REPORTER.value,
        is_approved=False
    )
    user = repo.create(user)
    logger.info("Registered new user", user_id=user.user_id, email=email)
    return user
