from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import DuplicateKeyError
from ..models.enums import UserRole
from ..models.user import User
from ..utils.validation_utils import validate_entity_id


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> Optional[User]:
        user_id = validate_entity_id(user_id)
        return self.session.query(User).filter(User.user_id == user_id).first()

    def get_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        return self.session.query(User).filter(User.firebase_uid == firebase_uid).first()

    def list_reporters(self) -> List[User]:
        return (
            self.session.query(User)
            .filter(User.role == UserRole.REPORTER.value)
            .order_by(desc(User.created_at))
            .all()
        )

    def reporter_id_taken(self, reporter_id: str, exclude_user_id: Optional[str] = None) -> bool:
        query = self.session.query(User.user_id).filter(User.reporter_id == reporter_id)
        if exclude_user_id:
            query = query.filter(User.user_id != exclude_user_id)
        return query.first() is not None

    def create(self, user: User) -> User:
        self.session.add(user)
        self.save(user)
        return user

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.commit()

    def save(self, user: User) -> User:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateKeyError(
                "Duplicate key error while saving user",
                error_code="DUPLICATE_KEY",
                details={"error": str(e.orig)}
            )
        self.session.refresh(user)
        return user
