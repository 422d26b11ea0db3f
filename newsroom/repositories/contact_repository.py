from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.contact import ContactMessage


class ContactRepository:
    def __init__(self, session: Session):
        self.session = session

    def insert(self, message: ContactMessage) -> ContactMessage:
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def list_newest_first(self) -> List[ContactMessage]:
        return self.session.query(ContactMessage).order_by(desc(ContactMessage.created_at)).all()
