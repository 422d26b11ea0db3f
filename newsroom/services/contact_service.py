from dataclasses import dataclass
from typing import List, Optional

import structlog

from ..models.contact import ContactMessage
from ..repositories.contact_repository import ContactRepository
from ..utils.validation_utils import validate_required_fields

logger = structlog.get_logger(__name__)


@dataclass
class ContactSubmission:
    name: str
    email: str
    mobile: str
    message: str
    address: Optional[str] = None


class ContactService:
    def __init__(self, contact_repo: ContactRepository):
        self.contact_repo = contact_repo

    def submit(self, submission: ContactSubmission) -> ContactMessage:
        validate_required_fields({
            "name": submission.name,
            "email": submission.email,
            "mobile": submission.mobile,
            "message": submission.message,
        })
        stored = self.contact_repo.insert(ContactMessage(
            name=submission.name.strip(),
            email=submission.email.strip(),
            mobile=submission.mobile.strip(),
            address=(submission.address or "").strip() or None,
            message=submission.message.strip(),
        ))
        logger.info("Contact message received", contact_id=stored.id)
        return stored

    def list_messages(self) -> List[ContactMessage]:
        return self.contact_repo.list_newest_first()
