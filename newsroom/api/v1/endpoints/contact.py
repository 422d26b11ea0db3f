from typing import List

from fastapi import APIRouter, Depends

from ...dependencies import get_contact_service, require_roles
from ..schemas import ContactRequest, ContactResponse, StandardAPIResponse
from ....models.enums import UserRole
from ....services.contact_service import ContactService, ContactSubmission

router = APIRouter()


@router.post("", response_model=StandardAPIResponse[ContactResponse])
async def submit_contact(request: ContactRequest, contacts: ContactService = Depends(get_contact_service)):
    stored = contacts.submit(ContactSubmission(**request.model_dump()))
    return StandardAPIResponse.success(
        ContactResponse.model_validate(stored),
        message="Thank you, your message has been received"
    )


@router.get("", response_model=StandardAPIResponse[List[ContactResponse]])
async def list_contacts(
    _=Depends(require_roles(UserRole.SUPERADMIN)),
    contacts: ContactService = Depends(get_contact_service)
):
    return StandardAPIResponse.success([ContactResponse.model_validate(c) for c in contacts.list_messages()])
