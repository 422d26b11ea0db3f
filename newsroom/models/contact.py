import uuid

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func

from ..core.database import Base


def generate_uuid():
    return str(uuid.uuid4())


class ContactMessage(Base):
    """A message left through the public contact form."""
    __tablename__ = "contact_messages"

    id = Column(String, primary_key=True, index=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    mobile = Column(String(40), nullable=False)
    address = Column(Text, nullable=True)
    message = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
