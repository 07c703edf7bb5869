"""ORM models for the media gallery and the contact inbox."""

import uuid

from sqlalchemy import Column, Integer, String, Text

from commune_api.models.base import Base, TimestampMixin

MEDIA_TYPES = ("IMAGE", "VIDEO")
CONTACT_STATUSES = ("PENDING", "READ", "REPLIED", "ARCHIVED")


def _new_id() -> str:
    return str(uuid.uuid4())


class GalleryItem(TimestampMixin, Base):
    __tablename__ = "gallery"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False, default="")
    media_url = Column(String(2048), nullable=False)
    media_public_id = Column(String(512), nullable=False)
    type = Column(String(16), nullable=False, default="IMAGE")


class ContactMessage(TimestampMixin, Base):
    """Message sent through the public contact form."""

    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="PENDING", index=True)
