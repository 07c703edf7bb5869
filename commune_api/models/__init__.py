"""SQLAlchemy ORM models."""

from commune_api.models.account import Account
from commune_api.models.base import Base
from commune_api.models.content import (
    AdministrativeProcedure,
    Investment,
    News,
    Project,
    Service,
)
from commune_api.models.gallery import ContactMessage, GalleryItem

__all__ = [
    "Account",
    "AdministrativeProcedure",
    "Base",
    "ContactMessage",
    "GalleryItem",
    "Investment",
    "News",
    "Project",
    "Service",
]
