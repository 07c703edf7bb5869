"""ORM models for the site's editorial content."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from commune_api.models.base import Base, TimestampMixin

SERVICE_CATEGORIES = ("EDUCATION", "SANTE", "INFRASTRUCTURES")
PROJECT_STATUSES = ("PLANNED", "IN_PROGRESS", "COMPLETED")


class ImageMixin:
    """Optional hosted image: public URL plus the provider id needed to delete it."""

    image_url = Column(String(2048), nullable=True)
    image_public_id = Column(String(512), nullable=True)


class News(ImageMixin, TimestampMixin, Base):
    __tablename__ = "news"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(64), nullable=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    author = relationship("Account", lazy="joined")


class Service(ImageMixin, TimestampMixin, Base):
    """Public service (education, health, infrastructure) offered by the commune."""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    icon = Column(String(255), nullable=False, default="default-icon")
    description = Column(Text, nullable=False)


class Project(ImageMixin, TimestampMixin, Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, default="PLANNED")
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    budget = Column(Float, nullable=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    manager = relationship("Account", lazy="joined")


class Investment(ImageMixin, TimestampMixin, Base):
    __tablename__ = "investments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    category = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=False)
    short_description = Column(String(512), nullable=True)
    amount = Column(Float, nullable=True)
    start_year = Column(Integer, nullable=True)
    end_year = Column(Integer, nullable=True)
    status = Column(String(32), nullable=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    manager = relationship("Account", lazy="joined")


class AdministrativeProcedure(TimestampMixin, Base):
    """
    Administrative procedure (civil registry, permits, ...).

    required_docs is free text; lists submitted by the back office are stored JSON-encoded.
    """

    __tablename__ = "administrative_procedures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(255), nullable=True)
    required_docs = Column(Text, nullable=True)
    processing_time = Column(Integer, nullable=False)
    category = Column(String(64), nullable=False, index=True)
    online_url = Column(String(2048), nullable=True)
