"""Response schemas for editorial content, plus JSON request bodies where no file is involved."""

import json
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from commune_api.schemas.common import AuthorSummary, CamelModel, normalize_email


class NewsOut(CamelModel):
    id: int
    title: str
    content: str
    category: str | None = None
    image_url: str | None = None
    author: AuthorSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ServiceOut(CamelModel):
    id: int
    category: str
    title: str
    icon: str
    description: str
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectOut(CamelModel):
    id: int
    title: str
    description: str
    status: str
    start_date: datetime
    end_date: datetime | None = None
    budget: float | None = None
    image_url: str | None = None
    manager: AuthorSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InvestmentOut(CamelModel):
    id: int
    title: str
    category: str
    description: str
    short_description: str | None = None
    amount: float | None = None
    start_year: int | None = None
    end_year: int | None = None
    status: str | None = None
    image_url: str | None = None
    manager: AuthorSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _encode_required_docs(value: Any) -> str | None:
    """Lists and objects from the back office are stored JSON-encoded."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class ProcedureCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    processing_time: int = Field(..., ge=0, description="Processing time in days")
    category: str = Field(..., min_length=1, max_length=64)
    icon: str | None = Field(default=None, max_length=255)
    required_docs: str | None = None
    online_url: str | None = Field(default=None, max_length=2048)

    @field_validator("required_docs", mode="before")
    @classmethod
    def encode_required_docs(cls, v: Any) -> str | None:
        return _encode_required_docs(v)


class ProcedureUpdate(CamelModel):
    """Partial update; omitted fields keep their stored value."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    processing_time: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, min_length=1, max_length=64)
    icon: str | None = Field(default=None, max_length=255)
    required_docs: str | None = None
    online_url: str | None = Field(default=None, max_length=2048)

    @field_validator("title", "description", "processing_time", "category")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Only runs for values actually sent; these columns are NOT NULL.
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("required_docs", mode="before")
    @classmethod
    def encode_required_docs(cls, v: Any) -> str | None:
        return _encode_required_docs(v)


class ProcedureOut(CamelModel):
    id: int
    title: str
    description: str
    icon: str | None = None
    required_docs: str | None = None
    processing_time: int
    category: str
    online_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GalleryItemOut(CamelModel):
    id: str
    title: str
    media_url: str
    type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactMessageCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=10_000)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class ContactStatusUpdate(CamelModel):
    status: str


class ContactMessageOut(CamelModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContactMessageResponse(CamelModel):
    message: str
    data: ContactMessageOut
    notification_sent: bool = True
