"""Shared schema base classes and helpers."""

import re

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# Same loose check the web client applies; full deliverability is out of scope.
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str) -> str:
    """Trim and lowercase an email address, rejecting obviously malformed ones."""
    email = value.strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValueError("Invalid email address")
    return email


class CamelModel(BaseModel):
    """Schema exchanged with the web client in camelCase; accepts snake_case too."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str = Field(..., description="Human-readable outcome")


class AuthorSummary(CamelModel):
    """Account reference embedded in content (no credentials)."""

    id: int
    username: str
