"""Pydantic request/response schemas."""

from commune_api.schemas.auth import (
    AccountOut,
    AuthResponse,
    FederatedAuthResponse,
    UsersListResponse,
)
from commune_api.schemas.common import CamelModel, MessageResponse
from commune_api.schemas.content import (
    ContactMessageOut,
    GalleryItemOut,
    InvestmentOut,
    NewsOut,
    ProcedureOut,
    ProjectOut,
    ServiceOut,
)
from commune_api.schemas.health import HealthResponse

__all__ = [
    "AccountOut",
    "AuthResponse",
    "CamelModel",
    "ContactMessageOut",
    "FederatedAuthResponse",
    "GalleryItemOut",
    "HealthResponse",
    "InvestmentOut",
    "MessageResponse",
    "NewsOut",
    "ProcedureOut",
    "ProjectOut",
    "ServiceOut",
    "UsersListResponse",
]
