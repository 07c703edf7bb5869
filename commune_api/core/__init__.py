"""Core app configuration, database and security."""

from commune_api.core.config import get_settings, settings
from commune_api.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
