"""ORM model for user accounts (credentials, role, reset-token state, profile)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from commune_api.models.base import Base, TimestampMixin

ROLE_ADMIN = "ADMIN"
ROLE_EDITOR = "EDITOR"
ROLE_VIEWER = "VIEWER"
ROLES = (ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER)


class Account(TimestampMixin, Base):
    """
    Account used for bearer-token authentication and role-based access control.

    role: 'ADMIN', 'EDITOR' or 'VIEWER'. reset_token_digest holds the SHA-256
    of the outstanding reset token, never the token itself.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_EDITOR, index=True)

    reset_token_digest = Column(String(64), nullable=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    google_id = Column(String(255), nullable=True, unique=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    photo = Column(String(2048), nullable=True)
    phone_number = Column(String(32), nullable=True, unique=True)
    country = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    commune = Column(String(255), nullable=True)
    # False for federated accounts until the owner picks a password
    has_password = Column(Boolean, nullable=False, default=True)
    is_profile_completed = Column(Boolean, nullable=False, default=True)
