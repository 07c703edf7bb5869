"""Password hashing and signed bearer tokens (session, password reset, OAuth state)."""

import hashlib
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from commune_api.core.config import settings

if TYPE_CHECKING:
    from commune_api.models.account import Account

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_RESET = "reset"
TOKEN_TYPE_OAUTH_STATE = "oauth_state"

OAUTH_STATE_TTL = timedelta(minutes=10)

PASSWORD_MAX_LEN = 128


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    """Malformed token, bad signature, or a token of the wrong kind."""


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str | None) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def random_secret(nbytes: int = 32) -> str:
    """URL-safe random string for placeholder credentials."""
    return secrets.token_urlsafe(nbytes)


def digest_token(token: str) -> str:
    """SHA-256 hex digest; reset tokens are stored only in this form."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token(
    subject: str | int,
    ttl: timedelta,
    token_type: str = TOKEN_TYPE_ACCESS,
    now: datetime | None = None,
    **claims: Any,
) -> str:
    """Sign a token for `subject` that expires `ttl` after `now`."""
    issued_at = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        **claims,
        "sub": str(subject),
        "typ": token_type,
        "jti": uuid.uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + ttl,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_token(token: str, expected_type: str = TOKEN_TYPE_ACCESS) -> dict[str, Any]:
    """
    Decode and validate a token; return its claims.
    Raises TokenExpired past `exp`, TokenInvalid for anything else wrong.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired("Token has expired") from e
    except jwt.PyJWTError as e:
        raise TokenInvalid("Token is malformed or its signature is invalid") from e
    if payload.get("typ") != expected_type:
        raise TokenInvalid(f"Expected a {expected_type} token")
    return payload


def create_session_token(account: "Account") -> str:
    """Session token carrying id, username and role; valid ACCESS_TOKEN_EXPIRE_HOURS."""
    return issue_token(
        account.id,
        timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
        TOKEN_TYPE_ACCESS,
        username=account.username,
        role=account.role,
    )


def create_reset_token(account: "Account", now: datetime | None = None) -> tuple[str, datetime]:
    """Reset token bound to id and email. Returns (token, expires_at)."""
    issued_at = now or datetime.now(UTC)
    ttl = timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    token = issue_token(
        account.id,
        ttl,
        TOKEN_TYPE_RESET,
        now=issued_at,
        email=account.email,
    )
    return token, issued_at + ttl


def create_oauth_state() -> str:
    """Short-lived signed state parameter for the Google redirect round-trip."""
    return issue_token("oauth", OAUTH_STATE_TTL, TOKEN_TYPE_OAUTH_STATE)
