"""
Account lifecycle: registration, login, profile, password change and reset,
admin user management, and Google sign-in.

Functions take an open Session and commit their own writes. Errors are raised
as commune_api.core.errors.ServiceError subclasses and rendered by the app.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commune_api.core.config import get_settings
from commune_api.core.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidToken,
    NotFound,
    Unauthorized,
)
from commune_api.core.security import (
    TOKEN_TYPE_RESET,
    TokenError,
    create_reset_token,
    create_session_token,
    digest_token,
    hash_password,
    random_secret,
    verify_password,
    verify_token,
)
from commune_api.models.account import ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER, ROLES, Account
from commune_api.services.authorization import ensure_not_last_admin, lock_target_for_admin_change

if TYPE_CHECKING:
    from commune_api.services.mailer import Mailer

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Email or password incorrect"
PLACEHOLDER_PHONE_PREFIX = "temp-"
MANDATORY_PROFILE_FIELDS = ("phone_number", "password", "country", "city", "department", "commune")


@dataclass
class FederatedProfile:
    """Identity returned by an external provider (Google)."""

    provider_id: str
    email: str
    given_name: str | None = None
    family_name: str | None = None
    display_name: str | None = None
    photo: str | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _email_taken(session: Session, email: str, exclude_id: int | None = None) -> bool:
    query = select(Account.id).where(Account.email == email)
    if exclude_id is not None:
        query = query.where(Account.id != exclude_id)
    return session.execute(query).first() is not None


def _username_taken(session: Session, username: str, exclude_id: int | None = None) -> bool:
    query = select(Account.id).where(Account.username == username)
    if exclude_id is not None:
        query = query.where(Account.id != exclude_id)
    return session.execute(query).first() is not None


def _derive_username(session: Session, email: str) -> str:
    """Email local part, with a numeric suffix if another account already uses it."""
    base = email.split("@", 1)[0][:240] or "user"
    candidate = base
    suffix = 1
    while _username_taken(session, candidate):
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate


def _store_is_empty(session: Session) -> bool:
    """True before the first account exists; that account is always an administrator."""
    return session.execute(select(func.count()).select_from(Account)).scalar_one() == 0


def _commit_or_conflict(session: Session, message: str) -> None:
    """Commit; a unique-constraint race surfaces as Conflict instead of a 500."""
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise Conflict(message) from e


def register(
    session: Session,
    email: str,
    password: str,
    username: str | None = None,
    role: str | None = None,
) -> tuple[Account, str]:
    """Create a local account and return it with a session token."""
    settings = get_settings()
    requested_role = (role or ROLE_EDITOR).upper()
    if requested_role not in ROLES:
        raise InvalidRequest(f"Invalid role. Expected one of: {', '.join(ROLES)}")

    if _email_taken(session, email):
        raise Conflict("This email address is already used by another account")
    if username and _username_taken(session, username):
        raise Conflict("This username is already taken")

    bootstrap = _store_is_empty(session)
    if not bootstrap and requested_role not in settings.registration_roles:
        raise Forbidden(f"Role {requested_role} cannot be self-assigned")
    final_role = ROLE_ADMIN if bootstrap else requested_role

    account = Account(
        email=email,
        username=username or _derive_username(session, email),
        password_hash=hash_password(password),
        role=final_role,
        has_password=True,
        is_profile_completed=True,
    )
    session.add(account)
    _commit_or_conflict(session, "This email address or username is already used")
    session.refresh(account)
    logger.info(
        "Account registered",
        extra={"account_id": account.id, "role": account.role, "bootstrap_admin": bootstrap},
    )
    return account, create_session_token(account)


def login(session: Session, email: str, password: str) -> tuple[Account, str]:
    """Check credentials. Unknown email and wrong password fail identically."""
    account = session.execute(select(Account).where(Account.email == email)).scalar_one_or_none()
    if account is None or not account.has_password or not verify_password(password, account.password_hash):
        logger.info("Login failed", extra={"reason": "bad_credentials"})
        raise Unauthorized(LOGIN_FAILED_MESSAGE)
    return account, create_session_token(account)


def get_account(session: Session, account_id: int) -> Account:
    account = session.get(Account, account_id)
    if account is None:
        raise NotFound("User not found")
    return account


def update_profile(
    session: Session,
    account: Account,
    username: str | None = None,
    email: str | None = None,
) -> Account:
    """Change username and/or email after checking them against every other account."""
    if username and _username_taken(session, username, exclude_id=account.id):
        raise Conflict("This username is already taken")
    if email and _email_taken(session, email, exclude_id=account.id):
        raise Conflict("This email address is already used by another account")
    if username:
        account.username = username
    if email:
        account.email = email
    _commit_or_conflict(session, "This email address or username is already used")
    session.refresh(account)
    return account


def change_password(
    session: Session,
    account: Account,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, account.password_hash):
        raise Unauthorized("Current password is incorrect")
    account.password_hash = hash_password(new_password)
    account.has_password = True
    session.commit()
    logger.info("Password changed", extra={"account_id": account.id})


def forgot_password(session: Session, email: str, mailer: "Mailer") -> None:
    """
    Issue a reset token, store its digest and expiry, and email the reset link.

    The token only leaves the process through the mailer. If delivery fails the
    stored digest is rolled back and the mailer's error propagates.
    """
    account = session.execute(select(Account).where(Account.email == email)).scalar_one_or_none()
    if account is None:
        raise NotFound("No account is associated with this email")

    token, expires_at = create_reset_token(account)
    account.reset_token_digest = digest_token(token)
    account.reset_token_expires_at = expires_at
    session.flush()
    try:
        mailer.send_password_reset(account.email, token)
    except Exception:
        session.rollback()
        raise
    session.commit()
    logger.info("Password reset issued", extra={"account_id": account.id})


def reset_password(session: Session, token: str, new_password: str) -> None:
    """
    Redeem a reset token once.

    The signature must verify AND the account must still hold this token's
    digest with a future expiry; consumption clears both, so replaying a token
    that is still cryptographically valid fails.
    """
    try:
        claims = verify_token(token, expected_type=TOKEN_TYPE_RESET)
        account_id = int(claims["sub"])
    except (TokenError, KeyError, TypeError, ValueError) as e:
        raise InvalidToken("Invalid or expired token") from e

    account = session.execute(
        select(Account)
        .where(
            Account.id == account_id,
            Account.reset_token_digest == digest_token(token),
        )
        .with_for_update()
    ).scalar_one_or_none()
    if (
        account is None
        or account.reset_token_expires_at is None
        or _as_utc(account.reset_token_expires_at) <= _utcnow()
    ):
        raise InvalidToken("Invalid or expired token")

    account.password_hash = hash_password(new_password)
    account.has_password = True
    account.reset_token_digest = None
    account.reset_token_expires_at = None
    session.commit()
    logger.info("Password reset completed", extra={"account_id": account.id})


def list_accounts(session: Session) -> list[Account]:
    """All accounts, newest first."""
    return list(
        session.execute(
            select(Account).order_by(Account.created_at.desc(), Account.id.desc())
        ).scalars()
    )


def delete_account(session: Session, account_id: int) -> None:
    """Delete an account unless it is the last administrator."""
    try:
        target, admin_count = lock_target_for_admin_change(session, account_id)
        ensure_not_last_admin(target, admin_count, "delete")
        session.delete(target)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Account deleted", extra={"account_id": account_id})


def change_role(session: Session, account_id: int, role: str) -> Account:
    """Set an account's role; demoting the last administrator is refused."""
    new_role = (role or "").upper()
    if new_role not in ROLES:
        raise InvalidRequest(f"Invalid role. Expected one of: {', '.join(ROLES)}")
    try:
        target, admin_count = lock_target_for_admin_change(session, account_id)
        if new_role != ROLE_ADMIN:
            ensure_not_last_admin(target, admin_count, "demote")
        previous = target.role
        target.role = new_role
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(target)
    logger.info(
        "Account role changed",
        extra={"account_id": target.id, "previous_role": previous, "role": new_role},
    )
    return target


def missing_profile_fields(account: Account) -> list[str]:
    """Mandatory profile fields still unset (placeholder phone numbers count as unset)."""
    missing = []
    for field in MANDATORY_PROFILE_FIELDS:
        if field == "password":
            if not account.has_password:
                missing.append(field)
            continue
        value = getattr(account, field)
        if not value or (field == "phone_number" and value.startswith(PLACEHOLDER_PHONE_PREFIX)):
            missing.append(field)
    return missing


def federated_login(session: Session, profile: FederatedProfile) -> tuple[Account, list[str]]:
    """
    Find or create the account behind an external identity.

    Lookup is by provider id, then by email (backfilling the provider id). New
    accounts get an unusable random password and must complete their profile.
    Returns the account and its missing mandatory fields.
    """
    email = profile.email.strip().lower()
    account = session.execute(
        select(Account).where(Account.google_id == profile.provider_id)
    ).scalar_one_or_none()

    if account is None:
        account = session.execute(select(Account).where(Account.email == email)).scalar_one_or_none()
        if account is not None:
            account.google_id = profile.provider_id
            session.commit()
            logger.info("Linked Google identity to existing account", extra={"account_id": account.id})

    if account is None:
        display_parts = (profile.display_name or "").split(" ")
        first_name = profile.given_name or display_parts[0] or None
        last_name = profile.family_name or (" ".join(display_parts[1:]) or None)
        account = Account(
            email=email,
            username=_derive_username(session, email),
            password_hash=hash_password(random_secret()),
            role=ROLE_ADMIN if _store_is_empty(session) else ROLE_VIEWER,
            google_id=profile.provider_id,
            first_name=first_name,
            last_name=last_name,
            photo=profile.photo,
            has_password=False,
            is_profile_completed=False,
        )
        session.add(account)
        _commit_or_conflict(session, "This email address is already used by another account")
        session.refresh(account)
        logger.info("Account created from Google sign-in", extra={"account_id": account.id})

    return account, missing_profile_fields(account)


def complete_profile(
    session: Session,
    account: Account,
    phone_number: str,
    password: str,
    country: str,
    city: str,
    department: str,
    commune: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> Account:
    """Fill the mandatory fields; the account becomes complete the first time none are missing."""
    phone = phone_number.strip()
    if phone.startswith(PLACEHOLDER_PHONE_PREFIX):
        raise InvalidRequest("Invalid phone number")
    taken = session.execute(
        select(Account.id).where(Account.phone_number == phone, Account.id != account.id)
    ).first()
    if taken is not None:
        raise Conflict("This phone number is already used by another account")

    account.phone_number = phone
    account.password_hash = hash_password(password)
    account.has_password = True
    account.country = country.strip()
    account.city = city.strip()
    account.department = department.strip()
    account.commune = commune.strip()
    if first_name:
        account.first_name = first_name.strip()
    if last_name:
        account.last_name = last_name.strip()
    if not account.is_profile_completed and not missing_profile_fields(account):
        account.is_profile_completed = True
    _commit_or_conflict(session, "This phone number is already used by another account")
    session.refresh(account)
    return account
