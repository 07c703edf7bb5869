"""Auth routes and dependencies (get_current_account, require_roles, require_admin)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from commune_api.api.deps import get_mailer
from commune_api.core.config import get_settings
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest, Unauthenticated
from commune_api.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_OAUTH_STATE,
    TokenError,
    TokenExpired,
    create_oauth_state,
    create_session_token,
    verify_token,
)
from commune_api.models.account import ROLE_ADMIN, ROLE_EDITOR, Account
from commune_api.schemas.auth import (
    AccountOut,
    AuthResponse,
    ChangePasswordRequest,
    CompleteProfileRequest,
    FederatedAuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    RoleUpdateRequest,
    UsersListResponse,
)
from commune_api.schemas.common import MessageResponse
from commune_api.services import accounts, google_oauth
from commune_api.services.authorization import ensure_role
from commune_api.services.mailer import Mailer

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> Account:
    """Dependency: require a valid Bearer session token and return its account. Raises 401 otherwise."""
    if credentials is None:
        raise Unauthenticated("Authentication required")
    try:
        payload = verify_token(credentials.credentials, expected_type=TOKEN_TYPE_ACCESS)
    except TokenExpired:
        raise Unauthenticated("Your session has expired")
    except TokenError:
        raise Unauthenticated("Invalid token")
    try:
        account_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid token payload")
    account = db.get(Account, account_id)
    if account is None:
        raise Unauthenticated("User not found")
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def require_roles(*roles: str) -> Callable[[Account], Account]:
    """Dependency factory: authenticated account whose role is in `roles`, else 403."""

    def dependency(current: CurrentAccount) -> Account:
        ensure_role(current.role, roles)
        return current

    return dependency


require_admin = require_roles(ROLE_ADMIN)
require_editor = require_roles(ROLE_ADMIN, ROLE_EDITOR)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Create an account and return it with a session token.
    The first account ever created is an administrator whatever role was requested.
    """
    account, token = accounts.register(
        db,
        email=body.email,
        password=body.password,
        username=body.username,
        role=body.role,
    )
    return AuthResponse(message="Registration successful", user=AccountOut.model_validate(account), token=token)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a session token.
    Include the token in the Authorization header as: Bearer <token>
    """
    account, token = accounts.login(db, body.email, body.password)
    return AuthResponse(message="Login successful", user=AccountOut.model_validate(account), token=token)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> MessageResponse:
    """Email a single-use reset link. The token is never returned in the response."""
    accounts.forgot_password(db, body.email, mailer)
    return MessageResponse(message="A password reset link has been sent to your email address")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    accounts.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password reset successfully")


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current: CurrentAccount) -> ProfileResponse:
    return ProfileResponse(user=AccountOut.model_validate(current))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    current: CurrentAccount,
    db: Annotated[Session, Depends(get_db)],
) -> ProfileResponse:
    account = accounts.update_profile(db, current, username=body.username, email=body.email)
    return ProfileResponse(message="Profile updated successfully", user=AccountOut.model_validate(account))


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    current: CurrentAccount,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    accounts.change_password(db, current, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.put("/complete-profile", response_model=FederatedAuthResponse)
def complete_profile(
    body: CompleteProfileRequest,
    current: CurrentAccount,
    db: Annotated[Session, Depends(get_db)],
) -> FederatedAuthResponse:
    """Fill the mandatory fields of an account created through Google sign-in."""
    account = accounts.complete_profile(
        db,
        current,
        phone_number=body.phone_number,
        password=body.password,
        country=body.country,
        city=body.city,
        department=body.department,
        commune=body.commune,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    missing = accounts.missing_profile_fields(account)
    return FederatedAuthResponse(
        message="Profile completed",
        user=AccountOut.model_validate(account),
        token=create_session_token(account),
        needs_completion=bool(missing),
        missing_fields=missing,
    )


@router.get("/google")
def google_login() -> RedirectResponse:
    """Redirect the browser to Google's consent screen."""
    url = google_oauth.authorization_url(get_settings(), create_oauth_state())
    return RedirectResponse(url, status_code=302)


@router.get("/google/callback", response_model=FederatedAuthResponse)
async def google_callback(
    db: Annotated[Session, Depends(get_db)],
    code: Annotated[str, Query(min_length=1)],
    state: Annotated[str, Query(min_length=1)],
) -> FederatedAuthResponse:
    """Finish Google sign-in; reports which mandatory profile fields are still missing."""
    try:
        verify_token(state, expected_type=TOKEN_TYPE_OAUTH_STATE)
    except TokenError as e:
        raise InvalidRequest("Invalid or expired sign-in state") from e
    profile = await google_oauth.fetch_profile(get_settings(), code)
    # bcrypt and the account queries stay off the event loop
    account, missing = await run_in_threadpool(accounts.federated_login, db, profile)
    return FederatedAuthResponse(
        message="Login successful",
        user=AccountOut.model_validate(account),
        token=create_session_token(account),
        needs_completion=bool(missing),
        missing_fields=missing,
    )


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[Account, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all accounts, newest first (admin only)."""
    return UsersListResponse(
        users=[AccountOut.model_validate(a) for a in accounts.list_accounts(db)]
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    _admin: Annotated[Account, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Delete an account (admin only). The last administrator cannot be deleted."""
    accounts.delete_account(db, user_id)
    return MessageResponse(message="User deleted successfully")


@router.put("/users/role", response_model=ProfileResponse)
def update_user_role(
    body: RoleUpdateRequest,
    _admin: Annotated[Account, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> ProfileResponse:
    """Change an account's role (admin only). The last administrator cannot be demoted."""
    account = accounts.change_role(db, body.user_id, body.role)
    return ProfileResponse(message="Role updated successfully", user=AccountOut.model_validate(account))
