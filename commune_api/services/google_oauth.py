"""Google sign-in: authorization URL, code exchange and userinfo lookup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx

from commune_api.core.errors import InvalidRequest, ServiceUnavailable, UpstreamError
from commune_api.services.accounts import FederatedProfile

if TYPE_CHECKING:
    from commune_api.core.config import Settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


def _is_google_configured(settings: Settings) -> bool:
    if not settings.GOOGLE_CLIENT_ID or settings.GOOGLE_CLIENT_SECRET is None:
        return False
    return bool(settings.GOOGLE_CLIENT_SECRET.get_secret_value().strip())


def _require_configured(settings: Settings) -> None:
    if not _is_google_configured(settings):
        raise ServiceUnavailable(
            "Google sign-in is not configured. Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET."
        )


def authorization_url(settings: Settings, state: str) -> str:
    _require_configured(settings)
    query = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": settings.GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(query)}"


async def fetch_profile(settings: Settings, code: str) -> FederatedProfile:
    """Exchange an authorization code and return the signed-in Google profile."""
    _require_configured(settings)
    timeout = httpx.Timeout(settings.OAUTH_REQUEST_TIMEOUT_SEC)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            token_resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.GOOGLE_CLIENT_ID,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET.get_secret_value(),
                    "redirect_uri": settings.GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
            if token_resp.status_code == 400:
                raise InvalidRequest("Google authorization code is invalid or expired.")
            if token_resp.status_code >= 400:
                raise UpstreamError(f"Google token endpoint returned {token_resp.status_code}.")
            access_token = token_resp.json().get("access_token")
            if not access_token:
                raise UpstreamError("Google token endpoint returned no access token.")
            info_resp = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.TimeoutException as e:
        raise UpstreamError("Google sign-in timed out.") from e
    except httpx.HTTPError as e:
        raise UpstreamError("Google sign-in is unreachable.") from e

    if info_resp.status_code >= 400:
        raise UpstreamError(f"Google userinfo endpoint returned {info_resp.status_code}.")
    info = info_resp.json()
    if not info.get("sub") or not info.get("email"):
        raise UpstreamError("Google profile is missing an id or email.")
    if info.get("email_verified") is False:
        raise InvalidRequest("Google account email is not verified.")
    logger.info("Google profile fetched")
    return FederatedProfile(
        provider_id=str(info["sub"]),
        email=info["email"],
        given_name=info.get("given_name"),
        family_name=info.get("family_name"),
        display_name=info.get("name"),
        photo=info.get("picture"),
    )
