"""Hosted media storage on Cloudinary: signed uploads and deletions over its REST API."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from commune_api.core.errors import InvalidRequest, ServiceUnavailable, UpstreamError

if TYPE_CHECKING:
    from fastapi import UploadFile

    from commune_api.core.config import Settings

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"

IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
VIDEO_CONTENT_TYPES = frozenset({"video/mp4", "video/webm", "video/quicktime"})


class MediaUploadError(UpstreamError):
    """Cloudinary rejected the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = status_code


@dataclass
class StoredMedia:
    url: str
    public_id: str
    resource_type: str  # "image" or "video"


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 of sorted `k=v` pairs joined by '&' plus the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def _is_cloudinary_configured(settings: Settings) -> bool:
    if not settings.CLOUDINARY_CLOUD_NAME or not settings.CLOUDINARY_API_KEY:
        return False
    if settings.CLOUDINARY_API_SECRET is None:
        return False
    return bool(settings.CLOUDINARY_API_SECRET.get_secret_value().strip())


async def read_upload(
    upload: UploadFile,
    allowed_types: frozenset[str],
    max_bytes: int,
) -> bytes:
    """Buffer an uploaded file in memory, enforcing content type and size."""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in allowed_types:
        raise InvalidRequest(
            f"Unsupported file type {content_type or 'unknown'!r}; allowed: {', '.join(sorted(allowed_types))}"
        )
    # Read one byte past the cap so oversized files are detected without trusting headers.
    data = await upload.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InvalidRequest(f"File size must not exceed {max_bytes // (1024 * 1024)} MB.")
    if not data:
        raise InvalidRequest("Uploaded file is empty.")
    return data


class MediaStore:
    """Thin async client for Cloudinary upload/destroy with an explicit timeout."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def max_upload_bytes(self) -> int:
        return self.settings.MEDIA_MAX_UPLOAD_MB * 1024 * 1024

    def _credentials(self) -> tuple[str, str, str]:
        s = self.settings
        if not _is_cloudinary_configured(s):
            raise ServiceUnavailable(
                "Media storage is not configured. Set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET."
            )
        return s.CLOUDINARY_CLOUD_NAME, s.CLOUDINARY_API_KEY, s.CLOUDINARY_API_SECRET.get_secret_value()

    async def _post(self, url: str, data: dict[str, Any], files: dict[str, Any] | None = None) -> dict[str, Any]:
        timeout = httpx.Timeout(self.settings.MEDIA_REQUEST_TIMEOUT_SEC)
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(url, data=data, files=files)
        except httpx.TimeoutException as e:
            raise MediaUploadError("Media provider timed out.") from e
        except httpx.HTTPError as e:
            raise MediaUploadError("Media provider is unreachable.") from e
        elapsed = time.perf_counter() - start
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error", {}).get("message") or resp.text
            except ValueError:
                detail = resp.text
            logger.error(
                "Cloudinary request failed",
                extra={"status_code": resp.status_code, "latency_seconds": elapsed, "reason": str(detail)[:200]},
            )
            raise MediaUploadError(f"Media provider returned {resp.status_code}.", resp.status_code)
        logger.info("Cloudinary request completed", extra={"latency_seconds": elapsed})
        return resp.json()

    async def upload(
        self,
        data: bytes,
        filename: str,
        folder: str,
        resource_type: str = "image",
    ) -> StoredMedia:
        """Upload bytes under `<CLOUDINARY_FOLDER>/<folder>`; resource_type 'auto' detects video."""
        cloud_name, api_key, api_secret = self._credentials()
        params: dict[str, Any] = {
            "folder": f"{self.settings.CLOUDINARY_FOLDER}/{folder}".strip("/"),
            "timestamp": int(time.time()),
        }
        body = {**params, "api_key": api_key, "signature": sign_params(params, api_secret)}
        url = f"{CLOUDINARY_API_BASE}/{cloud_name}/{resource_type}/upload"
        result = await self._post(url, body, files={"file": (filename or "upload", data)})
        try:
            return StoredMedia(
                url=result["secure_url"],
                public_id=result["public_id"],
                resource_type=result.get("resource_type", "image"),
            )
        except (KeyError, TypeError) as e:
            raise MediaUploadError("Media provider returned an unexpected response.") from e

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        cloud_name, api_key, api_secret = self._credentials()
        params: dict[str, Any] = {"public_id": public_id, "timestamp": int(time.time())}
        body = {**params, "api_key": api_key, "signature": sign_params(params, api_secret)}
        await self._post(f"{CLOUDINARY_API_BASE}/{cloud_name}/{resource_type}/destroy", body)

    async def discard(self, public_id: str | None, resource_type: str = "image") -> None:
        """Best-effort deletion of an asset no longer referenced by any row."""
        if not public_id:
            return
        try:
            await self.destroy(public_id, resource_type)
        except (MediaUploadError, ServiceUnavailable) as e:
            logger.warning(
                "Could not delete replaced media; it is now orphaned",
                extra={"public_id": public_id, "reason": e.message},
            )
