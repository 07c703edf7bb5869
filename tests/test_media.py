"""Unit tests for commune_api.services.media: request signing, upload/destroy over mocked httpx."""

import asyncio
import hashlib
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from pydantic import SecretStr

from commune_api.core.errors import InvalidRequest, ServiceUnavailable
from commune_api.services.media import (
    IMAGE_CONTENT_TYPES,
    MediaStore,
    MediaUploadError,
    _is_cloudinary_configured,
    read_upload,
    sign_params,
)


def _settings(**overrides: object) -> MagicMock:
    settings = MagicMock()
    settings.CLOUDINARY_CLOUD_NAME = "demo"
    settings.CLOUDINARY_API_KEY = "key"
    settings.CLOUDINARY_API_SECRET = SecretStr("shh")
    settings.CLOUDINARY_FOLDER = "mlomp"
    settings.MEDIA_REQUEST_TIMEOUT_SEC = 30.0
    settings.MEDIA_MAX_UPLOAD_MB = 1
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


def _response(status_code: int, payload: dict) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def _mock_client(mock_client_class: MagicMock, post: AsyncMock) -> None:
    instance = MagicMock()
    instance.post = post
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)


class TestSignParams(unittest.TestCase):
    def test_sorted_pairs_plus_secret(self) -> None:
        expected = hashlib.sha1(b"folder=mlomp/news&timestamp=1700000000shh").hexdigest()
        self.assertEqual(sign_params({"timestamp": 1700000000, "folder": "mlomp/news"}, "shh"), expected)

    def test_empty_values_skipped(self) -> None:
        self.assertEqual(
            sign_params({"timestamp": 1, "folder": ""}, "s"),
            sign_params({"timestamp": 1}, "s"),
        )


class TestIsCloudinaryConfigured(unittest.TestCase):
    def test_configured(self) -> None:
        self.assertTrue(_is_cloudinary_configured(_settings()))

    def test_missing_parts(self) -> None:
        self.assertFalse(_is_cloudinary_configured(_settings(CLOUDINARY_CLOUD_NAME=None)))
        self.assertFalse(_is_cloudinary_configured(_settings(CLOUDINARY_API_KEY="")))
        self.assertFalse(_is_cloudinary_configured(_settings(CLOUDINARY_API_SECRET=None)))
        self.assertFalse(_is_cloudinary_configured(_settings(CLOUDINARY_API_SECRET=SecretStr("  "))))


class TestReadUpload(unittest.TestCase):
    def _upload(self, data: bytes, content_type: str) -> MagicMock:
        upload = MagicMock()
        upload.content_type = content_type
        upload.read = AsyncMock(return_value=data)
        return upload

    def test_accepts_image(self) -> None:
        data = asyncio.run(read_upload(self._upload(b"abc", "image/png"), IMAGE_CONTENT_TYPES, 10))
        self.assertEqual(data, b"abc")

    def test_rejects_type_size_and_empty(self) -> None:
        with self.assertRaises(InvalidRequest):
            asyncio.run(read_upload(self._upload(b"abc", "application/pdf"), IMAGE_CONTENT_TYPES, 10))
        with self.assertRaises(InvalidRequest):
            asyncio.run(read_upload(self._upload(b"x" * 11, "image/png"), IMAGE_CONTENT_TYPES, 10))
        with self.assertRaises(InvalidRequest):
            asyncio.run(read_upload(self._upload(b"", "image/png"), IMAGE_CONTENT_TYPES, 10))


class TestMediaStore(unittest.TestCase):
    def test_not_configured(self) -> None:
        store = MediaStore(_settings(CLOUDINARY_CLOUD_NAME=None))
        with self.assertRaises(ServiceUnavailable):
            asyncio.run(store.upload(b"abc", "a.png", "news"))

    @patch("commune_api.services.media.httpx.AsyncClient")
    def test_upload_posts_signed_form(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(
            return_value=_response(
                200,
                {"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/mlomp/news/a.png", "public_id": "mlomp/news/a", "resource_type": "image"},
            )
        )
        _mock_client(mock_client_class, post)

        stored = asyncio.run(MediaStore(_settings()).upload(b"abc", "a.png", "news"))

        self.assertEqual(stored.public_id, "mlomp/news/a")
        self.assertEqual(stored.resource_type, "image")
        url = post.call_args[0][0]
        self.assertEqual(url, "https://api.cloudinary.com/v1_1/demo/image/upload")
        body = post.call_args[1]["data"]
        self.assertEqual(body["folder"], "mlomp/news")
        self.assertEqual(body["api_key"], "key")
        self.assertEqual(body["signature"], sign_params({"folder": body["folder"], "timestamp": body["timestamp"]}, "shh"))
        self.assertEqual(post.call_args[1]["files"]["file"], ("a.png", b"abc"))
        self.assertEqual(mock_client_class.call_args[1]["timeout"], httpx.Timeout(30.0))

    @patch("commune_api.services.media.httpx.AsyncClient")
    def test_provider_error_is_upstream(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(return_value=_response(401, {"error": {"message": "Invalid Signature"}})))
        with self.assertRaises(MediaUploadError) as ctx:
            asyncio.run(MediaStore(_settings()).upload(b"abc", "a.png", "news"))
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertEqual(ctx.exception.upstream_status, 401)

    @patch("commune_api.services.media.httpx.AsyncClient")
    def test_timeout_is_upstream(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.ReadTimeout("slow")))
        with self.assertRaises(MediaUploadError):
            asyncio.run(MediaStore(_settings()).upload(b"abc", "a.png", "news"))

    @patch("commune_api.services.media.httpx.AsyncClient")
    def test_discard_swallows_provider_errors(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(side_effect=httpx.ConnectError("down"))
        _mock_client(mock_client_class, post)
        asyncio.run(MediaStore(_settings()).discard("mlomp/news/a", "video"))
        self.assertEqual(post.call_args[0][0], "https://api.cloudinary.com/v1_1/demo/video/destroy")

    def test_discard_without_public_id_is_noop(self) -> None:
        store = MediaStore(_settings(CLOUDINARY_CLOUD_NAME=None))
        asyncio.run(store.discard(None))


if __name__ == "__main__":
    unittest.main()
