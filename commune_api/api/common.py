"""Helpers shared by the content routers: lookups, image attachment and upload-aware commits."""

from typing import TypeVar

from fastapi import UploadFile
from sqlalchemy.orm import Session

from commune_api.core.errors import InvalidRequest, NotFound
from commune_api.services.media import IMAGE_CONTENT_TYPES, MediaStore, StoredMedia, read_upload

ModelT = TypeVar("ModelT")


def get_or_404(db: Session, model: type[ModelT], entity_id: int | str, message: str) -> ModelT:
    entity = db.get(model, entity_id)
    if entity is None:
        raise NotFound(message)
    return entity


def check_choice(value: str | None, choices: tuple[str, ...], label: str) -> str | None:
    """Upper-case `value` and check it against an enumeration; None passes through."""
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in choices:
        raise InvalidRequest(f"Invalid {label}. Expected one of: {', '.join(choices)}")
    return normalized


def has_file(upload: UploadFile | None) -> bool:
    """Browsers send an empty part when no file is picked."""
    return upload is not None and bool(upload.filename)


async def upload_image(
    media: MediaStore,
    upload: UploadFile | None,
    folder: str,
) -> StoredMedia | None:
    """
    Buffer and upload an optional image. Returns None when no file was sent.

    Any upload failure propagates so the calling write is abandoned.
    """
    if not has_file(upload):
        return None
    data = await read_upload(upload, IMAGE_CONTENT_TYPES, media.max_upload_bytes)
    return await media.upload(data, upload.filename, folder, resource_type="image")


async def commit_or_discard(db: Session, media: MediaStore, stored: StoredMedia | None) -> None:
    """Commit the pending write; on failure remove the asset just uploaded for it, then re-raise."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        if stored:
            await media.discard(stored.public_id, stored.resource_type)
        raise
