"""Media gallery endpoints: images and videos hosted on Cloudinary."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import get_current_account, security
from commune_api.api.common import commit_or_discard, get_or_404, has_file
from commune_api.api.deps import get_media_store
from commune_api.core.config import get_settings
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest
from commune_api.models import Account, GalleryItem
from commune_api.models.account import ROLE_ADMIN, ROLE_EDITOR
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import GalleryItemOut
from commune_api.services.authorization import ensure_role
from commune_api.services.media import (
    IMAGE_CONTENT_TYPES,
    VIDEO_CONTENT_TYPES,
    MediaStore,
    StoredMedia,
    read_upload,
)

router = APIRouter()

NOT_FOUND = "Media not found"
MEDIA_FOLDER = "gallery"
GALLERY_CONTENT_TYPES = IMAGE_CONTENT_TYPES | VIDEO_CONTENT_TYPES


def gallery_writer(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> Account | None:
    """Writes are open unless GALLERY_WRITE_REQUIRES_AUTH is set, then ADMIN/EDITOR only."""
    if not get_settings().GALLERY_WRITE_REQUIRES_AUTH:
        return None
    account = get_current_account(credentials, db)
    ensure_role(account.role, (ROLE_ADMIN, ROLE_EDITOR))
    return account


def _resource_type(item: GalleryItem) -> str:
    return "video" if item.type == "VIDEO" else "image"


async def _upload_media(media: MediaStore, upload: UploadFile) -> StoredMedia:
    data = await read_upload(upload, GALLERY_CONTENT_TYPES, media.max_upload_bytes)
    return await media.upload(data, upload.filename, MEDIA_FOLDER, resource_type="auto")


@router.get("", response_model=list[GalleryItemOut])
def list_gallery(db: Annotated[Session, Depends(get_db)]) -> list[GalleryItem]:
    query = select(GalleryItem).order_by(GalleryItem.created_at.desc())
    return list(db.execute(query).scalars())


@router.get("/{item_id}", response_model=GalleryItemOut)
def get_gallery_item(item_id: str, db: Annotated[Session, Depends(get_db)]) -> GalleryItem:
    return get_or_404(db, GalleryItem, item_id, NOT_FOUND)


@router.post("", response_model=GalleryItemOut, status_code=201)
async def create_gallery_item(
    db: Annotated[Session, Depends(get_db)],
    _writer: Annotated[Account | None, Depends(gallery_writer)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str, Form()] = "",
    file: Annotated[UploadFile | None, File()] = None,
) -> GalleryItem:
    if not has_file(file):
        raise InvalidRequest("No file provided")
    stored = await _upload_media(media, file)
    item = GalleryItem(
        title=title.strip(),
        media_url=stored.url,
        media_public_id=stored.public_id,
        type="VIDEO" if stored.resource_type == "video" else "IMAGE",
    )
    db.add(item)
    await commit_or_discard(db, media, stored)
    db.refresh(item)
    return item


@router.put("/{item_id}", response_model=GalleryItemOut)
async def update_gallery_item(
    item_id: str,
    db: Annotated[Session, Depends(get_db)],
    _writer: Annotated[Account | None, Depends(gallery_writer)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> GalleryItem:
    """Replace the title and/or the media file; the previous asset is removed after the commit."""
    item = get_or_404(db, GalleryItem, item_id, NOT_FOUND)
    stored = await _upload_media(media, file) if has_file(file) else None
    if title is not None:
        item.title = title.strip()
    replaced: tuple[str, str] | None = None
    if stored:
        replaced = (item.media_public_id, _resource_type(item))
        item.media_url = stored.url
        item.media_public_id = stored.public_id
        item.type = "VIDEO" if stored.resource_type == "video" else "IMAGE"
    await commit_or_discard(db, media, stored)
    db.refresh(item)
    if replaced:
        await media.discard(*replaced)
    return item


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_gallery_item(
    item_id: str,
    db: Annotated[Session, Depends(get_db)],
    _writer: Annotated[Account | None, Depends(gallery_writer)],
    media: Annotated[MediaStore, Depends(get_media_store)],
) -> MessageResponse:
    item = get_or_404(db, GalleryItem, item_id, NOT_FOUND)
    public_id, resource_type = item.media_public_id, _resource_type(item)
    db.delete(item)
    db.commit()
    await media.discard(public_id, resource_type)
    return MessageResponse(message="Media deleted successfully")
