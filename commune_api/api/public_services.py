"""Municipal services endpoints (education, health, infrastructure)."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import check_choice, commit_or_discard, get_or_404, upload_image
from commune_api.api.deps import get_media_store
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest
from commune_api.models import Account, Service
from commune_api.models.content import SERVICE_CATEGORIES
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import ServiceOut
from commune_api.services.media import MediaStore

router = APIRouter()

NOT_FOUND = "Service not found"
MEDIA_FOLDER = "services"
DEFAULT_ICON = "default-icon"


def _ordered():
    return select(Service).order_by(Service.created_at.desc(), Service.id.desc())


@router.get("", response_model=list[ServiceOut])
def list_services(db: Annotated[Session, Depends(get_db)]) -> list[Service]:
    return list(db.execute(_ordered()).scalars())


@router.get("/category/{category}", response_model=list[ServiceOut])
def list_services_by_category(category: str, db: Annotated[Session, Depends(get_db)]) -> list[Service]:
    normalized = check_choice(category, SERVICE_CATEGORIES, "category")
    return list(db.execute(_ordered().where(Service.category == normalized)).scalars())


@router.get("/{service_id}", response_model=ServiceOut)
def get_service(service_id: int, db: Annotated[Session, Depends(get_db)]) -> Service:
    return get_or_404(db, Service, service_id, NOT_FOUND)


@router.post("", response_model=ServiceOut, status_code=201)
async def create_service(
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    category: Annotated[str, Form()] = "",
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    icon: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Service:
    if not category.strip() or not title.strip() or not description.strip():
        raise InvalidRequest("Category, title and description are required")
    normalized = check_choice(category, SERVICE_CATEGORIES, "category")
    stored = await upload_image(media, image, MEDIA_FOLDER)
    service = Service(
        category=normalized,
        title=title.strip(),
        description=description,
        icon=icon or DEFAULT_ICON,
        image_url=stored.url if stored else None,
        image_public_id=stored.public_id if stored else None,
    )
    db.add(service)
    await commit_or_discard(db, media, stored)
    db.refresh(service)
    return service


@router.put("/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    category: Annotated[str | None, Form()] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    icon: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Service:
    service = get_or_404(db, Service, service_id, NOT_FOUND)
    normalized = check_choice(category or None, SERVICE_CATEGORIES, "category")
    stored = await upload_image(media, image, MEDIA_FOLDER)
    if normalized:
        service.category = normalized
    if title:
        service.title = title.strip()
    if description:
        service.description = description
    if icon:
        service.icon = icon
    replaced = None
    if stored:
        replaced = service.image_public_id
        service.image_url, service.image_public_id = stored.url, stored.public_id
    await commit_or_discard(db, media, stored)
    db.refresh(service)
    await media.discard(replaced)
    return service


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
) -> MessageResponse:
    service = get_or_404(db, Service, service_id, NOT_FOUND)
    public_id = service.image_public_id
    db.delete(service)
    db.commit()
    await media.discard(public_id)
    return MessageResponse(message="Service deleted successfully")
