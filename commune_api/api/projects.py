"""Municipal projects endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import check_choice, commit_or_discard, get_or_404, upload_image
from commune_api.api.deps import get_media_store
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest
from commune_api.models import Account, Project
from commune_api.models.content import PROJECT_STATUSES
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import ProjectOut
from commune_api.services.media import MediaStore

router = APIRouter()

NOT_FOUND = "Project not found"
MEDIA_FOLDER = "projects"


def _parse_date(value: str, label: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidRequest(f"Invalid {label}; expected an ISO 8601 date") from e


@router.get("", response_model=list[ProjectOut])
def list_projects(db: Annotated[Session, Depends(get_db)]) -> list[Project]:
    query = select(Project).order_by(Project.start_date.desc(), Project.id.desc())
    return list(db.execute(query).scalars())


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, db: Annotated[Session, Depends(get_db)]) -> Project:
    return get_or_404(db, Project, project_id, NOT_FOUND)


@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    db: Annotated[Session, Depends(get_db)],
    current: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    start_date: Annotated[str, Form(alias="startDate")] = "",
    status: Annotated[str | None, Form()] = None,
    end_date: Annotated[str | None, Form(alias="endDate")] = None,
    budget: Annotated[float | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Project:
    """Create a project managed by the calling account. Status defaults to PLANNED."""
    if not title.strip() or not description.strip() or not start_date.strip():
        raise InvalidRequest("Title, description and start date are required")
    project = Project(
        title=title.strip(),
        description=description,
        status=check_choice(status or None, PROJECT_STATUSES, "status") or "PLANNED",
        start_date=_parse_date(start_date, "startDate"),
        end_date=_parse_date(end_date, "endDate") if end_date else None,
        budget=budget,
        manager_id=current.id,
    )
    stored = await upload_image(media, image, MEDIA_FOLDER)
    if stored:
        project.image_url, project.image_public_id = stored.url, stored.public_id
    db.add(project)
    await commit_or_discard(db, media, stored)
    db.refresh(project)
    return project


@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    start_date: Annotated[str | None, Form(alias="startDate")] = None,
    status: Annotated[str | None, Form()] = None,
    end_date: Annotated[str | None, Form(alias="endDate")] = None,
    budget: Annotated[float | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Project:
    project = get_or_404(db, Project, project_id, NOT_FOUND)
    new_status = check_choice(status or None, PROJECT_STATUSES, "status")
    new_start = _parse_date(start_date, "startDate") if start_date else None
    new_end = _parse_date(end_date, "endDate") if end_date else None
    stored = await upload_image(media, image, MEDIA_FOLDER)
    if title:
        project.title = title.strip()
    if description:
        project.description = description
    if new_status:
        project.status = new_status
    if new_start:
        project.start_date = new_start
    if new_end:
        project.end_date = new_end
    if budget is not None:
        project.budget = budget
    replaced = None
    if stored:
        replaced = project.image_public_id
        project.image_url, project.image_public_id = stored.url, stored.public_id
    await commit_or_discard(db, media, stored)
    db.refresh(project)
    await media.discard(replaced)
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
) -> MessageResponse:
    project = get_or_404(db, Project, project_id, NOT_FOUND)
    public_id = project.image_public_id
    db.delete(project)
    db.commit()
    await media.discard(public_id)
    return MessageResponse(message="Project deleted successfully")
