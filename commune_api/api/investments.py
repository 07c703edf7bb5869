"""Public investment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import commit_or_discard, get_or_404, upload_image
from commune_api.api.deps import get_media_store
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest
from commune_api.models import Account, Investment
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import InvestmentOut
from commune_api.services.media import MediaStore

router = APIRouter()

NOT_FOUND = "Investment not found"
MEDIA_FOLDER = "investments"


def _ordered():
    return select(Investment).order_by(Investment.created_at.desc(), Investment.id.desc())


def _check_years(start_year: int | None, end_year: int | None) -> None:
    if start_year is not None and end_year is not None and end_year < start_year:
        raise InvalidRequest("endYear must not be before startYear")


@router.get("", response_model=list[InvestmentOut])
def list_investments(db: Annotated[Session, Depends(get_db)]) -> list[Investment]:
    return list(db.execute(_ordered()).scalars())


@router.get("/category/{category}", response_model=list[InvestmentOut])
def list_investments_by_category(category: str, db: Annotated[Session, Depends(get_db)]) -> list[Investment]:
    return list(db.execute(_ordered().where(Investment.category == category)).scalars())


@router.get("/{investment_id}", response_model=InvestmentOut)
def get_investment(investment_id: int, db: Annotated[Session, Depends(get_db)]) -> Investment:
    return get_or_404(db, Investment, investment_id, NOT_FOUND)


@router.post("", response_model=InvestmentOut, status_code=201)
async def create_investment(
    db: Annotated[Session, Depends(get_db)],
    current: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str, Form()] = "",
    category: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    short_description: Annotated[str | None, Form(alias="shortDescription")] = None,
    amount: Annotated[float | None, Form()] = None,
    start_year: Annotated[int | None, Form(alias="startYear")] = None,
    end_year: Annotated[int | None, Form(alias="endYear")] = None,
    status: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Investment:
    if not title.strip() or not category.strip() or not description.strip():
        raise InvalidRequest("Title, category and description are required")
    _check_years(start_year, end_year)
    stored = await upload_image(media, image, MEDIA_FOLDER)
    investment = Investment(
        title=title.strip(),
        category=category.strip(),
        description=description,
        short_description=short_description,
        amount=amount,
        start_year=start_year,
        end_year=end_year,
        status=status,
        manager_id=current.id,
        image_url=stored.url if stored else None,
        image_public_id=stored.public_id if stored else None,
    )
    db.add(investment)
    await commit_or_discard(db, media, stored)
    db.refresh(investment)
    return investment


@router.put("/{investment_id}", response_model=InvestmentOut)
async def update_investment(
    investment_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    short_description: Annotated[str | None, Form(alias="shortDescription")] = None,
    amount: Annotated[float | None, Form()] = None,
    start_year: Annotated[int | None, Form(alias="startYear")] = None,
    end_year: Annotated[int | None, Form(alias="endYear")] = None,
    status: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Investment:
    investment = get_or_404(db, Investment, investment_id, NOT_FOUND)
    _check_years(
        start_year if start_year is not None else investment.start_year,
        end_year if end_year is not None else investment.end_year,
    )
    stored = await upload_image(media, image, MEDIA_FOLDER)
    updates = {
        "title": title.strip() if title else None,
        "category": category.strip() if category else None,
        "description": description or None,
        "short_description": short_description,
        "amount": amount,
        "start_year": start_year,
        "end_year": end_year,
        "status": status,
    }
    for field, value in updates.items():
        if value is not None:
            setattr(investment, field, value)
    replaced = None
    if stored:
        replaced = investment.image_public_id
        investment.image_url, investment.image_public_id = stored.url, stored.public_id
    await commit_or_discard(db, media, stored)
    db.refresh(investment)
    await media.discard(replaced)
    return investment


@router.delete("/{investment_id}", response_model=MessageResponse)
async def delete_investment(
    investment_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
) -> MessageResponse:
    investment = get_or_404(db, Investment, investment_id, NOT_FOUND)
    public_id = investment.image_public_id
    db.delete(investment)
    db.commit()
    await media.discard(public_id)
    return MessageResponse(message="Investment deleted successfully")
