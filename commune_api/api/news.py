"""News endpoints: public reads, editor writes with an optional image."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import commit_or_discard, get_or_404, upload_image
from commune_api.api.deps import get_media_store
from commune_api.core.database import get_db
from commune_api.core.errors import InvalidRequest
from commune_api.models import Account, News
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import NewsOut
from commune_api.services.media import MediaStore

router = APIRouter()

NOT_FOUND = "News item not found"
MEDIA_FOLDER = "news"


@router.get("", response_model=list[NewsOut])
def list_news(db: Annotated[Session, Depends(get_db)]) -> list[News]:
    return list(db.execute(select(News).order_by(News.created_at.desc(), News.id.desc())).scalars())


@router.get("/category/{category}", response_model=list[NewsOut])
def list_news_by_category(category: str, db: Annotated[Session, Depends(get_db)]) -> list[News]:
    query = select(News).where(News.category == category).order_by(News.created_at.desc(), News.id.desc())
    return list(db.execute(query).scalars())


@router.get("/{news_id}", response_model=NewsOut)
def get_news(news_id: int, db: Annotated[Session, Depends(get_db)]) -> News:
    return get_or_404(db, News, news_id, NOT_FOUND)


@router.post("", response_model=NewsOut, status_code=201)
async def create_news(
    db: Annotated[Session, Depends(get_db)],
    current: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str, Form()] = "",
    content: Annotated[str, Form()] = "",
    category: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> News:
    """Create a news item; the author is the calling account."""
    if not title.strip() or not content.strip():
        raise InvalidRequest("Title and content are required")
    stored = await upload_image(media, image, MEDIA_FOLDER)
    news = News(
        title=title.strip(),
        content=content,
        category=category or None,
        author_id=current.id,
        image_url=stored.url if stored else None,
        image_public_id=stored.public_id if stored else None,
    )
    db.add(news)
    await commit_or_discard(db, media, stored)
    db.refresh(news)
    return news


@router.put("/{news_id}", response_model=NewsOut)
async def update_news(
    news_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
    title: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> News:
    news = get_or_404(db, News, news_id, NOT_FOUND)
    stored = await upload_image(media, image, MEDIA_FOLDER)
    if title:
        news.title = title.strip()
    if content:
        news.content = content
    if category is not None:
        news.category = category or None
    replaced = None
    if stored:
        replaced = news.image_public_id
        news.image_url, news.image_public_id = stored.url, stored.public_id
    await commit_or_discard(db, media, stored)
    db.refresh(news)
    await media.discard(replaced)
    return news


@router.delete("/{news_id}", response_model=MessageResponse)
async def delete_news(
    news_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
    media: Annotated[MediaStore, Depends(get_media_store)],
) -> MessageResponse:
    news = get_or_404(db, News, news_id, NOT_FOUND)
    public_id = news.image_public_id
    db.delete(news)
    db.commit()
    await media.discard(public_id)
    return MessageResponse(message="News item deleted successfully")
