"""Contact form: public submission, back-office inbox for editors."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import check_choice, get_or_404
from commune_api.api.deps import get_mailer
from commune_api.core.database import get_db
from commune_api.core.errors import ServiceError
from commune_api.models import Account, ContactMessage
from commune_api.models.gallery import CONTACT_STATUSES
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import (
    ContactMessageCreate,
    ContactMessageOut,
    ContactMessageResponse,
    ContactStatusUpdate,
)
from commune_api.services.mailer import Mailer

logger = logging.getLogger(__name__)
router = APIRouter()

NOT_FOUND = "Message not found"


@router.post("/messages", response_model=ContactMessageResponse, status_code=201)
def send_contact_message(
    body: ContactMessageCreate,
    db: Annotated[Session, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> ContactMessageResponse:
    """Store the message, then notify the town hall. A failed notification does not lose the message."""
    contact = ContactMessage(**body.model_dump())
    db.add(contact)
    db.commit()
    db.refresh(contact)
    notified = True
    try:
        mailer.send_contact_notification(contact)
    except ServiceError as e:
        notified = False
        logger.error(
            "Contact notification not sent",
            extra={"contact_id": contact.id, "reason": e.message},
        )
    return ContactMessageResponse(
        message="Your message has been sent successfully",
        data=ContactMessageOut.model_validate(contact),
        notification_sent=notified,
    )


@router.get("/messages", response_model=list[ContactMessageOut])
def list_contact_messages(
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> list[ContactMessage]:
    query = select(ContactMessage).order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
    return list(db.execute(query).scalars())


@router.patch("/messages/{message_id}/status", response_model=ContactMessageOut)
def update_contact_status(
    message_id: int,
    body: ContactStatusUpdate,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> ContactMessage:
    contact = get_or_404(db, ContactMessage, message_id, NOT_FOUND)
    contact.status = check_choice(body.status, CONTACT_STATUSES, "status")
    db.commit()
    db.refresh(contact)
    return contact


@router.delete("/messages/{message_id}", response_model=MessageResponse)
def delete_contact_message(
    message_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> MessageResponse:
    contact = get_or_404(db, ContactMessage, message_id, NOT_FOUND)
    db.delete(contact)
    db.commit()
    return MessageResponse(message="Message deleted successfully")
