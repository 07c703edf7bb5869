"""Administrative procedures endpoints (JSON bodies, no media)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.api.auth import require_editor
from commune_api.api.common import get_or_404
from commune_api.core.database import get_db
from commune_api.models import Account, AdministrativeProcedure
from commune_api.schemas.common import MessageResponse
from commune_api.schemas.content import ProcedureCreate, ProcedureOut, ProcedureUpdate

router = APIRouter()

NOT_FOUND = "Administrative procedure not found"


def _ordered():
    return select(AdministrativeProcedure).order_by(AdministrativeProcedure.title.asc())


@router.get("", response_model=list[ProcedureOut])
def list_procedures(db: Annotated[Session, Depends(get_db)]) -> list[AdministrativeProcedure]:
    """All procedures in alphabetical order."""
    return list(db.execute(_ordered()).scalars())


@router.get("/category/{category}", response_model=list[ProcedureOut])
def list_procedures_by_category(
    category: str, db: Annotated[Session, Depends(get_db)]
) -> list[AdministrativeProcedure]:
    query = _ordered().where(AdministrativeProcedure.category == category)
    return list(db.execute(query).scalars())


@router.get("/{procedure_id}", response_model=ProcedureOut)
def get_procedure(procedure_id: int, db: Annotated[Session, Depends(get_db)]) -> AdministrativeProcedure:
    return get_or_404(db, AdministrativeProcedure, procedure_id, NOT_FOUND)


@router.post("", response_model=ProcedureOut, status_code=201)
def create_procedure(
    body: ProcedureCreate,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> AdministrativeProcedure:
    procedure = AdministrativeProcedure(**body.model_dump())
    db.add(procedure)
    db.commit()
    db.refresh(procedure)
    return procedure


@router.put("/{procedure_id}", response_model=ProcedureOut)
def update_procedure(
    procedure_id: int,
    body: ProcedureUpdate,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> AdministrativeProcedure:
    """Partial update: fields absent from the body keep their stored values."""
    procedure = get_or_404(db, AdministrativeProcedure, procedure_id, NOT_FOUND)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(procedure, field, value)
    db.commit()
    db.refresh(procedure)
    return procedure


@router.delete("/{procedure_id}", response_model=MessageResponse)
def delete_procedure(
    procedure_id: int,
    db: Annotated[Session, Depends(get_db)],
    _editor: Annotated[Account, Depends(require_editor)],
) -> MessageResponse:
    procedure = get_or_404(db, AdministrativeProcedure, procedure_id, NOT_FOUND)
    db.delete(procedure)
    db.commit()
    return MessageResponse(message="Administrative procedure deleted successfully")
