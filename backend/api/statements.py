"""Bank statement API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_or_404
from database import get_db
from models import BankStatement
from schemas import StatementCreate, StatementResponse
from services.statement_service import StatementService, StatementValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/statements", tags=["statements"])


@router.post("", response_model=StatementResponse, status_code=201)
def create_statement(
    body: StatementCreate,
    db: Session = Depends(get_db),
):
    """Record an uploaded statement and its line items."""
    try:
        statement = StatementService.create_statement(
            db,
            account_id=body.account_id,
            statement_date=body.statement_date,
            file_name=body.file_name,
            line_items=body.line_items,
            file_size=body.file_size,
        )
    except StatementValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    db.refresh(statement)
    return statement


@router.get("", response_model=list[StatementResponse])
def list_statements(db: Session = Depends(get_db)):
    """List statements, newest first."""
    return StatementService.list_statements(db)


@router.get("/{statement_id}", response_model=StatementResponse)
def get_statement(statement_id: str, db: Session = Depends(get_db)):
    """Get a single statement with its line items."""
    return get_or_404(db, BankStatement, statement_id, detail="Statement not found")
