"""Service for recording uploaded bank statements and their line items."""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from models import BankStatement, StatementLineItem

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("pdf", "csv", "ofx", "qfx")
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class StatementValidationError(ValueError):
    """Statement metadata was rejected (file type or size)."""


def file_extension(file_name: str) -> str:
    """Lowercased extension of a file name, or '' if it has none."""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


class StatementService:
    """Statement intake for the reconciliation report."""

    @staticmethod
    def create_statement(
        db: Session,
        account_id: str,
        statement_date: date,
        file_name: str,
        line_items: Iterable,
        file_size: Optional[int] = None,
    ) -> BankStatement:
        """Persist a statement and its line items.

        Line items are stamped with the statement's account. The session is
        flushed, not committed.

        Args:
            db: Database session
            account_id: Plaid account id the statement belongs to
            statement_date: Closing date of the statement
            file_name: Uploaded file name; its extension must be one of
                ALLOWED_EXTENSIONS
            line_items: Objects with date, amount and description
            file_size: Size of the uploaded file in bytes

        Returns:
            The created BankStatement

        Raises:
            StatementValidationError: On a disallowed file type or size.
        """
        ext = file_extension(file_name)
        if ext not in ALLOWED_EXTENSIONS:
            raise StatementValidationError(
                f"Invalid file type. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
            )
        if file_size is not None and file_size > MAX_FILE_SIZE:
            raise StatementValidationError("File too large. Maximum size: 10MB")

        statement = BankStatement(
            account_id=account_id,
            statement_date=statement_date,
            file_name=file_name,
            file_type=ext,
            file_size=file_size,
            status="uploaded",
        )
        for line in line_items:
            statement.line_items.append(StatementLineItem(
                account_id=account_id,
                date=line.date,
                amount=line.amount,
                description=line.description,
            ))

        db.add(statement)
        db.flush()
        logger.info(
            "Statement recorded: %s for account %s (%d lines)",
            file_name, account_id, len(statement.line_items),
        )
        return statement

    @staticmethod
    def list_statements(db: Session) -> list[BankStatement]:
        """All statements, newest statement date first."""
        return (
            db.query(BankStatement)
            .options(selectinload(BankStatement.line_items))
            .order_by(BankStatement.statement_date.desc(), BankStatement.created_at.desc())
            .all()
        )
