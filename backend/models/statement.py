"""Bank statement models - uploaded statements and their line items."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class BankStatement(Base):
    """An independently sourced bank statement for one account."""

    __tablename__ = "bank_statements"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String, index=True, nullable=False)  # Plaid account_id
    statement_date = Column(Date, nullable=False)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)  # "pdf" | "csv" | "ofx" | "qfx"
    file_size = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="uploaded")
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    line_items = relationship(
        "StatementLineItem",
        back_populates="statement",
        cascade="all, delete-orphan",
    )


class StatementLineItem(Base):
    """A single line of a bank statement.

    Line items are evidence the ledger is checked against and are never
    modified after creation.
    """

    __tablename__ = "statement_line_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    statement_id = Column(
        String(36), ForeignKey("bank_statements.id", ondelete="CASCADE"), nullable=False
    )
    account_id = Column(String, nullable=False)
    date = Column(Date, index=True, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    statement = relationship("BankStatement", back_populates="line_items")
