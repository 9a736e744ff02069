"""Pydantic schemas for bank statement intake."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatementLineItemInput(BaseModel):
    date: date
    amount: Decimal
    description: Optional[str] = None


class StatementCreate(BaseModel):
    """Request body for recording an uploaded statement and its lines."""

    account_id: str = Field(min_length=1)
    statement_date: date
    file_name: str = Field(min_length=1)
    file_size: Optional[int] = Field(default=None, ge=0)
    line_items: list[StatementLineItemInput] = Field(default_factory=list)


class StatementLineItemResponse(BaseModel):
    id: str
    date: date
    amount: Decimal
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StatementResponse(BaseModel):
    id: str
    account_id: str
    statement_date: date
    file_name: str
    file_type: str
    file_size: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    line_items: list[StatementLineItemResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
