"""Pydantic schemas for the transactions change feed and sync results."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeedTransaction(BaseModel):
    """A transaction as it appears in the ``added`` or ``modified`` set."""

    model_config = ConfigDict(extra="ignore")

    transaction_id: str = Field(min_length=1)
    account_id: str = Field(min_length=1)
    amount: Decimal
    date: date
    authorized_date: Optional[date] = None
    name: Optional[str] = None
    merchant_name: Optional[str] = None
    category: Optional[list[str]] = None
    pending: bool = False
    payment_channel: Optional[str] = None
    iso_currency_code: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def amount_from_float(cls, v):
        """Convert floats through ``str`` so 42.1 stays Decimal("42.1")."""
        if isinstance(v, float):
            try:
                return Decimal(str(v))
            except InvalidOperation:
                raise ValueError(f"invalid amount {v!r}")
        return v


class RemovedTransaction(BaseModel):
    """An entry of the ``removed`` set; only the id is meaningful."""

    model_config = ConfigDict(extra="ignore")

    transaction_id: str = Field(min_length=1)


class SyncPage(BaseModel):
    """One page of ``/transactions/sync``.

    The three change sets are disjoint; ``next_cursor`` is the checkpoint to
    persist once the page is applied.
    """

    model_config = ConfigDict(extra="ignore")

    added: list[FeedTransaction] = Field(default_factory=list)
    modified: list[FeedTransaction] = Field(default_factory=list)
    removed: list[RemovedTransaction] = Field(default_factory=list)
    next_cursor: str = Field(min_length=1)
    has_more: bool


class SyncRequest(BaseModel):
    """Request body for a manual sync of one Item."""

    item_id: str


class SyncResponse(BaseModel):
    """Response for a sync run. Failures are reported in ``status``/``error``."""

    item_id: str
    status: str  # "success" | "failed"
    applied_count: int
    final_cursor: Optional[str] = None
    pages_applied: int
    added: int
    modified: int
    removed: int
    skipped: int
    failed: int
    error: Optional[str] = None
    request_id: Optional[str] = None
