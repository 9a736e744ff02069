"""Pydantic schemas for the statement reconciliation report."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel


class ReconciliationItemResponse(BaseModel):
    """One statement line and what it matched in the ledger."""

    id: str
    statement_date: date
    statement_amount: float
    ingested_amount: Optional[float] = None
    difference: Optional[float] = None
    status: Literal["matched", "partial", "unmatched"]
    description: str
    account_name: str


class ReconciliationSummaryResponse(BaseModel):
    total_statement_items: int = 0
    matched_count: int = 0
    unmatched_count: int = 0
    partial_count: int = 0
    total_difference: float = 0.0
    statement_period_start: Optional[date] = None
    statement_period_end: Optional[date] = None


class ReconciliationReportResponse(BaseModel):
    items: list[ReconciliationItemResponse]
    summary: ReconciliationSummaryResponse
    request_id: Optional[str] = None
