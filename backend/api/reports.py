"""Report API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import current_request_id
from database import get_db
from schemas import (
    ReconciliationItemResponse,
    ReconciliationReportResponse,
    ReconciliationSummaryResponse,
)
from services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _as_float(value):
    return float(value) if value is not None else None


@router.post("/reconciliation", response_model=ReconciliationReportResponse)
def reconciliation_report(
    db: Session = Depends(get_db),
    request_id: str = Depends(current_request_id),
):
    """Compare uploaded statement lines against ingested transactions.

    Lines are classified as matched, partial or unmatched; the summary
    carries the counts, the total absolute difference and the statement
    period.
    """
    try:
        report = ReconciliationService.build_report(db)
    except Exception:
        logger.error("Failed to build reconciliation report", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build reconciliation report")

    summary = report.summary
    return ReconciliationReportResponse(
        items=[
            ReconciliationItemResponse(
                id=item.id,
                statement_date=item.statement_date,
                statement_amount=float(item.statement_amount),
                ingested_amount=_as_float(item.ingested_amount),
                difference=_as_float(item.difference),
                status=item.status,
                description=item.description,
                account_name=item.account_name,
            )
            for item in report.items
        ],
        summary=ReconciliationSummaryResponse(
            total_statement_items=summary.total_statement_items,
            matched_count=summary.matched_count,
            unmatched_count=summary.unmatched_count,
            partial_count=summary.partial_count,
            total_difference=float(summary.total_difference),
            statement_period_start=summary.statement_period_start,
            statement_period_end=summary.statement_period_end,
        ),
        request_id=request_id,
    )
