"""Reconciliation service - compares statement lines against ingested transactions."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import BankStatement, PlaidAccount, StatementLineItem, Transaction

logger = logging.getLogger(__name__)

MATCHED = "matched"
PARTIAL = "partial"
UNMATCHED = "unmatched"

AMOUNT_TOLERANCE = Decimal("0.01")
UNKNOWN_DESCRIPTION = "Unknown"
UNKNOWN_ACCOUNT = "Unknown Account"


@dataclass
class ReconciliationItem:
    id: str
    statement_date: date
    statement_amount: Decimal
    ingested_amount: Optional[Decimal]
    difference: Optional[Decimal]
    status: str
    description: str
    account_name: str


@dataclass
class ReconciliationSummary:
    total_statement_items: int = 0
    matched_count: int = 0
    unmatched_count: int = 0
    partial_count: int = 0
    total_difference: Decimal = Decimal("0.00")
    statement_period_start: Optional[date] = None
    statement_period_end: Optional[date] = None


@dataclass
class ReconciliationReport:
    items: list[ReconciliationItem] = field(default_factory=list)
    summary: ReconciliationSummary = field(default_factory=ReconciliationSummary)


def match_line_items(
    line_items: Iterable,
    transactions: list,
    account_names: Mapping[str, str],
) -> ReconciliationReport:
    """Classify each statement line against the ledger.

    Every line is matched independently, scanning ``transactions`` in the
    order given:

    1. the first same-date transaction whose absolute amount differs from the
       line's absolute amount by at most 0.01 (inclusive) -> matched,
       difference 0
    2. else the first same-date transaction -> partial, difference
       ``|line| - |tx|``
    3. else unmatched

    The scan is greedy: one transaction may match several lines and a
    partial match takes the first same-date candidate, not the closest.

    Args:
        line_items: Objects with id, date, amount, description, account_id
        transactions: Objects with date and amount, in query order
        account_names: Map of account_id to display name

    Returns:
        ReconciliationReport without statement period (set by the caller).
    """
    report = ReconciliationReport()
    summary = report.summary
    total_difference = Decimal("0")

    by_date: dict[date, list] = {}
    for tx in transactions:
        by_date.setdefault(tx.date, []).append(tx)

    for line in line_items:
        line_abs = abs(line.amount)
        candidates = by_date.get(line.date, [])

        exact = next(
            (tx for tx in candidates if abs(abs(tx.amount) - line_abs) <= AMOUNT_TOLERANCE),
            None,
        )

        ingested_amount = None
        difference = None
        if exact is not None:
            status = MATCHED
            ingested_amount = exact.amount
            difference = Decimal("0")
            summary.matched_count += 1
        elif candidates:
            partial = candidates[0]
            status = PARTIAL
            ingested_amount = partial.amount
            difference = line_abs - abs(partial.amount)
            total_difference += abs(difference)
            summary.partial_count += 1
        else:
            status = UNMATCHED
            total_difference += line_abs
            summary.unmatched_count += 1

        report.items.append(ReconciliationItem(
            id=line.id,
            statement_date=line.date,
            statement_amount=line.amount,
            ingested_amount=ingested_amount,
            difference=difference,
            status=status,
            description=line.description or UNKNOWN_DESCRIPTION,
            account_name=account_names.get(line.account_id) or UNKNOWN_ACCOUNT,
        ))

    summary.total_statement_items = len(report.items)
    summary.total_difference = total_difference.quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return report


class ReconciliationService:
    """Builds the statement reconciliation report from the database."""

    @staticmethod
    def build_report(db: Session) -> ReconciliationReport:
        """Reconcile all uploaded statement lines against stored transactions.

        Unreadable statement tables, no statements, or statements without
        line items yield an empty report with zero counts. Errors reading
        transactions propagate.
        """
        try:
            statements = (
                db.query(BankStatement)
                .order_by(BankStatement.statement_date.desc())
                .all()
            )
            line_items = (
                db.query(StatementLineItem)
                .order_by(
                    StatementLineItem.date,
                    StatementLineItem.created_at,
                    StatementLineItem.id,
                )
                .all()
            )
        except SQLAlchemyError:
            logger.error("Failed to read statements for reconciliation", exc_info=True)
            db.rollback()
            return ReconciliationReport()

        if not statements:
            return ReconciliationReport()

        transactions = (
            db.query(Transaction)
            .order_by(Transaction.created_at, Transaction.transaction_id)
            .all()
        )
        account_names = {
            account_id: name
            for account_id, name in db.query(PlaidAccount.account_id, PlaidAccount.name)
        }

        report = match_line_items(line_items, transactions, account_names)

        dates = sorted(s.statement_date for s in statements if s.statement_date)
        if dates:
            report.summary.statement_period_start = dates[0]
            report.summary.statement_period_end = dates[-1]

        logger.info(
            "Reconciliation report: %d lines, matched=%d partial=%d unmatched=%d, "
            "total_difference=%s",
            report.summary.total_statement_items, report.summary.matched_count,
            report.summary.partial_count, report.summary.unmatched_count,
            report.summary.total_difference,
        )
        return report
