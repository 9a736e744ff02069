"""Transaction store - keyed, idempotent mutations of the ledger.

Every mutation is addressed by Plaid's ``transaction_id`` and reports its
result as a :class:`RecordOutcome` instead of raising, so the sync consumer
can apply a whole page with maximal forward progress and decide what to
log from the aggregate.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import Transaction
from schemas.sync import FeedTransaction

logger = logging.getLogger(__name__)

APPLIED = "applied"
SKIPPED = "skipped"
FAILED = "failed"

# Skip reasons
ALREADY_PRESENT = "already_present"
NOT_FOUND = "not_found"


class PersistenceError(Exception):
    """A single record could not be written to the store."""

    def __init__(self, message: str, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(message)


@dataclass
class RecordOutcome:
    """Result of one keyed mutation: applied, skipped(reason) or failed(error)."""

    transaction_id: str
    operation: str  # "add" | "modify" | "remove"
    status: str
    reason: str | None = None
    error: PersistenceError | None = None

    @classmethod
    def applied(cls, transaction_id: str, operation: str) -> "RecordOutcome":
        return cls(transaction_id, operation, APPLIED)

    @classmethod
    def skipped(cls, transaction_id: str, operation: str, reason: str) -> "RecordOutcome":
        return cls(transaction_id, operation, SKIPPED, reason=reason)

    @classmethod
    def failed(
        cls, transaction_id: str, operation: str, error: PersistenceError
    ) -> "RecordOutcome":
        return cls(transaction_id, operation, FAILED, error=error)


@dataclass
class PageOutcome:
    """Aggregated record outcomes for one change-feed page."""

    outcomes: list[RecordOutcome] = field(default_factory=list)

    def add(self, outcome: RecordOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, status: str, operation: str | None = None) -> int:
        return sum(
            1
            for o in self.outcomes
            if o.status == status and (operation is None or o.operation == operation)
        )

    @property
    def added(self) -> int:
        return self._count(APPLIED, "add")

    @property
    def modified(self) -> int:
        return self._count(APPLIED, "modify")

    @property
    def removed(self) -> int:
        return self._count(APPLIED, "remove")

    @property
    def applied(self) -> int:
        return self._count(APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def failures(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]


def _mutable_fields(tx: FeedTransaction) -> dict:
    """Columns a ``modified`` change may overwrite."""
    return {
        "account_id": tx.account_id,
        "amount": tx.amount,
        "amount_normalized": -tx.amount,
        "date": tx.date,
        "authorized_date": tx.authorized_date,
        "name": tx.name,
        "merchant_name": tx.merchant_name,
        "category": tx.category,
        "pending": tx.pending,
        "payment_channel": tx.payment_channel,
        "iso_currency_code": tx.iso_currency_code,
    }


class TransactionStore:
    """Keyed access to the ``transactions`` table.

    Each mutation runs inside its own savepoint: a failed record is rolled
    back on its own and the rest of the page is unaffected. Nothing is
    committed here; the caller owns the enclosing transaction.
    """

    @staticmethod
    def get(db: Session, transaction_id: str) -> Transaction | None:
        return (
            db.query(Transaction)
            .filter(Transaction.transaction_id == transaction_id)
            .first()
        )

    @staticmethod
    def insert_if_absent(
        db: Session, tx: FeedTransaction, item_id: str | None = None
    ) -> RecordOutcome:
        """Insert a transaction unless one with the same id already exists.

        The unique index on ``transaction_id`` is the final arbiter: an
        insert that loses a race with another writer surfaces as
        ``IntegrityError`` and is reported as skipped, not failed.
        """
        if TransactionStore.get(db, tx.transaction_id) is not None:
            return RecordOutcome.skipped(tx.transaction_id, "add", ALREADY_PRESENT)

        try:
            with db.begin_nested():
                db.add(Transaction(
                    transaction_id=tx.transaction_id,
                    item_id=item_id,
                    **_mutable_fields(tx),
                ))
        except IntegrityError:
            logger.debug("Concurrent insert of %s, treating as present", tx.transaction_id)
            return RecordOutcome.skipped(tx.transaction_id, "add", ALREADY_PRESENT)
        except SQLAlchemyError as e:
            return TransactionStore._failure(tx.transaction_id, "add", e)

        return RecordOutcome.applied(tx.transaction_id, "add")

    @staticmethod
    def update_existing(db: Session, tx: FeedTransaction) -> RecordOutcome:
        """Overwrite the mutable fields of an existing transaction.

        A modification for an id the store has never seen is a no-op: the
        feed may deliver a modify before the corresponding add.
        """
        existing = TransactionStore.get(db, tx.transaction_id)
        if existing is None:
            return RecordOutcome.skipped(tx.transaction_id, "modify", NOT_FOUND)

        try:
            with db.begin_nested():
                for key, value in _mutable_fields(tx).items():
                    setattr(existing, key, value)
                existing.updated_at = datetime.now(timezone.utc)
        except SQLAlchemyError as e:
            db.expire(existing)
            return TransactionStore._failure(tx.transaction_id, "modify", e)

        return RecordOutcome.applied(tx.transaction_id, "modify")

    @staticmethod
    def delete_by_external_id(db: Session, transaction_id: str) -> RecordOutcome:
        """Delete a transaction; deleting an absent id is a no-op."""
        existing = TransactionStore.get(db, transaction_id)
        if existing is None:
            return RecordOutcome.skipped(transaction_id, "remove", NOT_FOUND)

        try:
            with db.begin_nested():
                db.delete(existing)
        except SQLAlchemyError as e:
            return TransactionStore._failure(transaction_id, "remove", e)

        return RecordOutcome.applied(transaction_id, "remove")

    @staticmethod
    def _failure(transaction_id: str, operation: str, exc: SQLAlchemyError) -> RecordOutcome:
        error = PersistenceError(
            f"Failed to {operation} transaction {transaction_id}: {exc}",
            transaction_id=transaction_id,
        )
        logger.warning("%s", error)
        return RecordOutcome.failed(transaction_id, operation, error)

    @staticmethod
    def count_for_item(db: Session, item_id: str) -> int:
        return db.query(Transaction).filter(Transaction.item_id == item_id).count()

