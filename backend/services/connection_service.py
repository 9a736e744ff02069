"""Connection service - registry of linked Plaid Items and their accounts."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from integrations.provider_protocol import ProviderAccount, TransactionsProvider
from models import PlaidAccount, PlaidItem, Transaction
from services.sync_service import SyncResult, SyncService

logger = logging.getLogger(__name__)

LIABILITY_TYPES = {"credit", "loan"}
LIABILITY_SUBTYPES = {
    "credit card",
    "paypal",
    "auto",
    "business",
    "commercial",
    "construction",
    "consumer",
    "home equity",
    "loan",
    "mortgage",
    "line of credit",
    "overdraft",
    "student",
}


class ItemNotFoundError(Exception):
    """No linked Item with the given Plaid item_id."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class NoAccountsError(Exception):
    """The provider reported zero accounts for a newly linked Item."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(
            f"Bank connected but no accounts were reported for item {item_id}"
        )


@dataclass
class ExchangeResult:
    item_id: str
    institution_name: Optional[str]
    is_duplicate: bool
    accounts_upserted: int
    sync_result: Optional[SyncResult] = None


@dataclass
class RemoveResult:
    item_id: str
    institution_name: Optional[str]
    transactions_deleted: int
    accounts_deleted: int


def is_liability_account(account_type: Optional[str], subtype: Optional[str]) -> bool:
    """Credit and loan accounts, or any account whose subtype is a kind of debt."""
    if account_type and account_type.lower() in LIABILITY_TYPES:
        return True
    return bool(subtype) and subtype.lower() in LIABILITY_SUBTYPES


def account_label(account_type: Optional[str], subtype: Optional[str]) -> str:
    """Human-readable label: the title-cased subtype, falling back to the type.

    >>> account_label("credit", "credit_card")
    'Credit Card'
    """
    if subtype:
        return subtype.replace("_", " ").title()
    return (account_type or "").title()


def _apply_account_fields(row: PlaidAccount, acct: ProviderAccount, now: datetime) -> None:
    row.name = acct.name
    row.official_name = acct.official_name
    row.type = acct.type
    row.subtype = acct.subtype
    row.mask = acct.mask
    row.is_liability = is_liability_account(acct.type, acct.subtype)
    row.account_label = account_label(acct.type, acct.subtype)
    row.balance_current = acct.balance_current
    row.balance_available = acct.balance_available
    row.balance_limit = acct.balance_limit
    row.iso_currency_code = acct.iso_currency_code or "USD"
    row.last_synced_at = now


class ConnectionService:
    """Links bank connections and keeps one row per Item and per account."""

    def __init__(
        self,
        provider: TransactionsProvider,
        sync_service: Optional[SyncService] = None,
    ):
        self.provider = provider
        self.sync_service = sync_service or SyncService(client=provider)

    def exchange(
        self,
        db: Session,
        public_token: str,
        institution_id: Optional[str] = None,
        institution_name: Optional[str] = None,
        context: str = "personal",
        correlation_id: Optional[str] = None,
    ) -> ExchangeResult:
        """Complete a Link flow: store the Item and its accounts, then sync once.

        Reconnecting an Item that is already stored updates it in place and
        reports ``is_duplicate=True``. The initial sync is best effort: its
        failures are logged and never fail the exchange.

        Raises:
            ProviderError: If the token exchange or account listing fails.
            NoAccountsError: If the provider reports no accounts.
        """
        token = self.provider.exchange_public_token(public_token)
        item_id = token.item_id

        if not institution_name:
            institution_id, institution_name = self._resolve_institution(
                token.access_token, institution_id
            )

        accounts = self.provider.get_accounts(token.access_token)
        if not accounts:
            raise NoAccountsError(item_id)

        item = self._find_item(db, item_id)
        if item is None:
            item = self._insert_item(
                db, item_id, token.access_token, institution_id, institution_name, context
            )
        is_duplicate = item is None
        if is_duplicate:
            # Stored before, or by a concurrent exchange after our lookup
            item = self._find_item(db, item_id)
            item.access_token = token.access_token
            item.institution_id = institution_id or item.institution_id
            item.institution_name = institution_name or item.institution_name
            item.context = context
            item.status = "active"
            item.updated_at = datetime.now(timezone.utc)
            logger.info("Reconnected PlaidItem %s (%s)", item_id, item.institution_name)

        self._upsert_accounts(db, item, accounts)
        db.commit()

        sync_result = None
        try:
            sync_result = self.sync_service.sync_item(db, item, correlation_id=correlation_id)
        except Exception:
            logger.warning(
                "Initial transactions sync failed for item=%s; the connection is saved",
                item_id, exc_info=True,
            )
            db.rollback()

        return ExchangeResult(
            item_id=item_id,
            institution_name=item.institution_name,
            is_duplicate=is_duplicate,
            accounts_upserted=len(accounts),
            sync_result=sync_result,
        )

    def _resolve_institution(
        self, access_token: str, institution_id: Optional[str]
    ) -> tuple[Optional[str], Optional[str]]:
        try:
            institution = self.provider.get_institution(access_token)
        except Exception as e:
            logger.warning("Could not resolve institution for new item: %s", e)
            return institution_id, None
        return institution_id or institution.institution_id, institution.name

    @staticmethod
    def _find_item(db: Session, item_id: str) -> Optional[PlaidItem]:
        return db.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()

    @staticmethod
    def _insert_item(
        db: Session,
        item_id: str,
        access_token: str,
        institution_id: Optional[str],
        institution_name: Optional[str],
        context: str,
    ) -> Optional[PlaidItem]:
        """Insert a new Item inside a savepoint.

        Returns:
            The new Item, or ``None`` when the unique index on ``item_id``
            rejected the row because it already exists.
        """
        item = PlaidItem(
            item_id=item_id,
            access_token=access_token,
            institution_id=institution_id,
            institution_name=institution_name,
            context=context,
            status="active",
        )
        try:
            with db.begin_nested():
                db.add(item)
        except IntegrityError:
            logger.info("PlaidItem %s was stored concurrently; updating it instead", item_id)
            return None
        logger.info("Created PlaidItem %s for %s", item_id, institution_name)
        return item

    @staticmethod
    def _find_account(db: Session, account_id: str) -> Optional[PlaidAccount]:
        return db.query(PlaidAccount).filter(PlaidAccount.account_id == account_id).first()

    @staticmethod
    def _upsert_accounts(
        db: Session, item: PlaidItem, accounts: list[ProviderAccount]
    ) -> None:
        """Insert or update one PlaidAccount row per provider account.

        New rows go in through a savepoint; losing the insert race to
        another exchange falls back to updating the row that won.
        """
        now = datetime.now(timezone.utc)
        for acct in accounts:
            row = ConnectionService._find_account(db, acct.account_id)
            if row is None:
                row = PlaidAccount(account_id=acct.account_id, plaid_item_id=item.id)
                _apply_account_fields(row, acct, now)
                try:
                    with db.begin_nested():
                        db.add(row)
                    continue
                except IntegrityError:
                    logger.info(
                        "PlaidAccount %s was stored concurrently; updating it instead",
                        acct.account_id,
                    )
                    row = ConnectionService._find_account(db, acct.account_id)

            row.plaid_item_id = item.id
            _apply_account_fields(row, acct, now)

        db.flush()
        logger.info("Upserted %d account(s) for item=%s", len(accounts), item.item_id)

    @staticmethod
    def get_item(db: Session, item_id: str) -> PlaidItem:
        """Look up an Item by Plaid item_id.

        Raises:
            ItemNotFoundError: If no such Item is stored.
        """
        item = ConnectionService._find_item(db, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    @staticmethod
    def list_items(db: Session) -> list[PlaidItem]:
        return db.query(PlaidItem).order_by(PlaidItem.created_at.desc()).all()

    @staticmethod
    def list_accounts(db: Session, item_id: Optional[str] = None) -> list[PlaidAccount]:
        """Stored accounts, optionally limited to one Item (by Plaid item_id)."""
        query = db.query(PlaidAccount)
        if item_id:
            query = query.join(PlaidItem).filter(PlaidItem.item_id == item_id)
        return query.order_by(PlaidAccount.name).all()

    def remove_item(self, db: Session, item_id: str) -> RemoveResult:
        """Revoke an Item with the provider and delete everything stored for it.

        Revocation is best effort; local data is deleted regardless. The
        Item's sync lock is held throughout, so a running sync can never
        checkpoint against a deleted row.

        Raises:
            ItemNotFoundError: If no such Item is stored.
            SyncInProgressError: If the Item is being synced right now.
        """
        with SyncService.hold_item_lock(item_id):
            try:
                return self._remove_locked(db, item_id)
            finally:
                SyncService.forget_item_lock(item_id)

    def _remove_locked(self, db: Session, item_id: str) -> RemoveResult:
        item = self.get_item(db, item_id)

        try:
            self.provider.remove_item(item.access_token)
        except Exception as e:
            logger.warning("Failed to remove Plaid item remotely (removing locally anyway): %s", e)

        account_ids = [a.account_id for a in item.accounts]
        tx_filter = Transaction.item_id == item.item_id
        if account_ids:
            tx_filter = or_(tx_filter, Transaction.account_id.in_(account_ids))
        transactions_deleted = (
            db.query(Transaction).filter(tx_filter).delete(synchronize_session=False)
        )

        result = RemoveResult(
            item_id=item.item_id,
            institution_name=item.institution_name,
            transactions_deleted=transactions_deleted,
            accounts_deleted=len(account_ids),
        )
        db.delete(item)
        db.commit()
        logger.info(
            "Deleted PlaidItem %s: %d transaction(s), %d account(s)",
            item_id, result.transactions_deleted, result.accounts_deleted,
        )
        return result
