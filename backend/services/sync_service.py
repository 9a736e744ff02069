"""Sync service - applies the Plaid transactions change feed to the ledger."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import settings
from integrations.exceptions import ProviderAuthError, ProviderError, SyncPageValidationError
from integrations.provider_protocol import TransactionsProvider
from models import PlaidItem, SyncLogEntry
from schemas.sync import SyncPage
from services.transaction_store import PageOutcome, TransactionStore
from utils.request_context import get_request_id, reset_request_id, set_request_id

logger = logging.getLogger(__name__)

SYNCABLE_STATUSES = ("active", "error")


class SyncInProgressError(Exception):
    """Another sync of the same Item is already running."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Sync already in progress for item {item_id}")


@dataclass
class SyncResult:
    """Outcome of one sync run for one Item."""

    item_id: str
    status: str = "success"  # "success" | "failed"
    final_cursor: str | None = None
    pages_applied: int = 0
    added: int = 0
    modified: int = 0
    removed: int = 0
    skipped: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def applied_count(self) -> int:
        return self.added + self.modified + self.removed

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def record_page(self, outcome: PageOutcome, next_cursor: str) -> None:
        self.pages_applied += 1
        self.added += outcome.added
        self.modified += outcome.modified
        self.removed += outcome.removed
        self.skipped += outcome.skipped
        self.failed += outcome.failed
        self.final_cursor = next_cursor


class SyncService:
    """Service for pulling the transactions change feed for linked Items.

    Pages are fetched and applied strictly in order. After each page the
    new cursor is stored on the Item and committed together with the
    page's mutations, so an interrupted run resumes from the last applied
    page and replays at most one page, which the store applies
    idempotently.
    """

    # One lock per Item, shared across all instances, so the same Item is
    # never synced twice at once within this process. Multi-process
    # deployments need a database or Redis lock instead.
    _item_locks: dict[str, threading.Lock] = {}
    _item_locks_guard = threading.Lock()

    def __init__(
        self,
        client: Optional[TransactionsProvider] = None,
        page_size: Optional[int] = None,
    ):
        """Initialize with an optional provider client for dependency injection.

        Args:
            client: Transactions provider. If None, a PlaidClient is
                created on first use.
            page_size: Changes requested per page. Defaults to
                ``settings.PLAID_SYNC_PAGE_SIZE``.
        """
        self._client = client
        self.page_size = page_size or settings.PLAID_SYNC_PAGE_SIZE

    @property
    def client(self) -> TransactionsProvider:
        """Get the provider client, creating the default Plaid client if not provided."""
        if self._client is None:
            from integrations.plaid_client import PlaidClient

            self._client = PlaidClient()
        return self._client

    @classmethod
    def _lock_for(cls, item_id: str) -> threading.Lock:
        with cls._item_locks_guard:
            lock = cls._item_locks.get(item_id)
            if lock is None:
                lock = threading.Lock()
                cls._item_locks[item_id] = lock
            return lock

    @classmethod
    @contextmanager
    def hold_item_lock(cls, item_id: str) -> Iterator[None]:
        """Hold the Item's lock for the duration of the block, without waiting.

        Raises:
            SyncInProgressError: If the lock is already held.
        """
        lock = cls._lock_for(item_id)
        if not lock.acquire(blocking=False):
            raise SyncInProgressError(item_id)
        try:
            yield
        finally:
            lock.release()

    @classmethod
    def forget_item_lock(cls, item_id: str) -> None:
        """Drop the lock entry of an Item that no longer exists."""
        with cls._item_locks_guard:
            cls._item_locks.pop(item_id, None)

    @classmethod
    def is_sync_in_progress(cls, item_id: str) -> bool:
        """Check if a sync for this Item is currently running."""
        with cls._item_locks_guard:
            lock = cls._item_locks.get(item_id)
        if lock is None:
            return False
        acquired = lock.acquire(blocking=False)
        if acquired:
            lock.release()
            return False
        return True

    def sync_item(
        self,
        db: Session,
        item: PlaidItem,
        correlation_id: str | None = None,
    ) -> SyncResult:
        """Pull and apply all outstanding changes for one Item.

        Provider and page-validation failures end the run early and are
        reported through the returned result; progress made before the
        failure stays committed.

        Args:
            db: Database session
            item: The Item to sync; its ``sync_cursor`` is the starting point
            correlation_id: Id tagged onto logs and the sync log entry.
                Defaults to the current request's id.

        Returns:
            SyncResult with per-run counts, final cursor, and status.

        Raises:
            SyncInProgressError: If this Item is already being synced.
        """
        with self.hold_item_lock(item.item_id):
            correlation_id = correlation_id or get_request_id()
            token = set_request_id(correlation_id)
            try:
                return self._run(db, item, correlation_id)
            finally:
                reset_request_id(token)

    def sync_all(self, db: Session) -> list[SyncResult]:
        """Sync every active or errored Item, one after another.

        Errored Items are retried so that a re-login or a key fix is picked
        up by the next scheduled run; only revoked Items are skipped. A
        failure or an in-flight sync on one Item does not stop the others.
        """
        items = (
            db.query(PlaidItem)
            .filter(PlaidItem.status.in_(SYNCABLE_STATUSES))
            .order_by(PlaidItem.created_at)
            .all()
        )
        results = []
        for item in items:
            try:
                results.append(self.sync_item(db, item))
            except SyncInProgressError:
                logger.info("Skipping item=%s: sync already in progress", item.item_id)
        return results

    def _run(self, db: Session, item: PlaidItem, correlation_id: str | None) -> SyncResult:
        item_id = item.item_id
        cursor = item.sync_cursor
        result = SyncResult(item_id=item_id, final_cursor=cursor)

        logger.info(
            "Starting transactions sync for item=%s (%s), cursor=%s",
            item_id, item.institution_name or "unknown institution",
            "set" if cursor else "none (full history)",
        )

        try:
            while True:
                page = self._fetch_page(item.access_token, cursor)
                outcome = self.apply_page(db, item, page)

                # Checkpoint: the cursor only advances together with the
                # mutations of the page it describes.
                item.sync_cursor = page.next_cursor
                db.commit()

                cursor = page.next_cursor
                result.record_page(outcome, cursor)
                logger.info(
                    "item=%s page %d applied: added=%d modified=%d removed=%d "
                    "skipped=%d failed=%d has_more=%s",
                    item_id, result.pages_applied, outcome.added, outcome.modified,
                    outcome.removed, outcome.skipped, outcome.failed, page.has_more,
                )
                if not page.has_more:
                    break
        except ProviderError as e:
            db.rollback()
            result.status = "failed"
            result.error = str(e)
            item.last_sync_error = str(e)
            if isinstance(e, ProviderAuthError):
                item.status = "error"
            logger.warning(
                "Transactions sync aborted for item=%s after %d page(s): %s",
                item_id, result.pages_applied, e,
            )
        except Exception:
            db.rollback()
            logger.error(
                "Unexpected error syncing item=%s after %d page(s)",
                item_id, result.pages_applied, exc_info=True,
            )
            raise
        else:
            item.last_synced_at = datetime.now(timezone.utc)
            item.last_sync_error = None
            if item.status == "error":
                item.status = "active"
            logger.info(
                "Transactions sync complete for item=%s: pages=%d added=%d "
                "modified=%d removed=%d skipped=%d failed=%d",
                item_id, result.pages_applied, result.added, result.modified,
                result.removed, result.skipped, result.failed,
            )

        db.add(SyncLogEntry(
            plaid_item_id=item.id,
            status=result.status,
            pages_applied=result.pages_applied,
            added_count=result.added,
            modified_count=result.modified,
            removed_count=result.removed,
            skipped_count=result.skipped,
            failed_count=result.failed,
            final_cursor=result.final_cursor,
            error_message=result.error,
            correlation_id=correlation_id,
        ))
        db.commit()
        return result

    def _fetch_page(self, access_token: str, cursor: str | None) -> SyncPage:
        """Request one page and validate it at the boundary.

        Raises:
            ProviderError: If the provider call fails.
            SyncPageValidationError: If the payload does not match SyncPage.
        """
        raw = self.client.sync_transactions(access_token, cursor, self.page_size)
        try:
            page = SyncPage.model_validate(raw)
        except ValidationError as e:
            raise SyncPageValidationError(
                f"Malformed transactions sync page: {e.error_count()} validation error(s)",
                provider_name=self.client.provider_name,
            ) from e

        if page.has_more and page.next_cursor == cursor:
            raise SyncPageValidationError(
                "Transactions sync page did not advance the cursor",
                provider_name=self.client.provider_name,
            )
        return page

    @staticmethod
    def apply_page(db: Session, item: PlaidItem, page: SyncPage) -> PageOutcome:
        """Apply one page in feed order: added, then modified, then removed.

        Re-applying a page that was already applied changes nothing.
        Nothing is committed here.
        """
        outcome = PageOutcome()
        for tx in page.added:
            outcome.add(TransactionStore.insert_if_absent(db, tx, item_id=item.item_id))
        for tx in page.modified:
            outcome.add(TransactionStore.update_existing(db, tx))
        for removed in page.removed:
            outcome.add(TransactionStore.delete_by_external_id(db, removed.transaction_id))

        for failure in outcome.failures:
            logger.warning(
                "item=%s: %s of %s failed and was skipped: %s",
                item.item_id, failure.operation, failure.transaction_id, failure.error,
            )
        return outcome
