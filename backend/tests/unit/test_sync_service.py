"""Unit tests for SyncService."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from integrations.exceptions import ProviderAuthError, ProviderConfigError, TransientProviderError
from models import PlaidItem, SyncLogEntry, Transaction
from schemas.sync import SyncPage
from services.sync_service import SyncInProgressError, SyncService
from tests.fixtures import create_transaction
from tests.fixtures.mocks import MockPlaidClient, feed_tx, make_page
from utils.request_context import RequestIdFilter


def _ledger(db) -> dict[str, tuple]:
    """Snapshot of the ledger as {transaction_id: (amount, date, name)}."""
    return {
        t.transaction_id: (t.amount, t.date, t.name)
        for t in db.query(Transaction).all()
    }


THREE_PAGE_FEED = {
    None: make_page(
        "c1",
        added=[feed_tx("tx-1", 10.00), feed_tx("tx-2", 20.00)],
        has_more=True,
    ),
    "c1": make_page(
        "c2",
        added=[feed_tx("tx-3", 30.00)],
        modified=[feed_tx("tx-1", 11.00, name="Coffee (final)")],
        has_more=True,
    ),
    "c2": make_page(
        "c3",
        removed=["tx-2"],
    ),
}


def test_first_sync_applies_page_and_persists_cursor(db, plaid_item):
    """An Item with no cursor syncs from full history and stores next_cursor."""
    client = MockPlaidClient(pages={
        None: make_page("c1", added=[feed_tx("t1", 12.50), feed_tx("t2", 7.25)]),
    })
    service = SyncService(client=client)

    result = service.sync_item(db, plaid_item)

    assert result.status == "success"
    assert result.added == 2
    assert result.applied_count == 2
    assert result.final_cursor == "c1"
    assert result.pages_applied == 1
    db.refresh(plaid_item)
    assert plaid_item.sync_cursor == "c1"
    assert plaid_item.last_synced_at is not None
    assert plaid_item.last_sync_error is None
    assert db.query(Transaction).count() == 2


def test_first_request_has_no_cursor_and_uses_page_size(db, plaid_item):
    client = MockPlaidClient()
    SyncService(client=client, page_size=25).sync_item(db, plaid_item)

    assert client.sync_calls == [("access-1", None, 25)]


def test_page_size_defaults_to_setting(db, plaid_item):
    client = MockPlaidClient()
    with patch("services.sync_service.settings") as mock_settings:
        mock_settings.PLAID_SYNC_PAGE_SIZE = 100
        service = SyncService(client=client)
    service.sync_item(db, plaid_item)

    assert client.sync_calls[0][2] == 100


def test_sync_resumes_from_stored_cursor(db, plaid_item):
    plaid_item.sync_cursor = "c2"
    db.commit()
    client = MockPlaidClient(pages=THREE_PAGE_FEED)

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert [c[1] for c in client.sync_calls] == ["c2"]
    assert result.removed == 0  # tx-2 was never stored here
    assert result.skipped == 1


def test_multi_page_feed_is_applied_in_order(db, plaid_item):
    """Pages are requested with the previous page's cursor until has_more is false."""
    client = MockPlaidClient(pages=THREE_PAGE_FEED)

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert [c[1] for c in client.sync_calls] == [None, "c1", "c2"]
    assert result.pages_applied == 3
    assert (result.added, result.modified, result.removed) == (3, 1, 1)
    assert result.final_cursor == "c3"
    ledger = _ledger(db)
    assert set(ledger) == {"tx-1", "tx-3"}
    assert ledger["tx-1"][0] == Decimal("11.00")
    assert ledger["tx-1"][2] == "Coffee (final)"


def test_amounts_are_stored_as_decimals_with_normalized_sign(db, plaid_item):
    client = MockPlaidClient(pages={None: make_page("c1", added=[feed_tx("t1", 42.1)])})
    SyncService(client=client).sync_item(db, plaid_item)

    tx = db.query(Transaction).filter_by(transaction_id="t1").one()
    assert tx.amount == Decimal("42.10")
    assert tx.amount_normalized == Decimal("-42.10")
    assert tx.item_id == "item-1"
    assert tx.date == date(2024, 1, 5)


def test_replayed_page_does_not_duplicate(db, plaid_item):
    """Applying the same page twice leaves the same ledger as applying it once."""
    page = SyncPage.model_validate(make_page(
        "c1",
        added=[feed_tx("t1", 5.00), feed_tx("t2", 6.00)],
        modified=[feed_tx("t1", 5.50)],
        removed=["t0"],
    ))

    first = SyncService.apply_page(db, plaid_item, page)
    db.commit()
    once = _ledger(db)

    second = SyncService.apply_page(db, plaid_item, page)
    db.commit()

    assert _ledger(db) == once
    assert db.query(Transaction).count() == 2
    assert first.added == 2
    assert second.added == 0
    assert second.skipped == 3  # two adds already present, one remove not found


def test_resync_from_scratch_does_not_duplicate(db, plaid_item):
    client = MockPlaidClient(pages=THREE_PAGE_FEED)
    service = SyncService(client=client)
    service.sync_item(db, plaid_item)
    before = _ledger(db)

    plaid_item.sync_cursor = None
    db.commit()
    service.sync_item(db, plaid_item)

    assert _ledger(db) == before


def test_modified_for_unknown_id_is_skipped(db, plaid_item):
    client = MockPlaidClient(pages={
        None: make_page("c1", modified=[feed_tx("ghost", 1.00)]),
    })
    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "success"
    assert result.modified == 0
    assert result.skipped == 1
    assert db.query(Transaction).count() == 0


def test_removed_for_unknown_id_is_skipped(db, plaid_item):
    create_transaction(db, "keep", Decimal("3.00"))
    db.commit()
    client = MockPlaidClient(pages={None: make_page("c1", removed=["ghost"])})

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.skipped == 1
    assert result.removed == 0
    assert set(_ledger(db)) == {"keep"}


def test_provider_failure_keeps_last_checkpoint(db, plaid_item):
    """A failure mid-feed keeps the pages already applied and their cursor."""
    client = MockPlaidClient(
        pages=THREE_PAGE_FEED,
        sync_failures={"c1": TransientProviderError("institution down", provider_name="Plaid")},
    )

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    assert result.pages_applied == 1
    assert result.final_cursor == "c1"
    assert "institution down" in result.error
    db.refresh(plaid_item)
    assert plaid_item.sync_cursor == "c1"
    assert plaid_item.last_synced_at is None
    assert plaid_item.last_sync_error == "institution down"
    assert plaid_item.status == "active"
    assert set(_ledger(db)) == {"tx-1", "tx-2"}


def test_interrupted_then_resumed_matches_uninterrupted_run(db, plaid_item):
    """Interrupting after N of M pages and resuming gives the uninterrupted result."""
    failing = MockPlaidClient(
        pages=THREE_PAGE_FEED,
        sync_failures={"c2": TransientProviderError("timeout", provider_name="Plaid")},
    )
    SyncService(client=failing).sync_item(db, plaid_item)
    SyncService(client=MockPlaidClient(pages=THREE_PAGE_FEED)).sync_item(db, plaid_item)
    resumed = _ledger(db)
    db.refresh(plaid_item)
    resumed_cursor = plaid_item.sync_cursor

    # Uninterrupted run on a fresh Item and ledger
    db.query(Transaction).delete()
    other = PlaidItem(item_id="item-2", access_token="access-2")
    db.add(other)
    db.commit()
    SyncService(client=MockPlaidClient(pages=THREE_PAGE_FEED)).sync_item(db, other)

    assert _ledger(db) == resumed
    assert other.sync_cursor == resumed_cursor == "c3"


def test_auth_failure_marks_item_errored(db, plaid_item):
    client = MockPlaidClient(sync_failures={
        None: ProviderAuthError(
            "Plaid error (ITEM_LOGIN_REQUIRED): login required",
            provider_name="Plaid",
            error_code="ITEM_LOGIN_REQUIRED",
        ),
    })

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    db.refresh(plaid_item)
    assert plaid_item.status == "error"
    assert plaid_item.sync_cursor is None


def test_successful_sync_clears_error_status(db, plaid_item):
    plaid_item.status = "error"
    plaid_item.last_sync_error = "login required"
    db.commit()

    SyncService(client=MockPlaidClient()).sync_item(db, plaid_item)

    db.refresh(plaid_item)
    assert plaid_item.status == "active"
    assert plaid_item.last_sync_error is None


def test_malformed_page_aborts_without_changing_status(db, plaid_item):
    bad_page = make_page("c1", added=[feed_tx("t1", 1.00)])
    del bad_page["next_cursor"]
    client = MockPlaidClient(pages={None: bad_page})

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    assert "Malformed" in result.error
    db.refresh(plaid_item)
    assert plaid_item.status == "active"
    assert plaid_item.sync_cursor is None
    assert db.query(Transaction).count() == 0


def test_transaction_without_id_is_a_malformed_page(db, plaid_item):
    client = MockPlaidClient(pages={
        None: make_page("c1", added=[feed_tx("", 1.00)]),
    })
    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    assert db.query(Transaction).count() == 0


def test_page_that_does_not_advance_cursor_is_rejected(db, plaid_item):
    plaid_item.sync_cursor = "c1"
    db.commit()
    client = MockPlaidClient(pages={"c1": make_page("c1", has_more=True)})

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    assert "did not advance" in result.error
    assert len(client.sync_calls) == 1


def test_failed_record_does_not_stop_the_page(db, plaid_item):
    """A storage failure on one record is reported and the rest of the page applies."""
    client = MockPlaidClient(pages={
        None: make_page("c1", added=[feed_tx("ok-1", 1.00), feed_tx("bad", 2.00), feed_tx("ok-2", 3.00)]),
    })
    original_add = db.add

    def flaky_add(obj, *args, **kwargs):
        if isinstance(obj, Transaction) and obj.transaction_id == "bad":
            raise OperationalError("INSERT INTO transactions", {}, Exception("disk I/O error"))
        return original_add(obj, *args, **kwargs)

    with patch.object(db, "add", side_effect=flaky_add):
        result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "success"
    assert result.added == 2
    assert result.failed == 1
    assert set(_ledger(db)) == {"ok-1", "ok-2"}
    db.refresh(plaid_item)
    assert plaid_item.sync_cursor == "c1"


def test_sync_writes_one_log_entry_per_run(db, plaid_item):
    client = MockPlaidClient(pages=THREE_PAGE_FEED)
    SyncService(client=client).sync_item(db, plaid_item, correlation_id="req-123")

    entries = db.query(SyncLogEntry).all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.plaid_item_id == plaid_item.id
    assert entry.status == "success"
    assert entry.pages_applied == 3
    assert (entry.added_count, entry.modified_count, entry.removed_count) == (3, 1, 1)
    assert entry.final_cursor == "c3"
    assert entry.correlation_id == "req-123"


def test_failed_run_writes_failed_log_entry(db, plaid_item):
    client = MockPlaidClient(sync_failures={
        None: TransientProviderError("rate limited", provider_name="Plaid"),
    })
    SyncService(client=client).sync_item(db, plaid_item)

    entry = db.query(SyncLogEntry).one()
    assert entry.status == "failed"
    assert entry.error_message == "rate limited"


def test_page_logs_carry_counts_and_correlation_id(db, plaid_item, caplog):
    caplog.handler.addFilter(RequestIdFilter())
    client = MockPlaidClient(pages={None: make_page("c1", added=[feed_tx("t1", 1.00)])})

    with caplog.at_level("INFO", logger="services.sync_service"):
        SyncService(client=client).sync_item(db, plaid_item, correlation_id="req-abc")

    page_records = [r for r in caplog.records if "page 1 applied" in r.getMessage()]
    assert page_records
    assert "added=1" in page_records[0].getMessage()
    assert page_records[0].request_id == "req-abc"


def test_concurrent_sync_of_same_item_is_rejected(db, plaid_item):
    service = SyncService(client=MockPlaidClient())
    lock = SyncService._lock_for(plaid_item.item_id)
    lock.acquire()
    try:
        assert SyncService.is_sync_in_progress(plaid_item.item_id)
        with pytest.raises(SyncInProgressError):
            service.sync_item(db, plaid_item)
    finally:
        lock.release()

    assert not SyncService.is_sync_in_progress(plaid_item.item_id)


def test_lock_is_released_after_unexpected_error(db, plaid_item):
    client = MockPlaidClient(sync_failures={None: RuntimeError("boom")})
    service = SyncService(client=client)

    with pytest.raises(RuntimeError):
        service.sync_item(db, plaid_item)

    assert not SyncService.is_sync_in_progress(plaid_item.item_id)


def test_sync_all_skips_revoked_items(db, plaid_item):
    revoked = PlaidItem(item_id="item-revoked", access_token="access-r", status="revoked")
    db.add(revoked)
    db.commit()
    client = MockPlaidClient()

    results = SyncService(client=client).sync_all(db)

    assert [r.item_id for r in results] == ["item-1"]
    assert [c[0] for c in client.sync_calls] == ["access-1"]


def test_sync_all_retries_errored_items(db, plaid_item):
    """An Item errored by a past login failure is picked up again after re-login."""
    plaid_item.status = "error"
    plaid_item.last_sync_error = "login required"
    db.commit()
    client = MockPlaidClient(pages={None: make_page("c1", added=[feed_tx("t1", 1.00)])})

    results = SyncService(client=client).sync_all(db)

    assert [r.status for r in results] == ["success"]
    db.refresh(plaid_item)
    assert plaid_item.status == "active"
    assert plaid_item.last_sync_error is None
    assert plaid_item.sync_cursor == "c1"


def test_rejected_api_keys_do_not_mark_item_errored(db, plaid_item):
    client = MockPlaidClient(sync_failures={
        None: ProviderConfigError(
            "Plaid error (INVALID_API_KEYS): invalid client_id or secret provided",
            provider_name="Plaid",
            error_code="INVALID_API_KEYS",
        ),
    })

    result = SyncService(client=client).sync_item(db, plaid_item)

    assert result.status == "failed"
    db.refresh(plaid_item)
    assert plaid_item.status == "active"
    assert "INVALID_API_KEYS" in plaid_item.last_sync_error


def test_items_sync_again_once_api_keys_are_fixed(db, plaid_item):
    """A run with bad deployment keys must not strand Items for later runs."""
    bad_keys = MockPlaidClient(should_fail=True, failure_type="config")
    SyncService(client=bad_keys).sync_all(db)
    db.refresh(plaid_item)
    assert plaid_item.last_sync_error

    fixed = MockPlaidClient(pages={None: make_page("c1", added=[feed_tx("t1", 1.00)])})
    results = SyncService(client=fixed).sync_all(db)

    assert [r.item_id for r in results] == ["item-1"]
    assert results[0].status == "success"
    db.refresh(plaid_item)
    assert plaid_item.sync_cursor == "c1"
    assert plaid_item.last_sync_error is None
