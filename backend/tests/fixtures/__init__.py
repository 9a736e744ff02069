"""Test fixtures and sample data."""
import pytest
from datetime import date
from decimal import Decimal

from models import BankStatement, PlaidAccount, PlaidItem, StatementLineItem, SyncLogEntry, Transaction
from sqlalchemy.orm import Session


def create_transaction(
    db: Session,
    transaction_id: str,
    amount: Decimal,
    tx_date: date = date(2024, 1, 5),
    account_id: str = "acct-checking",
    item_id: str | None = "item-1",
    name: str | None = None,
) -> Transaction:
    """Insert a ledger transaction directly, bypassing the sync consumer."""
    tx = Transaction(
        transaction_id=transaction_id,
        item_id=item_id,
        account_id=account_id,
        amount=amount,
        amount_normalized=-amount,
        date=tx_date,
        name=name or f"Transaction {transaction_id}",
    )
    db.add(tx)
    db.flush()
    return tx


def create_statement(
    db: Session,
    lines: list[tuple[date, Decimal, str | None]],
    account_id: str = "acct-checking",
    statement_date: date = date(2024, 1, 31),
    file_name: str = "statement.csv",
) -> BankStatement:
    """Insert a statement with (date, amount, description) line items."""
    statement = BankStatement(
        account_id=account_id,
        statement_date=statement_date,
        file_name=file_name,
        file_type=file_name.rsplit(".", 1)[-1],
        status="uploaded",
    )
    for line_date, amount, description in lines:
        statement.line_items.append(StatementLineItem(
            account_id=account_id,
            date=line_date,
            amount=amount,
            description=description,
        ))
    db.add(statement)
    db.flush()
    return statement


@pytest.fixture
def plaid_item(db: Session) -> PlaidItem:
    """Create a linked Plaid Item with no sync cursor yet."""
    item = PlaidItem(
        item_id="item-1",
        access_token="access-1",
        institution_id="ins_109508",
        institution_name="First Platypus Bank",
        status="active",
        context="personal",
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def plaid_account(db: Session, plaid_item: PlaidItem) -> PlaidAccount:
    """Create a checking account under plaid_item."""
    account = PlaidAccount(
        account_id="acct-checking",
        plaid_item_id=plaid_item.id,
        name="Everyday Checking",
        type="depository",
        subtype="checking",
        account_label="Checking",
        is_liability=False,
        iso_currency_code="USD",
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


@pytest.fixture
def sync_log_entry(db: Session, plaid_item: PlaidItem) -> SyncLogEntry:
    """Create a successful sync log entry for plaid_item."""
    entry = SyncLogEntry(
        plaid_item_id=plaid_item.id,
        status="success",
        pages_applied=1,
        added_count=2,
        final_cursor="cursor-1",
        correlation_id="req-fixture",
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
