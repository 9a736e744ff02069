"""SQLAlchemy ORM models."""

from .plaid_account import PlaidAccount
from .plaid_item import PlaidItem
from .statement import BankStatement, StatementLineItem
from .sync_log import SyncLogEntry
from .transaction import Transaction
from .utils import generate_uuid

__all__ = ["BankStatement", "PlaidAccount", "PlaidItem", "StatementLineItem", "SyncLogEntry", "Transaction", "generate_uuid"]
