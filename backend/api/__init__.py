"""API route handlers."""
from . import plaid, reports, statements, sync

__all__ = ["plaid", "reports", "statements", "sync"]
