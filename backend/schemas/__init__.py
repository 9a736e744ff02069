"""Pydantic request/response schemas."""

from .plaid import (
    DeletedCounts,
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    LinkTokenResponse,
    PlaidAccountResponse,
    PlaidItemResponse,
    RemoveItemResponse,
)
from .reconciliation import (
    ReconciliationItemResponse,
    ReconciliationReportResponse,
    ReconciliationSummaryResponse,
)
from .statement import (
    StatementCreate,
    StatementLineItemInput,
    StatementLineItemResponse,
    StatementResponse,
)
from .sync import FeedTransaction, RemovedTransaction, SyncPage, SyncRequest, SyncResponse

__all__ = [
    "DeletedCounts",
    "ExchangeTokenRequest",
    "ExchangeTokenResponse",
    "FeedTransaction",
    "LinkTokenResponse",
    "PlaidAccountResponse",
    "PlaidItemResponse",
    "ReconciliationItemResponse",
    "ReconciliationReportResponse",
    "ReconciliationSummaryResponse",
    "RemoveItemResponse",
    "RemovedTransaction",
    "StatementCreate",
    "StatementLineItemInput",
    "StatementLineItemResponse",
    "StatementResponse",
    "SyncPage",
    "SyncRequest",
    "SyncResponse",
]
