"""Provider protocol definitions for bank connections and the transactions feed.

This module defines the normalized data the aggregation provider hands to
the services, and the interface a provider client must implement so the
connection registry and sync consumer stay free of SDK-specific code.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol


@dataclass
class ProviderAccount:
    """Normalized account data reported for a linked Item."""

    account_id: str  # Provider's external ID for the account
    name: str  # Account name/nickname
    type: str  # e.g., "depository", "credit", "loan", "investment"
    subtype: str | None = None  # e.g., "checking", "credit card"
    official_name: str | None = None
    mask: str | None = None  # Last digits of the account number
    balance_current: Decimal | None = None
    balance_available: Decimal | None = None
    balance_limit: Decimal | None = None  # Credit limit for credit cards
    iso_currency_code: str = "USD"


@dataclass
class ProviderInstitution:
    """Institution metadata for a linked Item."""

    institution_id: str | None = None
    name: str | None = None


@dataclass
class TokenExchangeResult:
    """Outcome of exchanging a Link public_token."""

    access_token: str
    item_id: str


class TransactionsProvider(Protocol):
    """Protocol that the aggregation provider client must implement."""

    @property
    def provider_name(self) -> str:
        """Return the provider name used in logs and errors."""
        ...

    def is_configured(self) -> bool:
        """Check if the provider has credentials configured."""
        ...

    def create_link_token(self) -> str:
        """Create a token for the browser-based Link flow."""
        ...

    def exchange_public_token(self, public_token: str) -> TokenExchangeResult:
        """Exchange a Link public_token for a permanent access token."""
        ...

    def get_institution(self, access_token: str) -> ProviderInstitution:
        """Look up the institution behind an Item."""
        ...

    def get_accounts(self, access_token: str) -> list[ProviderAccount]:
        """Fetch all accounts for an Item."""
        ...

    def sync_transactions(
        self, access_token: str, cursor: str | None, count: int
    ) -> dict[str, Any]:
        """Fetch one page of the transactions change feed.

        Args:
            access_token: The Item's access token.
            cursor: Cursor returned by the previous page, or ``None`` for
                full history.
            count: Maximum number of changes to return.

        Returns:
            The raw page payload with ``added``, ``modified``, ``removed``,
            ``next_cursor`` and ``has_more`` keys. Validation happens in the
            sync consumer, not here.

        Raises:
            ProviderError: If the provider call fails.
        """
        ...

    def remove_item(self, access_token: str) -> None:
        """Revoke an Item's access token with the provider."""
        ...
