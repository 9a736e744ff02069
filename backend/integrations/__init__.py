"""External API integrations.

This package contains:
- Provider protocol: Common interface for the bank aggregation provider
- Exceptions: Typed provider error hierarchy
- Plaid client: Integration with the Plaid API
"""

from integrations.provider_protocol import (
    ProviderAccount,
    ProviderInstitution,
    TokenExchangeResult,
    TransactionsProvider,
)

__all__ = [
    "ProviderAccount",
    "ProviderInstitution",
    "TokenExchangeResult",
    "TransactionsProvider",
]
