"""Plaid API client.

This module implements the TransactionsProvider protocol via the
plaid-python SDK: Link token creation, public token exchange, Item and
institution lookup, account listing, the cursor-based
``/transactions/sync`` change feed, and Item removal.

SDK exceptions are mapped onto the typed hierarchy in
``integrations.exceptions`` so callers never handle ``ApiException``
directly.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar

from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConfigError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    TransientProviderError,
)
from integrations.provider_protocol import (
    ProviderAccount,
    ProviderInstitution,
    TokenExchangeResult,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Plaid"

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
# Plaid's Development environment is deprecated; only sandbox and production
# are supported.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}

# Errors that belong to one Item; the Item is marked errored.
_AUTH_ERROR_CODES = frozenset(
    {
        "INVALID_ACCESS_TOKEN",
        "ITEM_LOGIN_REQUIRED",
        "ACCESS_NOT_GRANTED",
    }
)

# Errors in the deployment's own keys; every Item fails the same way.
_CONFIG_ERROR_CODES = frozenset(
    {
        "INVALID_API_KEYS",
        "UNAUTHORIZED_ENVIRONMENT",
    }
)

# Plaid asks clients to restart pagination from the last good cursor when
# the underlying data changes mid-loop; the next run does exactly that.
_TRANSIENT_ERROR_CODES = frozenset(
    {
        "TRANSACTIONS_SYNC_MUTATION_DURING_PAGINATION",
        "PRODUCT_NOT_READY",
        "INSTITUTION_DOWN",
        "INSTITUTION_NOT_RESPONDING",
        "INTERNAL_SERVER_ERROR",
    }
)

T = TypeVar("T")


class PlaidClient:
    """Wrapper around the Plaid API.

    Implements the TransactionsProvider protocol. A single instance is
    meant to live for the whole process; the underlying ``PlaidApi`` is
    created lazily on first use.
    """

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
        country_codes: list[str] | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT
        self._country_codes = country_codes or settings.plaid_country_codes

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            api_client = ApiClient(configuration)
            self._api = PlaidApi(api_client)
        return self._api

    @property
    def provider_name(self) -> str:
        """Return the provider name for logs and errors."""
        return PROVIDER_NAME

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run an SDK call, translating SDK and transport errors."""
        try:
            return fn()
        except ApiException as e:
            error = self._map_plaid_error(e)
            logger.warning("Plaid %s failed: %s", operation, error)
            raise error from e
        except Urllib3HTTPError as e:
            logger.warning("Plaid %s failed: network error: %s", operation, e)
            raise ProviderConnectionError(
                f"Network error calling Plaid {operation}: {e}",
                provider_name=PROVIDER_NAME,
            ) from e

    # ------------------------------------------------------------------
    # Link Token & Token Exchange
    # ------------------------------------------------------------------

    def create_link_token(self) -> str:
        """Create a Plaid Link token for the browser-based auth flow.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        api = self._get_api()
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id="ledger-sync-user"),
            client_name="Ledger Sync",
            products=[Products("transactions")],
            country_codes=[CountryCode(c) for c in self._country_codes],
            language="en",
        )
        response = self._call("link_token_create", lambda: api.link_token_create(request))
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> TokenExchangeResult:
        """Exchange a Plaid Link public_token for a permanent access_token.

        Args:
            public_token: The public_token from Plaid Link on-success callback.

        Returns:
            TokenExchangeResult with the access token and Plaid item_id.
        """
        api = self._get_api()
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(
            "item_public_token_exchange",
            lambda: api.item_public_token_exchange(request),
        )
        return TokenExchangeResult(
            access_token=response["access_token"],
            item_id=response["item_id"],
        )

    def remove_item(self, access_token: str) -> None:
        """Revoke an access token by calling Plaid's /item/remove endpoint."""
        api = self._get_api()
        self._call(
            "item_remove",
            lambda: api.item_remove(ItemRemoveRequest(access_token=access_token)),
        )

    # ------------------------------------------------------------------
    # Item metadata & accounts
    # ------------------------------------------------------------------

    def get_institution(self, access_token: str) -> ProviderInstitution:
        """Resolve the institution id and name for an Item."""
        api = self._get_api()
        item_response = self._call(
            "item_get",
            lambda: api.item_get(ItemGetRequest(access_token=access_token)),
        )
        institution_id = item_response["item"].get("institution_id")
        if not institution_id:
            return ProviderInstitution()

        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode(c) for c in self._country_codes],
        )
        inst_response = self._call(
            "institutions_get_by_id",
            lambda: api.institutions_get_by_id(request),
        )
        return ProviderInstitution(
            institution_id=institution_id,
            name=inst_response["institution"].get("name"),
        )

    def get_accounts(self, access_token: str) -> list[ProviderAccount]:
        """Fetch all accounts Plaid reports for an Item."""
        api = self._get_api()
        response = self._call(
            "accounts_get",
            lambda: api.accounts_get(AccountsGetRequest(access_token=access_token)),
        )

        accounts: list[ProviderAccount] = []
        for acct in response.get("accounts", []) or []:
            account_id = acct.get("account_id")
            if not account_id:
                continue
            balances = acct.get("balances") or {}
            subtype = acct.get("subtype")
            accounts.append(ProviderAccount(
                account_id=account_id,
                name=acct.get("name") or acct.get("official_name") or "Plaid Account",
                type=str(acct.get("type") or "depository").lower(),
                subtype=str(subtype).lower() if subtype else None,
                official_name=acct.get("official_name"),
                mask=acct.get("mask"),
                balance_current=self._to_decimal(balances.get("current")),
                balance_available=self._to_decimal(balances.get("available")),
                balance_limit=self._to_decimal(balances.get("limit")),
                iso_currency_code=(balances.get("iso_currency_code") or "USD").upper(),
            ))
        return accounts

    # ------------------------------------------------------------------
    # Transactions change feed
    # ------------------------------------------------------------------

    def sync_transactions(
        self, access_token: str, cursor: str | None, count: int
    ) -> dict[str, Any]:
        """Fetch one page of ``/transactions/sync``.

        An empty or missing cursor requests the Item's full history.

        Returns:
            The page as a plain dict (nested SDK models converted).
        """
        api = self._get_api()
        kwargs: dict[str, Any] = {"access_token": access_token, "count": count}
        if cursor:
            kwargs["cursor"] = cursor
        request = TransactionsSyncRequest(**kwargs)
        response = self._call("transactions_sync", lambda: api.transactions_sync(request))
        return response.to_dict()

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _map_plaid_error(exc: ApiException) -> ProviderError:
        """Map a Plaid ApiException to a typed ProviderError."""
        status = exc.status or 0
        message = str(exc)

        # Try to extract error_code from the body
        error_code = ""
        try:
            body = json.loads(exc.body) if exc.body else {}
            error_code = body.get("error_code", "") or ""
            error_message = body.get("error_message", "")
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"
        except (TypeError, ValueError, AttributeError):
            pass

        if error_code in _AUTH_ERROR_CODES:
            return ProviderAuthError(message, provider_name=PROVIDER_NAME, error_code=error_code)
        if status in (401, 403) or error_code in _CONFIG_ERROR_CODES:
            return ProviderConfigError(message, provider_name=PROVIDER_NAME, error_code=error_code)
        if status == 429 or error_code == "RATE_LIMIT_EXCEEDED":
            return ProviderRateLimitError(message, provider_name=PROVIDER_NAME, error_code=error_code)
        if error_code in _TRANSIENT_ERROR_CODES:
            return TransientProviderError(message, provider_name=PROVIDER_NAME, error_code=error_code)
        return ProviderAPIError(
            message,
            provider_name=PROVIDER_NAME,
            error_code=error_code,
            status_code=status or None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_decimal(value) -> Decimal | None:
        """Convert a value to Decimal, returning None on failure."""
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
